"""Shared fixtures for the mold layout tests."""

import os
import sys

import pytest

# Make the src/ layout importable without an install
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from moldlayout.config import SearchConfig, load_lookup_tables
from moldlayout.models import Footprint, Product


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_product(pid, length=100.0, width=80.0, height=30.0, weight=None,
                 color="black", material="ABS", quantity=1000, **extra):
    """Product with a flat dimension block, the shape order sheets use."""
    data = {
        "id": pid,
        "name": f"P{pid}",
        "length": length,
        "width": width,
        "height": height,
        "color": color,
        "material": material,
        "quantity": quantity,
    }
    if weight is not None:
        data["weight"] = weight
    data.update(extra)
    return Product.model_validate(data)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def tables():
    """Packaged default lookup tables."""
    return load_lookup_tables()


@pytest.fixture
def inline_search():
    """Search config that evaluates in-process."""
    return SearchConfig(max_workers=0)


@pytest.fixture
def example_footprints():
    return [Footprint(300, 100), Footprint(250, 100), Footprint(230, 180)]


@pytest.fixture
def identical_products():
    return [make_product(i, 120, 80, 25, weight=40) for i in range(1, 5)]


@pytest.fixture
def mixed_products():
    return [
        make_product(1, 200, 150, 40, weight=120),
        make_product(2, 180, 120, 35, weight=95),
        make_product(3, 90, 60, 20, weight=30, color="white"),
        make_product(4, 150, 100, 30, weight=70, material="PP"),
    ]
