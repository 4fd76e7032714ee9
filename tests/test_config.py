"""
Tests for configuration and lookup tables.

Covers:
- Packaged YAML tables load and are cached
- StepTable inclusive / strict thresholds, defaults and errors
- Alternative table files and malformed documents
- Product input validation (flat / nested / camelCase forms)
"""

from importlib import resources

import pytest
import yaml

from moldlayout.config import (
    DistributionConfig,
    FlowConfig,
    LookupTables,
    StepTable,
    load_lookup_tables,
    load_scoring_config,
)
from moldlayout.errors import InvalidInputError
from moldlayout.models import Product, parse_products


def test_default_tables_are_cached():
    assert load_lookup_tables() is load_lookup_tables()


def test_default_tables_content(tables):
    assert tables.separate_mold_weight == 1000
    assert tables.min_volume_utilization == 0.6
    assert tables.pricing.exchange_rate == 7.1
    assert [m.tonnage for m in tables.pricing.machines] == sorted(m.tonnage for m in tables.pricing.machines)
    assert "ABS" in tables.pricing.materials


def test_step_table_inclusive_and_strict():
    inclusive = StepTable.from_dict({"rules": [[100, 1], [200, 2]]})
    strict = StepTable.from_dict({"rules": [[100, 1], [200, 2]], "strict": True})
    assert inclusive.lookup(100) == 1
    assert strict.lookup(100) == 2
    assert inclusive.lookup(250) == 0


def test_step_table_error_and_round_trip():
    table = StepTable.from_dict({"rules": [[200, 2], [100, 1]], "error": "Too big"})
    assert table.thresholds == (100, 200)
    with pytest.raises(InvalidInputError, match="Too big"):
        table.lookup(201)
    assert StepTable.from_dict(table.to_dict()) == table


def test_alternative_tables_file(tmp_path, tables):
    text = resources.files("moldlayout.data").joinpath("lookup_tables.yaml").read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    data["separate_mold_weight"] = 500
    path = tmp_path / "tables.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    custom = load_lookup_tables(path)
    assert custom.separate_mold_weight == 500
    assert custom.spacing == tables.spacing


def test_malformed_tables():
    with pytest.raises(InvalidInputError):
        LookupTables.from_dict({"spacing": {"rules": []}})


def test_scoring_config_file(tmp_path):
    path = tmp_path / "scoring.yaml"
    path.write_text("flow:\n  flow_path_range: [0.5, 0.9]\ndistribution:\n  balance_bonus: 8\n")
    cfg = load_scoring_config(path)
    assert cfg.flow.flow_path_range == (0.5, 0.9)
    assert cfg.distribution.balance_bonus == 8
    assert cfg.flow.symmetric_threshold == FlowConfig().symmetric_threshold


def test_unknown_config_keys_are_ignored():
    assert DistributionConfig.from_dict({"nope": 1}) == DistributionConfig()


# ---------------------------------------------------------------------------
# Product input
# ---------------------------------------------------------------------------

def test_flat_and_nested_dimensions_agree():
    flat = Product.model_validate({"id": 1, "length": 100, "width": 80, "height": 30})
    nested = Product.model_validate({"id": 1, "dimensions": {"length": 100, "width": 80, "height": 30}})
    assert flat == nested
    assert flat.footprint.area == 8000


def test_camel_case_cad_data():
    product = Product.model_validate({
        "id": 1,
        "cadData": {
            "boundingBox": {"dimensions": {"x": 50, "y": 40, "z": 10}},
            "volume": 12000,
            "surfaceArea": 6000,
        },
    })
    assert product.has_complete_cad
    assert (product.length, product.width, product.height) == (50, 40, 10)
    assert product.effective_volume == 12000


def test_effective_weight():
    assert Product(weight=12.5).effective_weight == 12.5
    assert Product(volume=1000, density=0.002).effective_weight == pytest.approx(2.0)
    assert Product().effective_weight is None


def test_parse_products_reports_index():
    with pytest.raises(InvalidInputError, match="#1"):
        parse_products([{"id": 1}, {"id": 2, "weight": -1}])
