"""Layout packing and the mold dimensions derived from a layout."""

from moldlayout.packing.mold import (
    build_mold_dimensions,
    calculate_bottom_margin,
    calculate_edge_margin,
    calculate_mold_weight,
)
from moldlayout.packing.packer import LayoutPacker, calculate_spacing, pack

__all__ = [
    "LayoutPacker",
    "pack",
    "calculate_spacing",
    "calculate_edge_margin",
    "calculate_bottom_margin",
    "calculate_mold_weight",
    "build_mold_dimensions",
]
