"""
Mold block derivations from a packed layout.

    edge margin   = larger border-table lookup of the packed length / width
    bottom margin = tallest product + height-bracket lookup
    mold weight   = (L + 2e) x (W + 2e) x bottom margin x steel density (kg)
"""

from typing import Optional

from moldlayout.config import LookupTables, load_lookup_tables
from moldlayout.models import Layout, MoldDimensions


def calculate_edge_margin(length: float, width: float,
                          tables: Optional[LookupTables] = None) -> float:
    """Edge margin around the cavity; 0 past the end of the border table."""
    tables = tables or load_lookup_tables()
    return max(tables.border_margin.lookup(width), tables.border_margin.lookup(length))


def calculate_bottom_margin(max_product_height: float,
                            tables: Optional[LookupTables] = None) -> float:
    """Mold block height: tallest product plus its structure bracket."""
    tables = tables or load_lookup_tables()
    return max_product_height + tables.height_bracket.lookup(max_product_height)


def calculate_mold_weight(length: float, width: float, height: float, edge_margin: float,
                          density: Optional[float] = None,
                          tables: Optional[LookupTables] = None) -> float:
    """Steel weight of the mold block in kg."""
    if density is None:
        density = (tables or load_lookup_tables()).default_mold_density
    volume = (length + edge_margin * 2) * (width + edge_margin * 2) * height
    return volume * density


def build_mold_dimensions(layout: Layout, max_product_height: float, mold_material: str,
                          tables: Optional[LookupTables] = None,
                          mold_price: float = 0.0) -> MoldDimensions:
    """Assemble the full MoldDimensions record for a packed layout."""
    tables = tables or load_lookup_tables()
    edge = calculate_edge_margin(layout.length, layout.width, tables)
    bottom = calculate_bottom_margin(max_product_height, tables)
    weight = calculate_mold_weight(
        layout.length, layout.width, bottom, edge,
        density=tables.mold_density(mold_material),
    )
    return MoldDimensions(
        length=layout.length + edge * 2,
        width=layout.width + edge * 2,
        height=bottom,
        mold_material=mold_material,
        mold_weight=weight,
        mold_price=mold_price,
        max_inner_length=layout.length,
        max_inner_width=layout.width,
        vertical_margin=edge,
        horizontal_margin=edge,
    )
