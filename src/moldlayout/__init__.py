"""Mold layout planning: footprint packing, balance scoring and partition search."""

from .config import (
    LookupTables,
    PackerConfig,
    ScoringConfig,
    SearchConfig,
    load_lookup_tables,
    load_scoring_config,
)
from .errors import DegenerateGeometryError, EnumerationOverflowError, InvalidInputError, MoldLayoutError
from .models import (
    BalanceScore,
    Footprint,
    GroupResult,
    Layout,
    MoldDimensions,
    PlacedRectangle,
    Product,
    Scheme,
    SearchResult,
    parse_products,
)
from .packing import LayoutPacker, pack
from .balance import BalanceScorer, score_3d_symmetry, score_layout
from .search import enumerate_schemes, find_optimal_distribution, is_valid_grouping, plan_schemes

__version__ = "0.1.0"

__all__ = [
    # Models
    "Product",
    "Footprint",
    "PlacedRectangle",
    "Layout",
    "MoldDimensions",
    "BalanceScore",
    "GroupResult",
    "Scheme",
    "SearchResult",
    "parse_products",
    # Config
    "PackerConfig",
    "ScoringConfig",
    "SearchConfig",
    "LookupTables",
    "load_lookup_tables",
    "load_scoring_config",
    # Errors
    "MoldLayoutError",
    "InvalidInputError",
    "DegenerateGeometryError",
    "EnumerationOverflowError",
    # Packing
    "LayoutPacker",
    "pack",
    # Balance
    "BalanceScorer",
    "score_layout",
    "score_3d_symmetry",
    # Search
    "enumerate_schemes",
    "plan_schemes",
    "find_optimal_distribution",
    "is_valid_grouping",
]
