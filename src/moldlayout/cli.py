"""
Command line entry point: plan mold groupings for an order.

Usage:
    moldlayout-plan products.yaml
    moldlayout-plan products.json --allow-different-colors --top 5 \\
        --output results/plan.json --csv results/plan.csv
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from moldlayout.config import SearchConfig, load_lookup_tables, load_scoring_config
from moldlayout.errors import MoldLayoutError
from moldlayout.logging_config import setup_logging
from moldlayout.models import Product, parse_products
from moldlayout.report import export_to_csv, export_to_json, format_summary
from moldlayout.search import plan_schemes

logger = logging.getLogger(__name__)


def load_products(path: Path) -> List[Product]:
    """
    Read products from a YAML or JSON file.

    The document is either a list of products or a mapping with a
    ``products`` list.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("products", [])
    if not isinstance(data, list):
        raise MoldLayoutError(f"{path} does not contain a list of products")
    return parse_products(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moldlayout-plan",
        description="Group products into molds, pack, score and price each scheme",
    )
    parser.add_argument("products", type=Path, help="YAML or JSON file with the products")
    parser.add_argument(
        "--allow-different-colors",
        action="store_true",
        help="Allow products of different colors in one mold",
    )
    parser.add_argument(
        "--allow-different-materials",
        action="store_true",
        help="Allow products of different materials in one mold",
    )
    parser.add_argument(
        "--mold-material",
        default="NAK80",
        help="Mold steel (default: NAK80)",
    )
    parser.add_argument("--tables", type=Path, help="Alternative lookup tables YAML")
    parser.add_argument("--scoring", type=Path, help="Scoring config override YAML")
    parser.add_argument(
        "--max-schemes",
        type=int,
        default=5000,
        help="Stop enumerating after this many schemes (default: 5000)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker processes; 0 evaluates inline (default: 70%% of CPUs)",
    )
    parser.add_argument("--top", type=int, default=10, help="Schemes to print (default: 10)")
    parser.add_argument("--output", type=Path, help="Write the full result as JSON")
    parser.add_argument("--csv", type=Path, help="Write one row per group as CSV")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        products = load_products(args.products)
        tables = load_lookup_tables(args.tables)
        scoring = load_scoring_config(args.scoring) if args.scoring else None
        search = SearchConfig(
            max_schemes=args.max_schemes,
            max_workers=args.workers,
            mold_material=args.mold_material,
        )
        result = plan_schemes(
            products,
            allow_different_colors=args.allow_different_colors,
            allow_different_materials=args.allow_different_materials,
            search=search,
            scoring=scoring,
            tables=tables,
        )
    except (MoldLayoutError, OSError, ValueError) as exc:
        logger.error("Planning failed: %s", exc)
        return 1

    print(format_summary(result, top=args.top))
    if args.output:
        export_to_json(result, args.output)
        logger.info("Saved JSON report to %s", args.output)
    if args.csv:
        export_to_csv(result, args.csv)
        logger.info("Saved CSV report to %s", args.csv)
    return 0


if __name__ == "__main__":
    sys.exit(main())
