"""Scheme reports.

Converts evaluated schemes into plain dictionaries and exports them to JSON
(full detail) or CSV (one row per group), plus a human-readable summary.
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from moldlayout.models import GroupResult, Scheme, SearchResult

CSV_FIELDS = [
    "scheme", "scheme_rank", "group", "product_ids", "group_score",
    "balance_total", "geometry", "flow", "distribution", "confidence",
    "layout_width", "layout_length", "mold_length", "mold_width", "mold_height",
    "mold_weight", "mold_price", "product_price", "scheme_total_price",
]


def group_to_dict(group: GroupResult) -> dict[str, Any]:
    """Convert one evaluated group to a dictionary.

    Args:
        group: GroupResult, evaluated or not.

    Returns:
        Dictionary with product ids, score, layout, balance, mold and prices.
    """
    return {
        "product_ids": group.product_ids,
        "products": [p.model_dump(mode="json", exclude_none=True) for p in group.products],
        "score": group.score,
        "layout": group.layout.to_dict() if group.layout else None,
        "balance": group.balance.to_dict() if group.balance else None,
        "mold": group.mold.to_dict() if group.mold else None,
        "product_prices": [asdict(p) for p in group.product_prices],
        "mold_price": group.mold_price,
        "product_price": group.product_price,
    }


def scheme_to_dict(scheme: Scheme) -> dict[str, Any]:
    return {
        "name": scheme.name,
        "score": scheme.score,
        "evaluated": scheme.evaluated,
        "total_mold_price": scheme.total_mold_price,
        "total_product_price": scheme.total_product_price,
        "total_price": scheme.total_price,
        "groups": [group_to_dict(g) for g in scheme.groups],
    }


def schemes_to_dict(result: SearchResult | Sequence[Scheme]) -> dict[str, Any]:
    """Convert a search result (or a plain list of schemes) to a dictionary.

    Example:
        >>> schemes_to_dict(SearchResult())["scheme_count"]
        0
    """
    if isinstance(result, SearchResult):
        schemes, truncated, enumerated = result.schemes, result.truncated, result.enumerated
    else:
        schemes, truncated, enumerated = list(result), False, len(result)
    return {
        "scheme_count": len(schemes),
        "enumerated": enumerated,
        "truncated": truncated,
        "schemes": [scheme_to_dict(s) for s in schemes],
    }


def export_to_json(result: SearchResult | Sequence[Scheme], output_path: Path | str) -> None:
    """Export schemes to a JSON file.

    Args:
        result: SearchResult or list of schemes to export.
        output_path: Path to output JSON file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with output_path.open("w") as f:
        json.dump(schemes_to_dict(result), f, indent=2)


def export_to_csv(result: SearchResult | Sequence[Scheme], output_path: Path | str) -> None:
    """Export one CSV row per group of every scheme.

    Args:
        result: SearchResult or list of schemes to export.
        output_path: Path to output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    schemes = result.schemes if isinstance(result, SearchResult) else list(result)

    with output_path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for rank, scheme in enumerate(schemes, start=1):
            for idx, group in enumerate(scheme.groups, start=1):
                balance, mold, layout = group.balance, group.mold, group.layout
                writer.writerow({
                    "scheme": scheme.name,
                    "scheme_rank": rank,
                    "group": idx,
                    "product_ids": " ".join(str(i) for i in group.product_ids),
                    "group_score": round(group.score, 2),
                    "balance_total": round(balance.total, 2) if balance else "",
                    "geometry": round(balance.geometry, 2) if balance else "",
                    "flow": round(balance.flow, 2) if balance else "",
                    "distribution": round(balance.distribution, 2) if balance else "",
                    "confidence": round(balance.confidence, 3) if balance else "",
                    "layout_width": layout.width if layout else "",
                    "layout_length": layout.length if layout else "",
                    "mold_length": mold.length if mold else "",
                    "mold_width": mold.width if mold else "",
                    "mold_height": mold.height if mold else "",
                    "mold_weight": round(mold.mold_weight, 2) if mold else "",
                    "mold_price": round(group.mold_price, 2),
                    "product_price": round(group.product_price, 2),
                    "scheme_total_price": round(scheme.total_price, 2),
                })


def format_summary(result: SearchResult | Sequence[Scheme], top: int = 10) -> str:
    """Generate a human-readable ranking of schemes.

    Args:
        result: SearchResult or list of schemes.
        top: Number of schemes to list.

    Returns:
        Multi-line summary string.
    """
    if isinstance(result, SearchResult):
        schemes, truncated, enumerated = result.schemes, result.truncated, result.enumerated
    else:
        schemes, truncated, enumerated = list(result), False, len(result)

    lines = [
        "=" * 60,
        "Mold Layout Plan",
        "=" * 60,
        f"Schemes enumerated: {enumerated}{' (truncated)' if truncated else ''}",
        f"Schemes kept:       {len(schemes)}",
    ]
    if not schemes:
        lines.append("No feasible scheme found.")
        return "\n".join(lines)

    lines.append("")
    for rank, scheme in enumerate(schemes[:top], start=1):
        lines.append(
            f"{rank:>3}. {scheme.name}  total {scheme.total_price:.2f} "
            f"(molds {scheme.total_mold_price:.2f}, products {scheme.total_product_price:.2f})"
        )
        for idx, group in enumerate(scheme.groups, start=1):
            ids = ", ".join(str(i) for i in group.product_ids)
            lines.append(f"       group {idx}: [{ids}] score {group.score:.1f}")
    lines.append("=" * 60)
    return "\n".join(lines)
