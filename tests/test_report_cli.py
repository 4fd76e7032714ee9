"""
Tests for reports and the command line entry point.

Covers:
- schemes_to_dict structure
- JSON and CSV export
- Human-readable summary, including the empty case
- moldlayout-plan end to end on a YAML order
"""

import csv
import json

import yaml

from moldlayout.cli import load_products, main
from moldlayout.config import SearchConfig
from moldlayout.models import SearchResult
from moldlayout.report import export_to_csv, export_to_json, format_summary, schemes_to_dict
from moldlayout.search import plan_schemes


def _plan(products):
    return plan_schemes(products, search=SearchConfig(max_workers=0))


def test_schemes_to_dict(identical_products):
    result = _plan(identical_products[:2])
    data = schemes_to_dict(result)
    assert data["scheme_count"] == len(result)
    assert data["enumerated"] == 2
    first = data["schemes"][0]
    assert first["evaluated"]
    assert first["groups"][0]["mold"]["mold_material"] == "NAK80"
    assert first["groups"][0]["layout"]["rectangles"]
    json.dumps(data)


def test_export_to_json(tmp_path, identical_products):
    result = _plan(identical_products[:2])
    path = tmp_path / "out" / "plan.json"
    export_to_json(result, path)
    loaded = json.loads(path.read_text())
    assert loaded["scheme_count"] == len(result)


def test_export_to_csv(tmp_path, identical_products):
    result = _plan(identical_products[:2])
    path = tmp_path / "plan.csv"
    export_to_csv(result, path)
    with path.open() as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == sum(len(s.groups) for s in result)
    assert rows[0]["scheme_rank"] == "1"


def test_export_empty_csv_has_header(tmp_path):
    path = tmp_path / "empty.csv"
    export_to_csv(SearchResult(), path)
    assert path.read_text().startswith("scheme,scheme_rank,group")


def test_format_summary(identical_products):
    text = format_summary(_plan(identical_products[:2]), top=1)
    assert "Schemes enumerated: 2" in text
    assert "  1. Scheme" in text
    assert "No feasible scheme found." in format_summary(SearchResult())


def test_load_products_from_yaml_mapping(tmp_path):
    path = tmp_path / "order.yaml"
    path.write_text(yaml.safe_dump({"products": [{"id": 1, "length": 100, "width": 80, "height": 20}]}))
    products = load_products(path)
    assert products[0].footprint.area == 8000


def test_cli_end_to_end(tmp_path, capsys):
    order = tmp_path / "order.json"
    order.write_text(json.dumps([
        {"id": 1, "name": "lid", "length": 120, "width": 80, "height": 20, "weight": 40,
         "material": "ABS", "color": "black", "quantity": 1000},
        {"id": 2, "name": "base", "length": 120, "width": 80, "height": 25, "weight": 45,
         "material": "ABS", "color": "black", "quantity": 1000},
    ]))
    output = tmp_path / "plan.json"
    table = tmp_path / "plan.csv"

    code = main([str(order), "--workers", "0", "--output", str(output), "--csv", str(table)])

    assert code == 0
    assert "Mold Layout Plan" in capsys.readouterr().out
    assert json.loads(output.read_text())["enumerated"] == 2
    assert table.exists()


def test_cli_reports_bad_input(tmp_path):
    order = tmp_path / "order.yaml"
    order.write_text("products: 5\n")
    assert main([str(order), "--workers", "0"]) == 1
