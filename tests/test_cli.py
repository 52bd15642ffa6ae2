"""Tests for the command-line search tool."""

import json

from conftest import make_catalog

from cli_search import main


def test_single_query_prints_ranked_results(tmp_path, capsys):
    """A single query prints one ranked line per product."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(make_catalog()), encoding="utf-8")

    assert main(["blue label", "--catalog", str(path), "--brand", "Johnnie Walker"]) == 0

    out = capsys.readouterr().out
    assert "results: 2" in out
    assert out.index("| Blue Label |") < out.index("| Blue Label Reserve |")


def test_batch_mode(tmp_path, capsys):
    """Batch mode runs every non-blank line as a query."""
    catalog = tmp_path / "catalog.json"
    catalog.write_text(json.dumps(make_catalog()), encoding="utf-8")
    queries = tmp_path / "queries.txt"
    queries.write_text("chateau\n\nabsinthe\n", encoding="utf-8")

    assert main(["--catalog", str(catalog), "--batch", str(queries)]) == 0

    out = capsys.readouterr().out
    assert "Query: chateau | results: 1" in out
    assert "Query: absinthe | results: 0" in out
