from __future__ import annotations

import json

from halalmap.cli import main


def test_nearby_memory_backend_json(settings, capsys):
    code = main(["nearby", "--lat", "41.7151", "--lng", "44.8271", "--type", "restaurant", "--backend", "memory", "--json"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["count"] == 5
    assert out["search"]["radius_defaulted"] is True
    assert out["data"][0]["name"] == "Shawarma King"


def test_nearby_rejects_bad_radius(settings, capsys):
    code = main(["nearby", "--lat", "41.7151", "--lng", "44.8271", "--radius", "99", "--backend", "memory"])
    assert code == 2
    assert "distance" in capsys.readouterr().err


def test_import_catalog_then_sql_search(settings, capsys):
    assert main(["import-catalog"]) == 0
    assert "Imported 14 places" in capsys.readouterr().out

    assert main(["nearby", "--lat", "41.6417", "--lng", "41.6333", "--radius", "2000", "--backend", "sql"]) == 0
    out = capsys.readouterr().out
    assert "Batumi Shawarma" in out
    assert "Seaside Halal Grill" in out
