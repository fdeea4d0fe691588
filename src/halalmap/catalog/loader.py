"""
Place catalog loader.

The catalog is a local JSON file (default: `data/catalogs/places.json`): a list of places with
coordinates and contact details. It seeds the SQL store (`halalmap import-catalog`) and backs
the in-memory spatial engine. Entries are validated with the same rules as admin writes.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from halalmap.core.env import resolve_project_path
from halalmap.domain.models import Place, PlaceCreate


_CATALOG_ADAPTER = TypeAdapter(list[PlaceCreate])


def load_catalog(path: str | Path) -> list[PlaceCreate]:
    """Load and validate a place catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return _CATALOG_ADAPTER.validate_python(payload)


def load_places(path: str | Path) -> list[Place]:
    """Load the catalog as `Place` objects, numbering entries 1..N in file order."""
    return [Place(id=i, **entry.model_dump()) for i, entry in enumerate(load_catalog(path), start=1)]
