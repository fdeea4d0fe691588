"""
HalalMap CLI entrypoint.

This CLI is intended for local setup and debugging without the HTTP API.
Searches delegate to `halalmap.search.service.NearbyQueryService`.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from halalmap.catalog.loader import load_catalog, load_places
from halalmap.config.settings import get_settings
from halalmap.core.errors import TransientStorageError, ValidationError
from halalmap.core.logging import configure_logging
from halalmap.search.service import NearbyQueryService
from halalmap.spatial.engine import InMemorySpatialEngine, SpatialEngine
from halalmap.storage.db import Database
from halalmap.storage.repository import PlaceRepository


def _cmd_init_db(_: argparse.Namespace) -> int:
    settings = get_settings()
    db = Database(settings.database)
    try:
        db.create_all()
    finally:
        db.dispose()
    print(f"Schema ready: {settings.database.url}")
    return 0


def _cmd_import_catalog(args: argparse.Namespace) -> int:
    """Handle the `import-catalog` subcommand."""
    settings = get_settings()
    entries = load_catalog(args.path or settings.catalog.path)

    db = Database(settings.database)
    try:
        db.create_all()
        added = PlaceRepository(db).bulk_create(entries)
    finally:
        db.dispose()
    print(f"Imported {added} places into {settings.database.url}")
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    backend = args.backend or settings.storage.backend

    db: Database | None = None
    engine: SpatialEngine
    if backend == "memory":
        engine = InMemorySpatialEngine(load_places(settings.catalog.path))
    else:
        db = Database(settings.database)
        engine = PlaceRepository(db)

    service = NearbyQueryService(engine, settings.search)
    try:
        result = service.search(args.lat, args.lng, args.radius, args.type)
    except ValidationError as e:
        print(f"error: {e.field}: {e.message}", file=sys.stderr)
        return 2
    except TransientStorageError:
        print("error: storage unavailable", file=sys.stderr)
        return 1
    finally:
        if db is not None:
            db.dispose()

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    echo = result.search
    print(f"{result.count} places within {echo.radius_meters} m of ({echo.latitude}, {echo.longitude}) type={echo.type}")
    for i, place in enumerate(result.data, start=1):
        mark = "*" if place.verified else " "
        print(f"{i:>2}.{mark}{place.name} [{place.type}] {place.distance_text}  {place.city or ''}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="halalmap")
    sub = parser.add_subparsers(dest="cmd", required=True)

    init = sub.add_parser("init-db", help="Create the places schema in the configured database.")
    init.set_defaults(func=_cmd_init_db)

    imp = sub.add_parser("import-catalog", help="Load a JSON place catalog into the database.")
    imp.add_argument("path", nargs="?", default=None, help="Catalog JSON (default: catalog.path from config)")
    imp.set_defaults(func=_cmd_import_catalog)

    # Raw strings: the same validation as the HTTP endpoint applies.
    near = sub.add_parser("nearby", help="Find places near a point, nearest first.")
    near.add_argument("--lat", required=True)
    near.add_argument("--lng", required=True)
    near.add_argument("--radius", default=None, help="Meters (default from config)")
    near.add_argument("--type", default=None, help="restaurant | mosque | all")
    near.add_argument("--backend", choices=["sql", "memory"], default=None)
    near.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    near.set_defaults(func=_cmd_nearby)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m halalmap.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
