# src/halalmap/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance, installs CORS and the validation error handler, and
creates the schema on startup. Business logic lives in `halalmap.search` and `halalmap.storage`.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from halalmap.config.settings import get_settings
from halalmap.core.logging import configure_logging

from .admin import router as admin_router
from .deps import get_database, get_spatial_engine, reset_caches
from .routes import router

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    # Admin writes always go to SQL, whichever backend serves searches.
    get_database().create_all()
    if settings.storage.backend == "memory":
        get_spatial_engine()
    logger.info("HalalMap API ready (storage=%s)", settings.storage.backend)
    yield
    reset_caches()


app = FastAPI(title="HalalMap Georgia API", version="0.1.0", lifespan=lifespan)

# Configure via env:
# - HALALMAP_CORS_ORIGINS="http://localhost:3000,http://127.0.0.1:3000"
# - HALALMAP_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("HALALMAP_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("HALALMAP_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies come back as 400 with the same detail shape as other errors."""
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in {"body", "query", "path"}),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    first = errors[0] if errors else {"field": None, "message": "Invalid request"}
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "code": "VALIDATION_ERROR",
                "field": first["field"] or None,
                "message": first["message"],
                "errors": errors,
            }
        },
    )


app.include_router(router)
app.include_router(admin_router)
