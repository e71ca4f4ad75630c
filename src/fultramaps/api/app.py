# src/fultramaps/api/app.py
"""
FastAPI application wiring.

Creates the `FastAPI` instance the mobile client talks to and configures CORS
for its web/dev server. Endpoint logic lives in `fultramaps.api.routes` and
`fultramaps.services.maps`.

Run with: `uvicorn fultramaps.api.app:app`
"""

from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from fultramaps.config.settings import get_settings
from fultramaps.core.logging import configure_logging

from .routes import router

# Expo's web dev server and Metro bundler run on localhost.
_LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _cors_options() -> dict[str, Any] | None:
    """CORS settings from env, or None to skip the middleware.

    - FULTRAMAPS_CORS_ORIGINS="https://app.example.com,http://localhost:19006"
    - FULTRAMAPS_CORS_ALLOW_LOCAL=0 disables the localhost allowance used when no origins are listed
    """
    origins = [s.strip() for s in os.getenv("FULTRAMAPS_CORS_ORIGINS", "").split(",") if s.strip()]
    allow_local = os.getenv("FULTRAMAPS_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
    if origins:
        return {"allow_origins": origins}
    if allow_local:
        return {"allow_origins": [], "allow_origin_regex": _LOCAL_ORIGIN_REGEX}
    return None


configure_logging()

app = FastAPI(title="Fultra Maps API", version="0.1.0")

cors = _cors_options()
if cors is not None:
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        **cors,
    )

app.include_router(router)


@app.get("/healthz")
def healthz() -> dict:
    """Liveness check; reports which provider the server is configured for."""
    return {"status": "ok", "provider": get_settings().maps.provider}
