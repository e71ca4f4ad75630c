"""
HTTP helpers.

Every provider call (geocoding, places, routing) is a GET that returns JSON, so
this module exposes just `get_json`. Non-2xx responses raise; each provider
client maps the failure onto its own result shape.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "fultramaps/0.1.0"

# Query parameters that carry credentials and must never reach the logs.
_SECRET_PARAMS = frozenset({"key", "apiKey"})


def redact_params(params: dict[str, Any] | None) -> dict[str, Any]:
    return {k: ("***" if k in _SECRET_PARAMS else v) for k, v in (params or {}).items()}


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """GET `url` and return the decoded JSON body.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json", **(headers or {})}
    logger.debug("GET %s %s", url, redact_params(params))
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.get(url, params=params, headers=request_headers)
        resp.raise_for_status()
        return resp.json()
