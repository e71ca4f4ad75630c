"""
Logging setup for the API server and the CLI.

The packaged `config/logging.yaml` is the base; `app.log_level`
(`FULTRAMAPS_LOG_LEVEL`) sets the root and handler levels. The httpx logger
stays at WARNING whatever the level, since its request lines include the
provider key in the query string. `fultramaps.core.http` logs requests with
the key redacted instead.
"""

from __future__ import annotations

import copy
import logging.config

from fultramaps.config.settings import get_logging_config, get_settings


def configure_logging() -> None:
    """Apply the YAML logging config with the configured level."""
    config = copy.deepcopy(get_logging_config())
    level = get_settings().app.log_level.upper()

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
