"""
Logging configuration.

We use a YAML logging config (`src/geowhisper/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `GEOWHISPER_LOG_LEVEL`).

Library modules only ever call `logging.getLogger(__name__)`; configuring
handlers is left to entrypoints (the CLI calls `configure_logging()`).
"""

from __future__ import annotations

import copy
import logging.config

from geowhisper.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Configure logging from the packaged YAML config, at `level` or the settings level."""
    # The loaded config is cached; never mutate the shared copy.
    config = copy.deepcopy(get_logging_config())
    level = (level or get_settings().app.log_level).upper()

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
