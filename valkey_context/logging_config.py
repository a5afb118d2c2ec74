from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional


def configure_logging(config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging for command line use.

    The host application normally owns logging; this is only used by the
    operator CLI. The level comes from `log_level` in the YAML config when
    present, defaulting to WARNING. Returns a module logger for the caller.
    """
    level = logging.WARNING

    if config_path is not None and config_path.exists():
        try:
            with config_path.open('r', encoding='utf-8') as _f:
                _cfg = yaml.safe_load(_f) or {}
            _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
            if isinstance(_lvl, str):
                _numeric = getattr(logging, _lvl.upper(), None)
                if isinstance(_numeric, int):
                    level = _numeric
        except yaml.YAMLError:
            # The config loader reports parse errors; keep the default level here
            level = logging.WARNING

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logger = logging.getLogger(__name__)

    # Keep the client library quiet by default
    logging.getLogger('redis').setLevel(logging.WARNING)
    logger.debug("Log level set to: %s", logging.getLevelName(level))

    return logger
