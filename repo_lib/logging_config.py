from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional


def configure_logging(config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging.

    The level comes from the `log_level` key of the YAML repository config
    when present, WARNING otherwise. Returns a module logger for the caller.
    """
    DEFAULT_LOG_LEVEL = logging.WARNING

    cfg_path = Path(config_path) if config_path else Path('data/config/repo_config.yml')
    if cfg_path.exists():
        try:
            with cfg_path.open('r', encoding='utf-8') as _f:
                _cfg = yaml.safe_load(_f) or {}
                _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
                if _lvl:
                    DEFAULT_LOG_LEVEL = getattr(logging, str(_lvl).upper(), logging.WARNING)
        except (OSError, yaml.YAMLError):
            # If config parse fails, fall back to default level
            DEFAULT_LOG_LEVEL = logging.WARNING

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=DEFAULT_LOG_LEVEL, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logger = logging.getLogger(__name__)

    # Keep the redis client quiet by default
    logging.getLogger('redis').setLevel(logging.WARNING)
    logger.info("Log level set to %s", logging.getLevelName(DEFAULT_LOG_LEVEL))

    return logger
