"""
Configuration entry point.

Loads ``.env`` into the environment, then the YAML configuration file
(whose values may reference those variables). Falls back to defaults when
no configuration file exists.
"""

import logging

from dotenv import load_dotenv

from .config_loader import load_app_config
from .models import AppConfig

logger = logging.getLogger(__name__)

load_dotenv()


def get_config() -> AppConfig:
    """Get the application configuration."""
    try:
        return load_app_config()
    except FileNotFoundError as e:
        logger.info("%s Using built-in defaults.", e)
        return AppConfig()


# Global config instance
config = get_config()
