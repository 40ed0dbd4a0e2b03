"""
Configuration module for the Kondate Shopping List Builder
==========================================================

This module centralizes all configuration for the pipeline that turns a week
of published daily-menu pages into one categorized shopping list:
- Menu pages (scraped over plain HTTP, one page per day)
- OpenRouter API (cloud LLM for ingredient aggregation, multi-model cascade)
- SQLite (one saved shopping list per week)

CONFIGURATION:
- data/config.yaml: Scraper, LLM cascade and retry settings
- data/secrets.yaml: Credentials (openrouter API key)

Usage:
    from config import CHAT_MODELS, RETRY_CONFIG, get_config_value

SETUP:
    1. data/config.yaml is created from config.yaml.example on first run
    2. Set OPENROUTER_API_KEY (env var or data/secrets.yaml)
"""

import os
import logging
import shutil
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml


# =============================================================================
# USER CONFIGURATION LOADING
# =============================================================================

# Project root directory (where this file lives)
PROJECT_ROOT = Path(__file__).parent

# Data directory - the canonical location for all runtime data
DATA_DIR = Path(os.getenv("KONDATE_DATA_DIR", str(PROJECT_ROOT / "data")))

CONFIG_PATH = DATA_DIR / "config.yaml"

SECRETS_PATH = DATA_DIR / "secrets.yaml"

EXAMPLE_CONFIG_PATH = PROJECT_ROOT / "config.yaml.example"


def _config_error(title: str, *details: str) -> str:
    lines = [f"\n{'='*60}", f"ERROR: {title}", f"{'='*60}"]
    lines.extend(details)
    lines.append(f"{'='*60}")
    return "\n".join(lines)


def _load_user_config() -> Dict[str, Any]:
    """
    Load user configuration from data/config.yaml.

    A missing config is created from config.yaml.example so a first run works
    without manual setup. Anything else that is wrong fails immediately.

    Returns:
        Dict containing user configuration

    Raises:
        FileNotFoundError: If neither config.yaml nor the example exist
        ValueError: If YAML is invalid or missing required sections
    """
    config_path = CONFIG_PATH

    if not config_path.exists():
        if EXAMPLE_CONFIG_PATH.exists():
            DATA_DIR.mkdir(parents=True, exist_ok=True)
            shutil.copy2(EXAMPLE_CONFIG_PATH, config_path)
            print(f"[config] Created {config_path} from config.yaml.example")
        else:
            raise FileNotFoundError(_config_error(
                "config.yaml not found",
                f"Expected location: {config_path}",
                f"Also missing: {EXAMPLE_CONFIG_PATH}",
                "Please reinstall or restore config.yaml.example.",
            ))

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(_config_error(
            "config.yaml has invalid YAML syntax",
            f"File: {config_path}",
            f"Error: {e}",
        )) from e

    if config is None:
        raise ValueError(_config_error(
            "config.yaml is empty",
            f"File: {config_path}",
            "Please copy config.yaml.example and customize it.",
        ))

    required_sections = ["scraper", "llm"]
    missing_sections = [s for s in required_sections if s not in config]
    if missing_sections:
        raise ValueError(_config_error(
            "config.yaml missing required sections",
            f"Missing: {missing_sections}",
            f"Required sections: {required_sections}",
        ))

    models = config["llm"].get("models")
    if not isinstance(models, list) or not models:
        raise ValueError(_config_error(
            "config.yaml llm.models must be a non-empty list",
        ))

    return config


# Load user config at module initialization (FAIL FAST)
USER_CONFIG = _load_user_config()

# Use standard logging for config.py (foundational module)
logger = logging.getLogger(__name__)


def get_config_value(section: str, key: str, default=None):
    """
    Get a configuration value by section and key with graceful degradation.

    Args:
        section: Configuration section name
        key: Configuration key name
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    try:
        section_config = USER_CONFIG.get(section) or {}
        return section_config.get(key, default)
    except Exception as e:
        logger.warning(f"⚠️  Configuration access failed for {section}.{key}: {e}")
        logger.warning(f"   Using default value: {default}")
        return default


# =============================================================================
# SECRETS
# =============================================================================
"""
Credentials live in data/secrets.yaml.
Environment variables take priority over file-based secrets.
"""


def load_secrets() -> Dict[str, Any]:
    """
    Load secrets from data/secrets.yaml.

    Returns:
        dict with key 'openrouter_api_key' (may be None).
        Returns empty dict if the file doesn't exist or can't be read.
    """
    if not SECRETS_PATH.exists():
        return {}

    try:
        with open(SECRETS_PATH, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        return {
            'openrouter_api_key': (data.get('openrouter') or {}).get('api_key'),
        }
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"⚠️ Failed to load secrets from {SECRETS_PATH}: {e}")
        return {}


def load_chat_api_key() -> Optional[str]:
    """
    Load OpenRouter API key from environment variable or secrets file.

    Priority order:
    1. Environment variable OPENROUTER_API_KEY
    2. File: data/secrets.yaml

    Returns:
        str: The API key if found, None otherwise
    """
    env_key = os.getenv("OPENROUTER_API_KEY", "").strip()
    if env_key:
        logger.debug("🔑 Using OPENROUTER_API_KEY from env var")
        return env_key

    file_key = load_secrets().get('openrouter_api_key')
    if file_key:
        logger.debug(f"🔑 Using OPENROUTER_API_KEY from {SECRETS_PATH}")
        return file_key

    logger.warning("⚠️ No OPENROUTER_API_KEY found in env var or data/secrets.yaml")
    return None


# =============================================================================
# CHAT LLM CONFIGURATION
# =============================================================================
"""
OpenRouter provides cloud LLM inference for ingredient aggregation.
Models are tried in order (cascade) until one returns a usable list.
"""

CHAT_API_URL = os.getenv("CHAT_API_URL", USER_CONFIG["llm"].get("api_url", "https://openrouter.ai/api/v1"))
CHAT_MODELS: List[str] = list(USER_CONFIG["llm"]["models"])
CHAT_TIMEOUT = USER_CONFIG["llm"].get("timeout", 120)  # seconds

RETRY_CONFIG = {
    "max_attempts": USER_CONFIG["llm"].get("max_attempts", 3),   # attempts per model
    "base_delay": USER_CONFIG["llm"].get("base_delay", 5.0),     # seconds before first retry
    "backoff_factor": USER_CONFIG["llm"].get("backoff_factor", 2.0),
}


# =============================================================================
# SCRAPER CONFIGURATION
# =============================================================================

SCRAPER_CONFIG = {
    "menu_url_template": get_config_value(
        "scraper", "menu_url_template",
        "https://www.lettuceclub.net/recipe/kondate/detail/k{date}/"),
    "date_pattern": get_config_value("scraper", "date_pattern", r"k(\d{8})"),
    "timeout": get_config_value("scraper", "timeout", 30),
    "max_concurrent": get_config_value("scraper", "max_concurrent", 5),
    "polite_delay": get_config_value("scraper", "polite_delay", 0.0),
    "days_per_week": get_config_value("scraper", "days_per_week", 5),
}

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================

DB_PATH = Path(get_config_value("storage", "db_path", str(DATA_DIR / "shopping_lists.db")))


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
"""Centralized logging configuration for all modules."""
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": get_config_value("logging", "console_level", "INFO"),
            "formatter": "standard",
            "stream": "ext://sys.stdout"
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "detailed",
            "filename": str(DATA_DIR / "logs" / "kondate.log"),
            "encoding": "utf-8",
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5
        }
    },
    "root": {
        "level": "DEBUG",
        "handlers": ["console", "file"]
    }
}
