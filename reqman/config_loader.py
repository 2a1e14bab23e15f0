"""
Configuration loading utilities for Reqman.

Loads config.yaml, merges it over defaults and configures logging.
"""

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("config.yaml")

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'Reqman',
            'version': '1.0.0'
        },
        'database': {
            'path': 'data/records.toml',
            'schema_path': None
        },
        'logging': {
            'level': 'INFO',
            'format': DEFAULT_LOG_FORMAT
        },
        'ui': {
            'page_title': 'Reqman',
            'page_size': 50
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Falls back to defaults when the file is missing, empty, not a mapping
    or not valid YAML.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = CONFIG_FILE

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config
    except OSError as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    if user_config is None:
        logger.warning(f"Configuration file is empty: {config_path}")
        return default_config

    if not isinstance(user_config, dict):
        logger.error(f"Configuration file is not a valid dictionary: {config_path}")
        logger.info("Using default configuration")
        return default_config

    config = deep_merge(default_config, user_config)
    logger.info(f"Successfully loaded configuration from {config_path}")
    return config


def get_config_value(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        config: Configuration dictionary
        section: Configuration section (e.g., 'database', 'ui')
        key: Configuration key within section
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    section_values = config.get(section)
    if not isinstance(section_values, dict):
        return default
    value = section_values.get(key)
    return default if value is None else value


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration structure.

    Returns:
        List of problems (empty if the configuration is usable)
    """
    problems = []

    database = config.get('database')
    if not isinstance(database, dict):
        problems.append("Section 'database' must be a mapping")
    else:
        if not isinstance(database.get('path'), str) or not database.get('path', '').strip():
            problems.append("database.path must be a non-empty string")
        schema_path = database.get('schema_path')
        if schema_path is not None and not isinstance(schema_path, str):
            problems.append("database.schema_path must be a string")

    logging_config = config.get('logging', {})
    if isinstance(logging_config, dict):
        level = logging_config.get('level', 'INFO')
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            problems.append(f"logging.level must be one of: {', '.join(LOG_LEVELS)}")
    else:
        problems.append("Section 'logging' must be a mapping")

    ui = config.get('ui', {})
    if isinstance(ui, dict):
        page_size = ui.get('page_size', 50)
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
            problems.append("ui.page_size must be a positive integer")

    for problem in problems:
        logger.warning(f"Configuration problem: {problem}")
    return problems


def get_logging_level(level_str: Any) -> int:
    """Map string logging level to logging constant."""
    if not isinstance(level_str, str):
        return logging.INFO
    return LOG_LEVELS.get(level_str.upper(), logging.INFO)


def configure_logging(config: Dict[str, Any]) -> int:
    """
    Configure root logging from the 'logging' section.

    Returns:
        The logging level that was applied
    """
    level = get_logging_level(get_config_value(config, 'logging', 'level', 'INFO'))
    log_format = get_config_value(config, 'logging', 'format', DEFAULT_LOG_FORMAT)
    logging.basicConfig(level=level, format=log_format)
    logger.info(f"Logging configured to level: {logging.getLevelName(level)}")
    return level
