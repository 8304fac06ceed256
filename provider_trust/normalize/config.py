"""
Configuration utilities for ProviderTrust.

Provides configuration loading and validation for the scorer, the profile
store and the audit log.
"""

import copy
import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/provider_trust.yaml"


def get_default_trust_config() -> Dict[str, Any]:
    """
    Get default ProviderTrust configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "scoring": {
            "field_threshold": 0.8,
            "field_thresholds": {},
            "global_threshold": 75.0,
            "mandatory_fields": ["registrationNumber"],
            "digit_fields": ["registrationNumber", "date"],
            "window_slack": 1,
            "max_window_tokens": 12
        },
        "storage": {
            "db_path": "data/providers.db"
        },
        "audit": {
            "db_path": "data/audit.db",
            "notification_field_limit": 3
        }
    }


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base_config)

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def load_trust_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from YAML file, merged over the defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    defaults = get_default_trust_config()
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return defaults

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return defaults

    logger.info(f"Loaded configuration from {config_path}")
    return merge_configs(defaults, config)


def _is_fraction(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


def validate_trust_config(config: Dict[str, Any]) -> bool:
    """
    Validate ProviderTrust configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["scoring", "storage", "audit"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    scoring = config["scoring"]
    if not _is_fraction(scoring.get("field_threshold", 0.8)):
        logger.error("scoring.field_threshold must be a number between 0 and 1")
        return False

    for field, threshold in scoring.get("field_thresholds", {}).items():
        if not _is_fraction(threshold):
            logger.error(f"scoring.field_thresholds.{field} must be a number between 0 and 1")
            return False

    global_threshold = scoring.get("global_threshold", 75.0)
    if not isinstance(global_threshold, (int, float)) or not 0 <= global_threshold <= 100:
        logger.error("scoring.global_threshold must be a number between 0 and 100")
        return False

    for key in ("mandatory_fields", "digit_fields"):
        if not isinstance(scoring.get(key, []), list):
            logger.error(f"scoring.{key} must be a list")
            return False

    for key in ("window_slack", "max_window_tokens"):
        value = scoring.get(key, 1)
        if not isinstance(value, int) or value < 0:
            logger.error(f"scoring.{key} must be a non-negative integer")
            return False

    limit = config["audit"].get("notification_field_limit", 3)
    if not isinstance(limit, int) or limit < 1:
        logger.error("audit.notification_field_limit must be a positive integer")
        return False

    logger.info("Configuration validation passed")
    return True


def save_trust_config(config: Dict[str, Any], config_path: str) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2)

        logger.info(f"Saved configuration to {config_path}")
        return True

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False
