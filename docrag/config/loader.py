"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into a deployment
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

The YAML file may be flat (``chunk_size: 400``) or grouped by section
(``chunking: {chunk_size: 400}``); groups are flattened before merging.
"""

from pathlib import Path

import yaml

from docrag.config.settings import Settings
from docrag.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> Settings:
    """Load YAML config and merge it under environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file. A missing file is not an error.

    Returns:
        Fully resolved Settings instance.

    Raises:
        ConfigurationError: If the YAML is unparseable or a value fails validation.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                message=f"Could not parse {config_path}: {exc}",
                provider_name="yaml",
            ) from exc
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"{config_path} must contain a mapping")

    try:
        settings = Settings()
        flat = _flatten(yaml_config)
        # Only fields the environment did not set are taken from YAML.
        yaml_values = {
            key: value
            for key, value in flat.items()
            if key in Settings.model_fields and key not in settings.model_fields_set
        }
        if not yaml_values:
            return settings
        return Settings(**yaml_values)
    except ValueError as exc:
        raise ConfigurationError(message=f"Invalid configuration: {exc}") from exc


def _flatten(config: dict) -> dict:
    """Flatten one level of section grouping into a single mapping."""
    flat: dict = {}
    for key, value in config.items():
        if isinstance(value, dict):
            flat.update(value)
        else:
            flat[key] = value
    return flat
