import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.config.models import LoggingSettings, Settings

CONFIG_PATH_ENV = "NEWSLETTER_CONFIG"
DEFAULT_CONFIG_FILE = "configuration.yaml"

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NEWSLETTER_BASE_URL": ("application", "base_url"),
    "NEWSLETTER_PORT": ("application", "port"),
    "NEWSLETTER_EMAIL_AUTHORIZATION_TOKEN": ("email_client", "authorization_token"),
    "NEWSLETTER_LOG_LEVEL": ("logging", "level"),
}


def resolve_config_path(path: Path | None = None) -> Path:
    """Explicit path, else $NEWSLETTER_CONFIG, else ./configuration.yaml."""
    if path is not None:
        return path
    return Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_FILE))


def _apply_env_overrides(data: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    for env_var, (section, key) in ENV_OVERRIDES.items():
        if env_var in environ:
            data.setdefault(section, {})[key] = environ[env_var]

    # Data dir keeps the configured file name, only moves its directory
    data_dir = environ.get("NEWSLETTER_DATA_DIR")
    if data_dir:
        database = data.setdefault("database", {})
        filename = Path(database.get("path", "newsletter.db")).name
        database["path"] = str(Path(data_dir) / filename)
    return data


def load_settings(path: Path | None = None, environ: dict[str, str] | None = None) -> Settings:
    """
    Load and validate the configuration file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {config_path}")

    with open(config_path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in configuration file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    data = _apply_env_overrides(data, dict(os.environ) if environ is None else environ)

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e


def configure_logging(settings: LoggingSettings) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=settings.level, format=settings.format, force=True)
