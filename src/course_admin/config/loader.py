"""Configuration loader for course_admin.toml."""

import tomllib
from pathlib import Path

from course_admin.config.models import AppConfig

CONFIG_FILENAME = "course_admin.toml"


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from a TOML file.

    Args:
        config_path: Path to the config file (default: ``Path.cwd() /
            "course_admin.toml"``).

    Returns:
        AppConfig with profiles, form processor and edition settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If a section holds invalid values.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found: {config_path}\n"
            f"Create {CONFIG_FILENAME} with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return AppConfig.model_validate(data)
