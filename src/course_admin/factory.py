"""Database client factory.

Resolves the active profile from ``course_admin.toml`` and builds an
adapter for it.

Profile resolution order:
1. Explicit ``profile_name`` argument (``--profile`` on the CLI)
2. ``{env_prefix}DB_PROFILE`` environment variable
3. ``default_profile`` key in the config file
"""

import logging
import os
from urllib.parse import quote

from course_admin.adapters.base import DatabaseClient
from course_admin.adapters.postgres import AsyncPostgresAdapter
from course_admin.config.loader import load_config
from course_admin.config.models import AppConfig, DatabaseProfile

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def get_active_profile_name(
    config: AppConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> str:
    """Get the active profile name.

    Args:
        config: Loaded application config.
        profile_name: Explicit profile name, wins over everything else.
        env_prefix: Prefix for the environment variable lookup
            (``"APP_"`` reads ``APP_DB_PROFILE``).

    Returns:
        Profile name.

    Raises:
        ProfileNotFoundError: If no profile is configured.
    """
    if profile_name:
        return profile_name

    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    if config.default_profile:
        return config.default_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_prefix}DB_PROFILE=<name>, pass --profile, or add "
        "default_profile to the config file."
    )


def get_active_profile(
    config: AppConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and its configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or the name is
            not defined in the config file.
    """
    name = get_active_profile_name(config, profile_name, env_prefix)

    if name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in config. Available: {available}"
        )

    return name, config.profiles[name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config.

    Returns:
        Connection URL with the ``[YOUR-PASSWORD]`` placeholder replaced
        by the URL-quoted ``db_password``.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: AppConfig | None = None,
) -> DatabaseClient:
    """Create a database adapter for the active profile.

    Args:
        profile_name: Explicit profile name.
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable.
        config: Already-loaded config.  Loaded from the working directory
            when ``None``.

    Returns:
        ``AsyncPostgresAdapter`` bound to the profile URL.

    Raises:
        ProfileNotFoundError: If no usable profile is configured.
        ValueError: If the profile names an unsupported provider.
    """
    if config is None:
        config = load_config()

    name, profile = get_active_profile(config, profile_name, env_prefix)

    if profile.provider != "postgres":
        raise ValueError(
            f"Profile '{name}' uses unsupported provider '{profile.provider}'"
        )

    logger.debug("Creating adapter for profile %s", name)
    return AsyncPostgresAdapter(database_url=resolve_url(profile))
