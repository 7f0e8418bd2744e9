"""
Profile resolution against the ask CLI config (~/.ask/cli_config).

The CLI config is a JSON document keyed by profile name:

    {"profiles": {"default": {"token": {...}, "vendor_id": "..."}}}

Credentials can also come from the environment, in which case the
runtime profile is the reserved environment profile.
"""

import json
import logging
import os
from pathlib import Path

from . import constants
from .errors import ConfigError, ProfileError

logger = logging.getLogger(__name__)


def get_cli_config_path() -> Path:
    """Return the absolute path of the ask CLI config file."""
    return Path.home() / constants.CLI_CONFIG_DIR / constants.CLI_CONFIG_FILE


def load_cli_config() -> dict:
    """Load the ask CLI config.

    Raises:
        ConfigError: If the file is missing or not valid JSON
    """
    config_path = get_cli_config_path()
    if not config_path.is_file():
        raise ConfigError(
            f"The CLI config file is not found at {config_path}. "
            "Please run 'ask configure' to set up a profile."
        )
    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse CLI config file {config_path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"CLI config file {config_path} must contain a JSON object.")
    return config


def save_cli_config(config: dict) -> None:
    """Write the ask CLI config back to disk."""
    config_path = get_cli_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")


def get_profile_config(profile: str) -> dict | None:
    """Return the CLI config entry for a profile, or None if absent."""
    profiles = load_cli_config().get("profiles") or {}
    entry = profiles.get(profile)
    return entry if isinstance(entry, dict) else None


def _find_env_profile() -> str | None:
    if os.environ.get(constants.ENV_DEFAULT_PROFILE, "").strip():
        return os.environ[constants.ENV_DEFAULT_PROFILE].strip()
    if os.environ.get(constants.ENV_REFRESH_TOKEN) and os.environ.get(constants.ENV_VENDOR_ID):
        return constants.ENVIRONMENT_PROFILE
    return None


def runtime_profile(profile: str | None) -> str:
    """Resolve the profile the command runs with.

    Order: explicit --profile, ASK_DEFAULT_PROFILE, environment credentials,
    then "default". Named profiles must exist in the CLI config.

    Raises:
        ProfileError: If the name is blank or not configured
    """
    if profile is not None:
        resolved = profile.strip()
    else:
        resolved = _find_env_profile() or constants.DEFAULT_PROFILE

    if not resolved:
        raise ProfileError("Profile name must be a non-empty string.")

    if resolved == constants.ENVIRONMENT_PROFILE:
        logger.debug("Using credentials from environment variables")
        return resolved

    try:
        entry = get_profile_config(resolved)
    except ConfigError as e:
        raise ProfileError(f"Cannot resolve profile [{resolved}]. {e}") from e
    if entry is None:
        raise ProfileError(f"Cannot resolve profile [{resolved}]")

    logger.debug("Resolved runtime profile %s", resolved)
    return resolved
