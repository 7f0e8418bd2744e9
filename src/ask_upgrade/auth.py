"""
Access token resolution for SMAPI calls.

Tokens come either from the environment (ASK_ACCESS_TOKEN / ASK_REFRESH_TOKEN)
or from the profile's stored LWA token, refreshed when expired.
"""

import logging
import os
from datetime import datetime, timedelta, timezone

import httpx

from . import constants
from .errors import ProfileError
from .profile import get_profile_config, load_cli_config, save_cli_config

logger = logging.getLogger(__name__)


def _is_expired(expires_at: str | None) -> bool:
    """Return True if an ISO-8601 expiry timestamp is in the past."""
    if not expires_at:
        return False
    try:
        expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable token expiry %r, treating as expired", expires_at)
        return True
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry <= datetime.now(timezone.utc)


def refresh_token(refresh: str, client: httpx.Client | None = None) -> dict:
    """Exchange a refresh token for a new LWA token.

    Returns:
        Token dict with access_token, refresh_token, token_type, expires_in
        and an absolute expires_at

    Raises:
        ProfileError: If client credentials are missing or LWA rejects the call
    """
    client_id = os.environ.get(constants.ENV_LWA_CLIENT_ID, "")
    client_secret = os.environ.get(constants.ENV_LWA_CLIENT_CONFIRMATION, "")
    if not client_id or not client_secret:
        raise ProfileError(
            f"The access token has expired. Set {constants.ENV_LWA_CLIENT_ID} and "
            f"{constants.ENV_LWA_CLIENT_CONFIRMATION} to refresh it, or run 'ask configure'."
        )

    host = os.environ.get(constants.ENV_LWA_TOKEN_HOST, constants.DEFAULT_LWA_TOKEN_HOST)
    url = host.rstrip("/") + constants.LWA_TOKEN_PATH
    form = {
        "grant_type": "refresh_token",
        "refresh_token": refresh,
        "client_id": client_id,
        "client_secret": client_secret,
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=constants.HTTP_TIMEOUT_SECONDS)
    try:
        logger.debug("POST %s", url)
        response = http.post(url, data=form)
    except httpx.HTTPError as e:
        raise ProfileError(f"Failed to refresh access token: {e}") from e
    finally:
        if owns_client:
            http.close()

    logger.debug("POST %s -> %d", url, response.status_code)
    if response.status_code != 200:
        raise ProfileError(
            f"Failed to refresh access token (status {response.status_code}): {response.text}"
        )

    token = response.json()
    token.setdefault("refresh_token", refresh)
    expires_in = int(token.get("expires_in", 3600))
    token["expires_at"] = (
        datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    ).isoformat()
    return token


def resolve_access_token(profile: str, client: httpx.Client | None = None) -> str:
    """Return a usable access token for the profile.

    Expired profile tokens are refreshed and written back to the CLI config.

    Raises:
        ProfileError: If no token can be produced
    """
    if profile == constants.ENVIRONMENT_PROFILE:
        access = os.environ.get(constants.ENV_ACCESS_TOKEN)
        if access:
            return access
        refresh = os.environ.get(constants.ENV_REFRESH_TOKEN)
        if not refresh:
            raise ProfileError(
                f"Neither {constants.ENV_ACCESS_TOKEN} nor {constants.ENV_REFRESH_TOKEN} is set."
            )
        return refresh_token(refresh, client)["access_token"]

    entry = get_profile_config(profile)
    token = (entry or {}).get("token") or {}
    access = token.get("access_token")
    if access and not _is_expired(token.get("expires_at")):
        return access

    refresh = token.get("refresh_token")
    if not refresh:
        raise ProfileError(
            f"No valid token found for profile [{profile}]. Please run 'ask configure'."
        )

    logger.info("Access token for profile %s expired, refreshing", profile)
    new_token = refresh_token(refresh, client)

    config = load_cli_config()
    config.setdefault("profiles", {}).setdefault(profile, {})["token"] = new_token
    save_cli_config(config)
    return new_token["access_token"]
