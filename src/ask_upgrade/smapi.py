"""
Skill Management API (SMAPI) client.

Covers the calls the upgrade needs: exporting a skill package from a stage,
polling the export, and fetching the exported archive.
"""

import logging
import os
import time
from typing import Callable

import httpx

from . import constants
from .errors import SmapiError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull the service's message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text.strip()


class SmapiClient:
    """Thin synchronous SMAPI wrapper.

    Args:
        access_token: LWA access token sent as the Authorization header
        base_url: API root, defaults to ASK_SMAPI_SERVER_BASE_URL or the public endpoint
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (
            base_url
            or os.environ.get(constants.ENV_SMAPI_BASE_URL)
            or constants.DEFAULT_SMAPI_BASE_URL
        ).rstrip("/")
        self._transport = transport
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": access_token,
                "User-Agent": constants.USER_AGENT,
            },
            timeout=constants.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SmapiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise SmapiError(f"{method} {url} failed: {e}") from e
        logger.debug(
            "%s %s -> %d (request-id: %s)",
            method,
            url,
            response.status_code,
            response.headers.get("x-amzn-requestid", "-"),
        )
        if not response.is_success:
            raise SmapiError(
                f"[{response.status_code}] {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    def export_package(self, skill_id: str, stage: str) -> str:
        """Start a skill package export.

        Returns:
            The export id taken from the Location header
        """
        response = self._request("POST", f"/v1/skills/{skill_id}/stages/{stage}/exports")
        location = response.headers.get("location", "")
        export_id = location.rstrip("/").rsplit("/", 1)[-1]
        if not export_id:
            raise SmapiError(
                "Export response did not include a Location header.",
                status_code=response.status_code,
            )
        logger.info("Started export %s for skill %s (%s)", export_id, skill_id, stage)
        return export_id

    def get_export_status(self, export_id: str) -> dict:
        return self._request("GET", f"/v1/skills/exports/{export_id}").json()

    def poll_export(
        self,
        export_id: str,
        max_retries: int = constants.EXPORT_POLL_MAX_RETRIES,
        interval: float = constants.EXPORT_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> dict:
        """Poll an export until it succeeds.

        Raises:
            SmapiError: If the export fails or does not finish in time
        """
        for attempt in range(1, max_retries + 1):
            status = self.get_export_status(export_id)
            state = status.get("status")
            logger.debug("Export %s status %s (attempt %d)", export_id, state, attempt)
            if state == "SUCCEEDED":
                return status
            if state == "FAILED":
                errors = status.get("errors") or []
                detail = "; ".join(str(e.get("message", e)) for e in errors) or "unknown reason"
                raise SmapiError(f"Skill package export {export_id} failed: {detail}")
            sleep(interval)
        raise SmapiError(
            f"Timed out waiting for skill package export {export_id} after {max_retries} checks."
        )

    def download(self, url: str) -> bytes:
        """Fetch an exported archive from its presigned location."""
        logger.debug("GET %s", url.split("?", 1)[0])
        try:
            # Presigned URLs reject the SMAPI Authorization header
            with httpx.Client(
                timeout=constants.HTTP_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise SmapiError(f"Failed to download skill package: {e}") from e
        if not response.is_success:
            raise SmapiError(
                f"Failed to download skill package [{response.status_code}].",
                status_code=response.status_code,
            )
        return response.content
