"""Best-effort check for a newer workspace-agents release on PyPI."""

from __future__ import annotations

import logging
import os
import ssl
from dataclasses import dataclass

import httpx
import truststore
from packaging.version import InvalidVersion, Version

logger = logging.getLogger(__name__)

PYPI_URL = "https://pypi.org/pypi/workspace-agents/json"
DEFAULT_TIMEOUT = 2.0
NO_UPDATE_CHECK_ENV = "WORKSPACE_AGENTS_NO_UPDATE_CHECK"


@dataclass(frozen=True)
class UpdateInfo:
    current: str
    latest: str
    available: bool


def is_newer(latest: str, current: str) -> bool:
    """True when *latest* is a strictly higher version than *current*."""
    try:
        return Version(latest) > Version(current)
    except InvalidVersion:
        return False


def update_check_disabled() -> bool:
    return os.environ.get(NO_UPDATE_CHECK_ENV, "").strip().lower() in {"1", "true", "yes"}


def fetch_latest_version(client: httpx.Client, timeout: float = DEFAULT_TIMEOUT) -> str:
    response = client.get(PYPI_URL, timeout=timeout)
    response.raise_for_status()
    return response.json()["info"]["version"]


def check_for_update(
    current: str,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> UpdateInfo:
    """Ask PyPI for the latest release.

    Any network, timeout, or parse error is swallowed and reported as "no
    update available"; the check must never hold up the main flow for longer
    than *timeout*.
    """
    owns_client = client is None
    if client is None:
        ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        client = httpx.Client(verify=ssl_context)
    try:
        latest = fetch_latest_version(client, timeout=timeout)
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
        logger.debug("Update check skipped: %s", exc)
        return UpdateInfo(current=current, latest=current, available=False)
    finally:
        if owns_client:
            client.close()

    return UpdateInfo(current=current, latest=latest, available=is_newer(latest, current))


__all__ = [
    "NO_UPDATE_CHECK_ENV",
    "PYPI_URL",
    "UpdateInfo",
    "check_for_update",
    "fetch_latest_version",
    "is_newer",
    "update_check_disabled",
]
