"""
Service account credentials for Google Drive.

Credentials come from Django settings: SERVICE_ACCOUNT_JSON holds the key
JSON inline, SERVICE_ACCOUNT_FILE points at a key file. Inline JSON wins
when both are set.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from django.conf import settings

from vaultsync.exceptions import ConfigError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("client_email", "private_key", "token_uri")


def _parse(raw: str, source: str) -> dict:
    """Parse and sanity-check service account JSON."""
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid service account JSON in {source}: {e}") from e

    if not isinstance(info, dict):
        raise ConfigError(f"Service account JSON in {source} is not an object")

    missing = [key for key in REQUIRED_KEYS if not info.get(key)]
    if missing:
        raise ConfigError(
            f"Service account JSON in {source} is missing: {', '.join(missing)}"
        )
    return info


def load_service_account_info() -> dict:
    """
    Load service account info from settings.

    Returns:
        Dict suitable for service_account.Credentials.from_service_account_info

    Raises:
        ConfigError: If no credentials are configured or they are malformed
    """
    inline = getattr(settings, "SERVICE_ACCOUNT_JSON", None)
    if inline:
        return _parse(inline, "SERVICE_ACCOUNT_JSON")

    key_file = getattr(settings, "SERVICE_ACCOUNT_FILE", None)
    if key_file:
        path = Path(key_file)
        try:
            raw = path.read_text()
        except OSError as e:
            logger.error(f"Failed to read service account file: {e}")
            raise ConfigError(f"Failed to read service account file {path}: {e}") from e
        return _parse(raw, str(path))

    raise ConfigError(
        "Missing Google credentials: set SERVICE_ACCOUNT_JSON or SERVICE_ACCOUNT_FILE"
    )
