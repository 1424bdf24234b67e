"""Load upstream credentials from a ``.env`` file or environment variables.

For local development the ``.env`` file in the project root is loaded
first (without overriding variables already set), then the environment is
read.  Langflow credentials are only required when the direct Langflow
client is used; the gateway client needs none.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Required for the direct Langflow client.
_LANGFLOW_KEYS = ("LANGFLOW_BASE_URL", "LANGFLOW_ID", "FLOW_ID", "APPLICATION_TOKEN")

# Optional -- falls back to config when absent.
_OPTIONAL_KEYS = ("GATEWAY_URL",)


def _load_dotenv() -> None:
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=False)
    logger.info("Loaded environment from %s", env_path)


def _load_from_env() -> dict[str, str]:
    secrets: dict[str, str] = {}
    for key in (*_LANGFLOW_KEYS, *_OPTIONAL_KEYS):
        value = os.environ.get(key)
        if value:
            secrets[key] = value
    return secrets


def load_secrets(require_langflow: bool = False) -> dict[str, str]:
    """Return a dict of upstream secrets.

    Raises ``SystemExit`` with a clear message if ``require_langflow`` is
    set and any Langflow key is missing.
    """
    _load_dotenv()
    secrets = _load_from_env()

    if require_langflow:
        missing = [k for k in _LANGFLOW_KEYS if k not in secrets]
        if missing:
            msg = (
                "Missing required Langflow settings: %s. "
                "Set them in .env or as environment variables."
            )
            logger.critical(msg, ", ".join(missing))
            raise SystemExit(msg % ", ".join(missing))

    return secrets
