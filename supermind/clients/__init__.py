"""Upstream AI flow clients.

Available clients:
- ``FlowGatewayClient`` -- ``/run-flow`` gateway (default)
- ``LangflowClient``    -- direct Langflow run API (needs secrets)

Use :func:`create_flow_client` to build the one selected in config.
"""

from __future__ import annotations

from typing import Any

from supermind.clients.langflow import DEFAULT_TWEAKS, FlowGatewayClient, LangflowClient
from supermind.config_loader import get_global_config
from supermind.secrets_loader import load_secrets

__all__ = [
    "DEFAULT_TWEAKS",
    "FlowGatewayClient",
    "LangflowClient",
    "create_flow_client",
]


def create_flow_client(upstream: str | None = None) -> Any:
    """Build the flow client named by *upstream* (or ``upstream`` in config)."""
    cfg = get_global_config()
    kind = (upstream or cfg.get("upstream") or "gateway").lower()
    timeout = cfg.get("timeout_s")

    if kind == "langflow":
        secrets = load_secrets(require_langflow=True)
        return LangflowClient(
            base_url=secrets["LANGFLOW_BASE_URL"],
            langflow_id=secrets["LANGFLOW_ID"],
            flow_id=secrets["FLOW_ID"],
            application_token=secrets["APPLICATION_TOKEN"],
            stream=bool(cfg.get("stream", False)),
            timeout=timeout,
        )
    if kind != "gateway":
        raise ValueError(f"Unknown upstream kind: {kind!r}")

    secrets = load_secrets()
    return FlowGatewayClient(
        base_url=secrets.get("GATEWAY_URL") or cfg["gateway_url"],
        timeout=timeout,
    )
