"""Langflow flow-execution clients.

Two ways of reaching the flow that writes the answers:

- :class:`FlowGatewayClient` posts to a small gateway (``/run-flow``)
  that runs the flow and answers ``{success, message}`` or
  ``{success: false, error}``.
- :class:`LangflowClient` calls the Langflow run API directly and digs the
  chat message out of the nested ``outputs`` structure, draining the event
  stream first when streaming is enabled.

Both expose ``run_flow(input_value, session_id=None, tweaks=None)`` and
return a :class:`~supermind.datatypes.FlowResponse`.  Transport failures
propagate as :mod:`supermind.errors` upstream exceptions; a reply that
parses but reports failure comes back as ``FlowResponse(success=False)``.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from supermind.constants import FLOW_INPUT_TYPE, FLOW_OUTPUT_TYPE
from supermind.datatypes import FlowResponse
from supermind.errors import UpstreamError
from supermind.http_utils import iter_sse_events, post_json

logger = logging.getLogger(__name__)


# Per-component overrides sent with every run unless the caller passes its own.
DEFAULT_TWEAKS: dict[str, dict[str, Any]] = {
    "AstraDBToolComponent-YBisf": {},
    "ChatOutput-XO9ot": {},
    "ChatInput-UvPl5": {},
    "Prompt-3jA5s": {},
    "ParseData-ZLQnJ": {},
    "GroqModel-bU8Um": {},
}


class FlowGatewayClient:
    """Client for the ``/run-flow`` gateway in front of Langflow.

    Parameters
    ----------
    base_url:
        Gateway root, e.g. ``http://127.0.0.1:3000``.
    timeout:
        Per-call timeout in seconds; ``None`` uses ``timeout_s`` from config.
    """

    def __init__(self, base_url: str, timeout: float | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def run_flow(
        self,
        input_value: str,
        *,
        session_id: str | None = None,
        tweaks: dict[str, Any] | None = None,
    ) -> FlowResponse:
        payload: dict[str, Any] = {
            "inputValue": input_value,
            "inputType": FLOW_INPUT_TYPE,
            "outputType": FLOW_OUTPUT_TYPE,
            "stream": False,
            "tweaks": copy.deepcopy(tweaks if tweaks is not None else DEFAULT_TWEAKS),
        }
        if session_id:
            payload["sessionId"] = session_id

        data = post_json(f"{self._base_url}/run-flow", payload, timeout=self._timeout)
        return parse_gateway_reply(data)


def parse_gateway_reply(data: Any) -> FlowResponse:
    """Normalize a ``/run-flow`` reply into a FlowResponse."""
    if not isinstance(data, dict):
        raise UpstreamError("Gateway reply is not a JSON object")

    if not data.get("success", False):
        error = data.get("error") or data.get("details")
        return FlowResponse(success=False, error=str(error) if error else None)

    message = data.get("message")
    if isinstance(message, str):
        return FlowResponse(success=True, message=message)

    # Streaming runs come back as the raw Langflow response.
    if isinstance(data.get("response"), dict):
        return FlowResponse(success=True, message=extract_message_text(data["response"]))

    raise UpstreamError("Gateway reply carries no message text")


class LangflowClient:
    """Direct client for the Langflow ``/api/v1/run`` endpoint.

    Parameters
    ----------
    base_url:
        Langflow host root.
    langflow_id:
        Langflow workspace id (the ``/lf/<id>`` path segment).
    flow_id:
        Flow id or name to run.
    application_token:
        Bearer token for the API.
    stream:
        Request a streamed answer and drain it before returning.
    """

    def __init__(
        self,
        base_url: str,
        langflow_id: str,
        flow_id: str,
        application_token: str,
        *,
        stream: bool = False,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._langflow_id = langflow_id
        self._flow_id = flow_id
        self._token = application_token
        self._stream = stream
        self._timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    def run_flow(
        self,
        input_value: str,
        *,
        session_id: str | None = None,
        tweaks: dict[str, Any] | None = None,
    ) -> FlowResponse:
        url = f"{self._base_url}/lf/{self._langflow_id}/api/v1/run/{self._flow_id}"
        payload: dict[str, Any] = {
            "input_value": input_value,
            "input_type": FLOW_INPUT_TYPE,
            "output_type": FLOW_OUTPUT_TYPE,
            "tweaks": copy.deepcopy(tweaks if tweaks is not None else DEFAULT_TWEAKS),
        }
        if session_id:
            payload["session_id"] = session_id

        data = post_json(
            url,
            payload,
            headers=self._headers,
            params={"stream": str(self._stream).lower()},
            timeout=self._timeout,
        )

        if self._stream:
            stream_url = _find_stream_url(data)
            if stream_url:
                logger.info("Draining flow stream from %s", stream_url)
                return FlowResponse(success=True, message=self._drain_stream(stream_url))

        return FlowResponse(success=True, message=extract_message_text(data))

    def _drain_stream(self, stream_url: str) -> str:
        """Collect streamed chunks until the stream closes; return the final text."""
        chunks: list[str] = []
        final: str | None = None
        for event, data in iter_sse_events(stream_url, headers=self._headers, timeout=self._timeout):
            if event == "error":
                raise UpstreamError(f"Stream error: {data}")
            if not isinstance(data, dict):
                continue
            if isinstance(data.get("chunk"), str):
                chunks.append(data["chunk"])
            elif event == "end" or "message" in data:
                text = data.get("message")
                if isinstance(text, dict):
                    text = text.get("text")
                if isinstance(text, str):
                    final = text
        return final if final is not None else "".join(chunks)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _find_stream_url(data: Any) -> str | None:
    try:
        return data["outputs"][0]["outputs"][0]["artifacts"]["stream_url"]
    except (KeyError, IndexError, TypeError):
        return None


def extract_message_text(data: Any) -> str:
    """Navigate a Langflow run response down to the chat message text.

    Looks at ``outputs[0].outputs[0].outputs.message.message.text`` first,
    then ``results.message.text`` and ``artifacts.message``.

    Raises ``UpstreamError`` when no text can be found.
    """
    try:
        component = data["outputs"][0]["outputs"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError("Malformed flow response: no outputs") from exc

    candidates = (
        ("outputs", "message", "message", "text"),
        ("outputs", "message", "message"),
        ("results", "message", "text"),
        ("artifacts", "message"),
    )
    for path in candidates:
        node: Any = component
        for key in path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if isinstance(node, str):
            return node

    raise UpstreamError("Malformed flow response: no message text")
