"""Shared HTTP utilities with error categorisation and request logging.

Every upstream client routes requests through this module so failures are
translated into the same taxonomy (:mod:`supermind.errors`) and every call
lands in one audit log.  Calls are made exactly once: the flow engine is
not idempotent, so nothing here retries.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections import deque
from typing import Any, Iterator

import requests

from supermind.config_loader import get_global_config
from supermind.errors import (
    UpstreamError,
    UpstreamReportedError,
    UpstreamTimeout,
    UpstreamUnreachable,
)

logger = logging.getLogger(__name__)

# Module-level request log (populated as requests are made, oldest dropped first).
REQUEST_LOG_LIMIT = 500
_request_log: deque[dict[str, Any]] = deque(maxlen=REQUEST_LOG_LIMIT)

_DETAIL_KEYS = ("error", "detail", "message")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sanitise_url(url: str) -> str:
    """Strip tokens and keys from a URL before logging."""
    return re.sub(r"((?:apikey|key|token)=)[^&]+", r"\1***", url)


def _timeout() -> float:
    return float(get_global_config().get("timeout_s", 60))


def _log_request(url: str, status: int | None, t0: float, error: str | None = None) -> None:
    entry: dict[str, Any] = {
        "url": _sanitise_url(url),
        "status": status,
        "elapsed_s": round(time.time() - t0, 3),
    }
    if error:
        entry["error"] = error
    _request_log.append(entry)


def extract_error_detail(body: Any) -> str:
    """Pull a human-readable failure detail out of a JSON error body."""
    if isinstance(body, dict):
        for key in _DETAIL_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                nested = extract_error_detail(value)
                if nested:
                    return nested
    if isinstance(body, str):
        return body.strip()[:200]
    return ""


def _raise_for_transport(exc: requests.RequestException) -> None:
    # Timeout is checked first: ConnectTimeout is also a ConnectionError.
    if isinstance(exc, requests.Timeout):
        raise UpstreamTimeout(str(exc)) from exc
    if isinstance(exc, requests.ConnectionError):
        raise UpstreamUnreachable(str(exc)) from exc
    raise UpstreamError(str(exc)) from exc


# ---------------------------------------------------------------------------
# POST with JSON body
# ---------------------------------------------------------------------------

def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> Any:
    """POST *payload* as JSON and return the decoded JSON reply.

    Raises
    ------
    UpstreamTimeout
        The call exceeded *timeout* (defaults to ``timeout_s`` from config).
    UpstreamUnreachable
        Connection-level failure.
    UpstreamReportedError
        Non-2xx status; ``detail`` comes from the JSON body when present.
    UpstreamError
        The reply was not valid JSON.
    """
    t0 = time.time()
    try:
        resp = requests.post(
            url,
            json=payload,
            headers=headers,
            params=params,
            timeout=timeout if timeout is not None else _timeout(),
        )
    except requests.RequestException as exc:
        _log_request(url, None, t0, error=type(exc).__name__)
        logger.warning("Request to %s failed: %s", _sanitise_url(url), exc)
        _raise_for_transport(exc)

    _log_request(url, resp.status_code, t0)

    try:
        body = resp.json()
    except ValueError:
        body = None

    if not resp.ok:
        detail = extract_error_detail(body if body is not None else resp.text)
        logger.warning(
            "HTTP %d from %s: %s", resp.status_code, _sanitise_url(url), detail or "-",
        )
        raise UpstreamReportedError(resp.status_code, detail)

    if body is None:
        raise UpstreamError(f"Non-JSON response from {_sanitise_url(url)}")
    return body


# ---------------------------------------------------------------------------
# Server-sent events
# ---------------------------------------------------------------------------

def iter_sse_events(
    url: str,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> Iterator[tuple[str, Any]]:
    """Yield ``(event, data)`` pairs from a server-sent event stream.

    ``event`` defaults to ``"message"``; ``data`` is JSON-decoded when
    possible and returned as a string otherwise.  Iteration stops at the
    end of the stream or on a ``close`` event.
    """
    t0 = time.time()
    try:
        resp = requests.get(
            url,
            headers={**(headers or {}), "Accept": "text/event-stream"},
            stream=True,
            timeout=timeout if timeout is not None else _timeout(),
        )
    except requests.RequestException as exc:
        _log_request(url, None, t0, error=type(exc).__name__)
        _raise_for_transport(exc)

    _log_request(url, resp.status_code, t0)
    if not resp.ok:
        raise UpstreamReportedError(resp.status_code, extract_error_detail(resp.text))

    event = "message"
    data_lines: list[str] = []
    try:
        for raw in resp.iter_lines(decode_unicode=True):
            line = raw or ""
            if not line:
                if data_lines:
                    data = "\n".join(data_lines)
                    try:
                        yield event, json.loads(data)
                    except ValueError:
                        yield event, data
                if event == "close":
                    return
                event, data_lines = "message", []
                continue
            if line.startswith(":"):
                continue
            field_name, _, value = line.partition(":")
            value = value[1:] if value.startswith(" ") else value
            if field_name == "event":
                event = value
            elif field_name == "data":
                data_lines.append(value)
        if data_lines:
            data = "\n".join(data_lines)
            try:
                yield event, json.loads(data)
            except ValueError:
                yield event, data
    except requests.RequestException as exc:
        _raise_for_transport(exc)
    finally:
        resp.close()


# ---------------------------------------------------------------------------
# Request log accessors
# ---------------------------------------------------------------------------

def get_request_log() -> list[dict[str, Any]]:
    """Return a copy of the accumulated request log."""
    return list(_request_log)


def clear_request_log() -> None:
    """Reset the request log (useful between test runs)."""
    _request_log.clear()
