"""Report Orchestrator -- one question in, one ReportResult out.

Sequence for a single exchange:

1. Reject an empty query (no upstream call, no session change).
2. Take the session's single-writer slot.
3. Record a PENDING placeholder turn.
4. Run the flow once (no retries).
5. Extract visualizations, then render the requested format.
6. Replace the placeholder with the final turn, success or failure.

Every failure becomes an ERROR result carrying a fixed user-facing message;
nothing raised inside the pipeline crosses :meth:`ReportOrchestrator.generate`.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol

import requests

from supermind.config_loader import get_global_config
from supermind.constants import (
    MSG_CONNECTIVITY,
    MSG_INVALID_QUERY,
    MSG_PENDING,
    MSG_SERVER_ERROR_GENERIC,
    MSG_SERVER_ERROR_PREFIX,
    MSG_SESSION_BUSY,
    MSG_SESSION_NOT_FOUND,
    MSG_TIMEOUT,
    MSG_UNREACHABLE,
    REPORT_TITLE,
)
from supermind.datatypes import (
    ConversationTurn,
    FlowResponse,
    ReportFormat,
    ReportResult,
    SessionContext,
)
from supermind.errors import (
    SessionBusyError,
    SessionNotFoundError,
    UpstreamReportedError,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from supermind.report.renderer import render
from supermind.report.visualization import extract
from supermind.sessions import SessionManager

logger = logging.getLogger(__name__)


class FlowClient(Protocol):
    def run_flow(
        self,
        input_value: str,
        *,
        session_id: str | None = None,
        tweaks: dict[str, Any] | None = None,
    ) -> FlowResponse: ...


def failure_message(exc: BaseException) -> str:
    """Map an upstream failure to its user-facing message.

    Categories are checked in a fixed order: timeout, connectivity,
    server-reported detail, then the generic fallback.
    """
    if isinstance(exc, (UpstreamTimeout, requests.Timeout, TimeoutError)):
        return MSG_TIMEOUT
    if isinstance(exc, (UpstreamUnreachable, requests.ConnectionError, ConnectionError)):
        return MSG_CONNECTIVITY
    if isinstance(exc, UpstreamReportedError):
        return server_error_message(exc.detail)
    return MSG_UNREACHABLE


def server_error_message(detail: str | None) -> str:
    detail = (detail or "").strip()
    if detail:
        return f"{MSG_SERVER_ERROR_PREFIX}{detail}"
    return MSG_SERVER_ERROR_GENERIC


class ReportOrchestrator:
    """Run one question through the flow, extractor and renderer.

    Parameters
    ----------
    client:
        Anything with ``run_flow(input_value, session_id=, tweaks=)``.
    sessions:
        Session store; when ``None`` exchanges are not recorded.
    tweaks:
        Per-component overrides for the flow; defaults to ``tweaks`` in config.
    embed_charts:
        Draw chart images into PDF/DOCX; defaults to ``embed_charts`` in config.
    """

    def __init__(
        self,
        client: FlowClient,
        sessions: SessionManager | None = None,
        *,
        tweaks: dict[str, Any] | None = None,
        embed_charts: bool | None = None,
        title: str = REPORT_TITLE,
    ) -> None:
        cfg = get_global_config()
        self._client = client
        self._sessions = sessions
        self._tweaks = copy.deepcopy(tweaks if tweaks is not None else cfg.get("tweaks") or None)
        self._embed_charts = bool(cfg.get("embed_charts", False)) if embed_charts is None else embed_charts
        self._title = title

    def generate(
        self,
        query: str,
        context: SessionContext | None,
        requested_format: ReportFormat | str | None,
    ) -> ReportResult:
        if not isinstance(query, str) or not query.strip():
            logger.info("Rejected empty query")
            return ReportResult.error(MSG_INVALID_QUERY)

        if context is None or self._sessions is None:
            return self._run(query, context.session_id if context else None, requested_format)

        session_id = context.session_id
        try:
            with self._sessions.exchange(session_id):
                return self._run_recorded(query, session_id, requested_format)
        except SessionBusyError:
            logger.warning("Session %s busy; request rejected", session_id)
            return ReportResult.error(MSG_SESSION_BUSY)
        except SessionNotFoundError:
            logger.warning("Request for unknown session %s", session_id)
            return ReportResult.error(MSG_SESSION_NOT_FOUND)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_recorded(
        self,
        query: str,
        session_id: str,
        requested_format: ReportFormat | str | None,
    ) -> ReportResult:
        placeholder = self._sessions.append_turn(
            session_id,
            ConversationTurn(query=query, format=ReportFormat.PENDING, answer_text=MSG_PENDING),
        )
        result: ReportResult | None = None
        try:
            result = self._run(query, session_id, requested_format)
        finally:
            final = result if result is not None else ReportResult.error(MSG_UNREACHABLE)
            self._sessions.resolve_pending(session_id, placeholder.turn_id, final.to_turn(query))
        return result

    def _run(
        self,
        query: str,
        session_id: str | None,
        requested_format: ReportFormat | str | None,
    ) -> ReportResult:
        try:
            reply = self._client.run_flow(query, session_id=session_id, tweaks=self._tweaks)
        except Exception as exc:
            message = failure_message(exc)
            logger.warning("Flow run failed (%s): %s", type(exc).__name__, exc)
            return ReportResult.error(message)

        if not reply.success:
            logger.warning("Flow reported failure: %s", reply.error)
            return ReportResult.error(server_error_message(reply.error))

        try:
            extracted = extract(reply.message)
            result = render(
                extracted.cleaned_text,
                requested_format,
                extracted.specs,
                embed_charts=self._embed_charts,
                title=self._title,
            )
        except Exception:
            logger.exception("Rendering failed")
            return ReportResult.error(MSG_UNREACHABLE)

        logger.info("Generated %s report (%d visualization(s))",
                    result.format.value, len(extracted.specs))
        return result
