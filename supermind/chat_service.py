"""Chat surface over the orchestrator and the session store.

:class:`ChatService` is what a front end talks to.  ``send`` opens a session
on the first message of a conversation and runs one exchange in it; the
query methods never raise and report failure as an empty list or ``False``
so a caller can leave its own state untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from supermind.constants import MSG_INVALID_QUERY
from supermind.datatypes import (
    ConversationTurn,
    ReportFormat,
    ReportResult,
    Session,
    SessionContext,
)
from supermind.report.orchestrator import FlowClient, ReportOrchestrator
from supermind.sessions import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    """Result of one ``send``: the session it landed in plus the report."""

    session_id: str | None
    result: ReportResult

    def to_dict(self) -> dict[str, Any]:
        return {"session_id": self.session_id, **self.result.to_dict()}

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)


class ChatService:
    def __init__(
        self,
        client: FlowClient,
        sessions: SessionManager | None = None,
        **orchestrator_kwargs: Any,
    ) -> None:
        self.sessions = sessions or SessionManager()
        self.orchestrator = ReportOrchestrator(client, self.sessions, **orchestrator_kwargs)

    def send(
        self,
        user_id: str,
        project_id: str,
        query: str,
        fmt: ReportFormat | str | None,
        session_id: str | None = None,
    ) -> ChatReply:
        """Send *query* in *session_id*, or in a new session when omitted."""
        if not isinstance(query, str) or not query.strip():
            return ChatReply(session_id, ReportResult.error(MSG_INVALID_QUERY))

        if session_id is None:
            session_id = self.sessions.create_session(user_id, project_id, query).session_id

        context = SessionContext(session_id=session_id, user_id=user_id, project_id=project_id)
        result = self.orchestrator.generate(query, context, fmt)
        return ChatReply(session_id, result)

    def list_sessions(self, user_id: str, project_id: str) -> list[Session]:
        try:
            return self.sessions.list_sessions(user_id, project_id)
        except Exception as exc:
            logger.error("Failed to list sessions for user=%s project=%s: %s",
                         user_id, project_id, exc)
            return []

    def get_turns(self, session_id: str) -> list[ConversationTurn]:
        try:
            return self.sessions.get_turns(session_id)
        except Exception as exc:
            logger.error("Failed to read turns for session %s: %s", session_id, exc)
            return []

    def delete_session(self, session_id: str) -> bool:
        try:
            return self.sessions.delete_session(session_id)
        except Exception as exc:
            logger.error("Failed to delete session %s: %s", session_id, exc)
            return False
