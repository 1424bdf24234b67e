"""Session Manager -- ordered conversation state per user and project.

An in-memory store guarded by one re-entrant lock: every read takes a
snapshot under the lock and every mutation completes under it, so a reader
sees either the whole state before a change or the whole state after it.

Writers are additionally serialized per session through :meth:`exchange`;
a second exchange on a session that already has one in flight is rejected
with :class:`SessionBusyError` rather than interleaved.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

from supermind.constants import SESSION_TITLE_DEFAULT, SESSION_TITLE_MAX_CHARS
from supermind.datatypes import ConversationTurn, Session
from supermind.errors import SessionBusyError, SessionError, SessionNotFoundError

logger = logging.getLogger(__name__)


def derive_title(first_query: str) -> str:
    """First line of the query, whitespace collapsed, capped in length."""
    first_line = next((ln for ln in (first_query or "").splitlines() if ln.strip()), "")
    title = " ".join(first_line.split())
    if not title:
        return SESSION_TITLE_DEFAULT
    if len(title) > SESSION_TITLE_MAX_CHARS:
        title = title[: SESSION_TITLE_MAX_CHARS - 3].rstrip() + "..."
    return title


class SessionManager:
    """Create, list, read, append to and delete conversation sessions.

    Parameters
    ----------
    clock:
        Returns the current time; injectable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._sessions: dict[str, Session] = {}
        self._order: dict[str, int] = {}
        self._seq = itertools.count()
        self._active: set[str] = set()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, project_id: str, first_query: str = "") -> Session:
        session = Session(
            session_id=uuid.uuid4().hex,
            user_id=user_id,
            project_id=project_id,
            title=derive_title(first_query),
            created_at=self._clock(),
        )
        with self._lock:
            self._sessions[session.session_id] = session
            self._order[session.session_id] = next(self._seq)
        logger.info("Created session %s for user=%s project=%s",
                    session.session_id, user_id, project_id)
        return self._snapshot(session)

    def list_sessions(self, user_id: str, project_id: str) -> list[Session]:
        """Sessions for the user and project, most recently created first."""
        with self._lock:
            matching = [
                s for s in self._sessions.values()
                if s.user_id == user_id and s.project_id == project_id
            ]
            matching.sort(
                key=lambda s: (s.created_at, self._order[s.session_id]),
                reverse=True,
            )
            return [self._snapshot(s) for s in matching]

    def get_session(self, session_id: str) -> Session | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return self._snapshot(session) if session is not None else None

    def delete_session(self, session_id: str) -> bool:
        """Remove the session and all its turns.  False if it did not exist."""
        with self._lock:
            if session_id in self._active:
                logger.warning("Refusing to delete session %s mid-exchange", session_id)
                return False
            removed = self._sessions.pop(session_id, None)
            self._order.pop(session_id, None)
        if removed is None:
            logger.info("Delete requested for unknown session %s", session_id)
            return False
        logger.info("Deleted session %s (%d turn(s))", session_id, len(removed.turns))
        return True

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def get_turns(self, session_id: str) -> list[ConversationTurn]:
        """Snapshot of the session's turns in arrival order; [] if unknown."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []
            return [copy.copy(t) for t in session.turns]

    def append_turn(self, session_id: str, turn: ConversationTurn) -> ConversationTurn:
        with self._lock:
            session = self._require(session_id)
            session.turns.append(turn)
        logger.debug("Appended %s turn %s to session %s",
                     turn.format.value, turn.turn_id, session_id)
        return turn

    def resolve_pending(
        self,
        session_id: str,
        turn_id: str,
        final_turn: ConversationTurn,
    ) -> ConversationTurn:
        """Swap the PENDING placeholder *turn_id* for *final_turn* in place."""
        if final_turn.is_pending:
            raise SessionError("A pending turn cannot resolve another pending turn")
        with self._lock:
            session = self._require(session_id)
            for i, turn in enumerate(session.turns):
                if turn.turn_id == turn_id:
                    if not turn.is_pending:
                        raise SessionError(f"Turn {turn_id} is not pending")
                    session.turns[i] = final_turn
                    return final_turn
        raise SessionError(f"No turn {turn_id} in session {session_id}")

    # ------------------------------------------------------------------
    # Writer serialization
    # ------------------------------------------------------------------

    @contextmanager
    def exchange(self, session_id: str) -> Iterator[Session]:
        """Hold the single-writer slot for *session_id* for one exchange.

        Raises ``SessionBusyError`` if another exchange holds it and
        ``SessionNotFoundError`` for unknown sessions.
        """
        with self._lock:
            session = self._require(session_id)
            if session_id in self._active:
                raise SessionBusyError(session_id)
            self._active.add(session_id)
            snapshot = self._snapshot(session)
        try:
            yield snapshot
        finally:
            with self._lock:
                self._active.discard(session_id)

    def is_busy(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._active

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @staticmethod
    def _snapshot(session: Session) -> Session:
        return Session(
            session_id=session.session_id,
            user_id=session.user_id,
            project_id=session.project_id,
            title=session.title,
            created_at=session.created_at,
            turns=[copy.copy(t) for t in session.turns],
        )
