"""Exception hierarchy for the report pipeline.

Upstream errors are raised by :mod:`supermind.http_utils` and the flow
clients; the orchestrator turns each category into a user-facing ERROR
result.  Session errors are raised by :class:`supermind.sessions.SessionManager`.
"""

from __future__ import annotations


class SuperMindError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(SuperMindError):
    """Raised when a query is empty or otherwise unusable."""


class VisualizationParseError(SuperMindError):
    """Raised by strict-mode extraction on a malformed visualization block."""


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class SessionError(SuperMindError):
    """Base class for session store failures."""


class SessionNotFoundError(SessionError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Unknown session: {session_id}")


class SessionBusyError(SessionError):
    """Raised when a second exchange is started on a session with one in flight."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} already has a request in progress")


# ---------------------------------------------------------------------------
# Upstream
# ---------------------------------------------------------------------------

class UpstreamError(SuperMindError):
    """Upstream call failed in a way that fits no narrower category
    (malformed payload, unexpected response shape)."""


class UpstreamTimeout(UpstreamError):
    """The upstream call exceeded the configured timeout."""


class UpstreamUnreachable(UpstreamError):
    """Connection-level failure (DNS, refused, reset)."""


class UpstreamReportedError(UpstreamError):
    """The upstream answered but reported failure.

    ``detail`` is the server-supplied message when one was present.
    """

    def __init__(self, status_code: int | None = None, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        label = f"HTTP {status_code}" if status_code else "Upstream failure"
        super().__init__(f"{label}: {detail}" if detail else label)
