"""Core data model: formats, visualization specs, turns, sessions, results.

All containers are plain dataclasses with ``to_dict()`` helpers producing
JSON-safe dictionaries for the presentation layer.  Binary payloads are
base64-encoded whenever they leave the process as text.
"""

from __future__ import annotations

import base64
import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ReportFormat(str, Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    PDF = "PDF"
    DOCX = "DOCX"
    MARKDOWN = "MARKDOWN"
    HTML = "HTML"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: Any) -> "ReportFormat":
        """Map a requested output kind to a renderable format.

        Accepts members or strings in any case (``"md"`` is an alias for
        Markdown).  Anything unrecognised, including the non-renderable
        states, falls back to MARKDOWN.
        """
        if isinstance(value, cls):
            member = value
        else:
            key = str(value or "").strip().upper()
            if key == "MD":
                key = "MARKDOWN"
            member = cls.__members__.get(key)
        if member is None or member not in RENDERABLE_FORMATS:
            return cls.MARKDOWN
        return member

    @property
    def is_binary(self) -> bool:
        return self in (ReportFormat.PDF, ReportFormat.DOCX)


RENDERABLE_FORMATS = (
    ReportFormat.PDF,
    ReportFormat.DOCX,
    ReportFormat.MARKDOWN,
    ReportFormat.HTML,
)


class ChartKind(str, Enum):
    LINE = "line"
    AREA = "area"
    PIE = "pie"
    RADAR = "radar"
    BAR = "bar"

    @classmethod
    def parse(cls, value: Any) -> "ChartKind":
        """Unknown chart types render as bar charts."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.BAR


# ---------------------------------------------------------------------------
# Visualizations
# ---------------------------------------------------------------------------


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


@dataclass
class ChartSeries:
    name: str
    values: list[float | None] = field(default_factory=list)


@dataclass
class VisualizationSpec:
    """One chart description extracted from AI text."""

    title: str
    chart_kind: ChartKind = ChartKind.BAR
    series: list[ChartSeries] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "VisualizationSpec":
        """Build a spec from the ``{title, type, data, metrics}`` object shape.

        ``data`` is a list of rows keyed by ``name`` plus one key per metric.
        When ``metrics`` is missing it is inferred from the numeric keys of
        the rows (first-seen order); pie charts default to ``value``.

        Missing or empty ``data``, and rows that are not objects, give a
        spec with no categories; chart rendering skips those.  Raises
        ``ValueError`` only when the entry itself is not an object.
        """
        if not isinstance(raw, dict):
            raise ValueError("visualization entry is not an object")

        rows = raw.get("data")
        if not isinstance(rows, list):
            rows = []
        rows = [r for r in rows if isinstance(r, dict)]

        kind = ChartKind.parse(raw.get("type") or raw.get("chartType"))
        metrics = raw.get("metrics")
        if isinstance(metrics, list) and metrics:
            metric_names = [str(m) for m in metrics]
        elif kind is ChartKind.PIE and any("value" in r for r in rows):
            metric_names = ["value"]
        else:
            metric_names = []
            for row in rows:
                for key, value in row.items():
                    if key == "name" or key in metric_names:
                        continue
                    if _to_number(value) is not None:
                        metric_names.append(key)

        categories = [str(r.get("name", i + 1)) for i, r in enumerate(rows)]
        series = [
            ChartSeries(name=m, values=[_to_number(r.get(m)) for r in rows])
            for m in metric_names
        ]
        title = str(raw.get("title") or "Untitled chart")
        return cls(title=title, chart_kind=kind, series=series, categories=categories)

    def to_dict(self) -> dict[str, Any]:
        rows: list[dict[str, Any]] = []
        for i, name in enumerate(self.categories):
            row: dict[str, Any] = {"name": name}
            for s in self.series:
                row[s.name] = s.values[i] if i < len(s.values) else None
            rows.append(row)
        return {
            "title": self.title,
            "type": self.chart_kind.value,
            "data": rows,
            "metrics": [s.name for s in self.series],
        }


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _b64(payload: bytes | None) -> str | None:
    if payload is None:
        return None
    return base64.b64encode(payload).decode("ascii")


@dataclass
class ConversationTurn:
    """One query plus its eventual answer (or error message)."""

    query: str
    format: ReportFormat = ReportFormat.NONE
    answer_text: str | None = None
    binary_payload: bytes | None = None
    visualizations: list[VisualizationSpec] | None = None
    turn_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_pending(self) -> bool:
        return self.format is ReportFormat.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn_id": self.turn_id,
            "query": self.query,
            "format": self.format.value,
            "answer_text": self.answer_text,
            "file": _b64(self.binary_payload),
            "visualizations": (
                [v.to_dict() for v in self.visualizations]
                if self.visualizations is not None else None
            ),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Session:
    """A titled, ordered collection of turns scoped to a user and project."""

    session_id: str
    user_id: str
    project_id: str
    title: str
    created_at: datetime = field(default_factory=_utcnow)
    turns: list[ConversationTurn] = field(default_factory=list)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "title" and "title" in self.__dict__:
            raise AttributeError("session title is immutable once set")
        super().__setattr__(name, value)

    def short_title(self, width: int = 20) -> str:
        if len(self.title) <= width:
            return self.title
        return self.title[:width].rstrip() + " ..."

    def to_dict(self, include_turns: bool = False) -> dict[str, Any]:
        d: dict[str, Any] = {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
            "turn_count": len(self.turns),
        }
        if include_turns:
            d["turns"] = [t.to_dict() for t in self.turns]
        return d


@dataclass(frozen=True)
class SessionContext:
    """Identifiers for the conversation a request belongs to."""

    session_id: str
    user_id: str = ""
    project_id: str = ""


# ---------------------------------------------------------------------------
# Upstream reply
# ---------------------------------------------------------------------------


@dataclass
class FlowResponse:
    """Normalized reply from the AI flow: ``{success, message, error}``."""

    success: bool
    message: str = ""
    error: str | None = None


# ---------------------------------------------------------------------------
# Transport envelope
# ---------------------------------------------------------------------------


@dataclass
class ReportResult:
    """Uniform result returned by the pipeline regardless of format.

    Exactly one of ``text_content``, ``binary_content`` and
    ``error_message`` is populated, consistent with ``format``.
    """

    format: ReportFormat
    text_content: str | None = None
    binary_content: bytes | None = None
    visualizations: list[VisualizationSpec] | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        populated = [
            name for name in ("text_content", "binary_content", "error_message")
            if getattr(self, name) is not None
        ]
        if len(populated) != 1:
            raise ValueError(
                f"ReportResult needs exactly one payload field, got {populated or 'none'}"
            )
        expected = {
            ReportFormat.ERROR: "error_message",
            ReportFormat.PDF: "binary_content",
            ReportFormat.DOCX: "binary_content",
            ReportFormat.MARKDOWN: "text_content",
            ReportFormat.HTML: "text_content",
        }.get(self.format)
        if expected != populated[0]:
            raise ValueError(
                f"{self.format.value} result cannot carry {populated[0]}"
            )

    # -- constructors ---------------------------------------------------

    @classmethod
    def text(
        cls,
        fmt: ReportFormat,
        content: str,
        visualizations: list[VisualizationSpec] | None = None,
    ) -> "ReportResult":
        return cls(format=fmt, text_content=content, visualizations=visualizations)

    @classmethod
    def binary(
        cls,
        fmt: ReportFormat,
        content: bytes,
        visualizations: list[VisualizationSpec] | None = None,
    ) -> "ReportResult":
        return cls(format=fmt, binary_content=content, visualizations=visualizations)

    @classmethod
    def error(cls, message: str) -> "ReportResult":
        return cls(format=ReportFormat.ERROR, error_message=message)

    # -- accessors ------------------------------------------------------

    @property
    def is_error(self) -> bool:
        return self.format is ReportFormat.ERROR

    def to_turn(self, query: str) -> ConversationTurn:
        """Derive the conversation turn recorded for this result."""
        return ConversationTurn(
            query=query,
            format=self.format,
            answer_text=self.error_message if self.is_error else self.text_content,
            binary_payload=self.binary_content,
            visualizations=self.visualizations,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value,
            "text_content": self.text_content,
            "binary_content": _b64(self.binary_content),
            "visualizations": (
                [v.to_dict() for v in self.visualizations]
                if self.visualizations is not None else None
            ),
            "error_message": self.error_message,
        }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)
