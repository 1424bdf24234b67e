"""Visualization extraction -- split chart data out of AI answer text.

The flow is prompted to append chart descriptions as a JSON object with a
``visualizations`` list, either inside a fenced code block or inline in the
prose.  Models are not reliable about this, so extraction is best-effort:

- every block that decodes to ``{"visualizations": [...]}`` is removed
  from the text and its charts collected, in order of appearance;
- blocks that look like candidates but fail to decode are left in the
  text untouched;
- when nothing matches, the text comes back unchanged with no specs.

Top-level entry point:
    ``extract(raw_text, strict=False)``
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, NamedTuple

from supermind.datatypes import VisualizationSpec
from supermind.errors import VisualizationParseError

logger = logging.getLogger(__name__)

MARKER_KEY = "visualizations"

_FENCE_RE = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)
_MARKER_RE = re.compile(r'["\']%s["\']' % MARKER_KEY)
_EXCESS_BLANK_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")

_decoder = json.JSONDecoder()


class ExtractionResult(NamedTuple):
    cleaned_text: str
    specs: list[VisualizationSpec]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _specs_from_payload(payload: Any) -> list[VisualizationSpec] | None:
    """Return the specs held by *payload*, or None if it is not a marker object."""
    if not isinstance(payload, dict):
        return None
    entries = payload.get(MARKER_KEY)
    if not isinstance(entries, list):
        return None

    specs: list[VisualizationSpec] = []
    for i, entry in enumerate(entries):
        try:
            specs.append(VisualizationSpec.from_dict(entry))
        except ValueError as exc:
            logger.debug("Skipping visualization #%d: %s", i, exc)
    return specs


def _fenced_candidates(text: str) -> list[tuple[int, int, str]]:
    """(start, end, body) for fenced blocks mentioning the marker key."""
    found = []
    for m in _FENCE_RE.finditer(text):
        body = m.group(2)
        if _MARKER_RE.search(body):
            found.append((m.start(), m.end(), body.strip()))
    return found


def _inline_candidates(
    text: str,
    skip: list[tuple[int, int]],
) -> list[tuple[int, int, Any]]:
    """(start, end, decoded) for bare JSON objects holding the marker key.

    Objects are decoded with ``raw_decode`` from each ``{`` so nested
    braces balance; regions in *skip* (fenced blocks) are ignored.  Only
    top-level objects count: a marker nested in another object stays put.
    """
    found: list[tuple[int, int, Any]] = []
    pos = 0
    while True:
        start = text.find("{", pos)
        if start < 0:
            break
        inside = next((end for s, end in skip if s <= start < end), None)
        if inside is not None:
            pos = inside
            continue
        try:
            obj, end = _decoder.raw_decode(text, start)
        except ValueError:
            pos = start + 1
            continue
        if isinstance(obj, dict) and MARKER_KEY in obj:
            found.append((start, end, obj))
        # Objects nested inside a decoded one belong to it.
        pos = end
    return found


def _remove_spans(text: str, spans: list[tuple[int, int]]) -> str:
    parts = []
    pos = 0
    for start, end in sorted(spans):
        parts.append(text[pos:start])
        pos = end
    parts.append(text[pos:])
    cleaned = "".join(parts)
    return _EXCESS_BLANK_RE.sub("\n\n", cleaned).strip()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def extract(raw_text: str | None, *, strict: bool = False) -> ExtractionResult:
    """Separate embedded visualization data from prose.

    Parameters
    ----------
    raw_text:
        Answer text as returned by the flow.
    strict:
        Raise :class:`VisualizationParseError` on the first candidate block
        that fails to decode instead of ignoring it.

    Returns
    -------
    ExtractionResult
        ``cleaned_text`` with every matched block removed, and the specs
        concatenated in order of appearance.
    """
    text = raw_text or ""
    if MARKER_KEY not in text:
        return ExtractionResult(text, [])

    matches: list[tuple[int, int, list[VisualizationSpec]]] = []

    fenced = _fenced_candidates(text)
    for start, end, body in fenced:
        try:
            payload = json.loads(body)
        except ValueError as exc:
            if strict:
                raise VisualizationParseError(
                    f"Malformed visualization block at offset {start}: {exc}"
                ) from exc
            logger.debug("Ignoring malformed visualization block at %d: %s", start, exc)
            continue
        specs = _specs_from_payload(payload)
        if specs is None:
            if strict:
                raise VisualizationParseError(
                    f"Block at offset {start} has no '{MARKER_KEY}' list"
                )
            continue
        matches.append((start, end, specs))

    skip = [(start, end) for start, end, _ in fenced]
    for start, end, obj in _inline_candidates(text, skip):
        specs = _specs_from_payload(obj)
        if specs is None:
            if strict:
                raise VisualizationParseError(
                    f"Object at offset {start} has no '{MARKER_KEY}' list"
                )
            continue
        matches.append((start, end, specs))

    if not matches:
        return ExtractionResult(text, [])

    matches.sort(key=lambda m: m[0])
    all_specs = [spec for _, _, specs in matches for spec in specs]
    cleaned = _remove_spans(text, [(start, end) for start, end, _ in matches])
    logger.debug(
        "Extracted %d visualization(s) from %d block(s)", len(all_specs), len(matches),
    )
    return ExtractionResult(cleaned, all_specs)
