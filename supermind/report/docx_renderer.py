"""DOCX rendering of answer text (python-docx).

The document keeps the answer text verbatim: one paragraph per source line,
in order, so the body reads back exactly as the text went in.  Structure is
applied as styling only -- heading lines get heading styles, ``**`` lines
are bold, bullet lines use ``List Bullet`` and table lines a monospace run.
Chart images, when given, are appended after the body.  Control characters
that XML cannot carry are swapped for a line break (vertical tab, form feed)
or U+FFFD before anything is written.
"""

from __future__ import annotations

import io
import logging
import re

from docx import Document
from docx.shared import Inches, Pt

from supermind.constants import REPORT_TITLE
from supermind.report.pdf_renderer import is_table_line

logger = logging.getLogger(__name__)

_MONO_FONT = "Courier New"

# Characters XML 1.0 cannot hold; vertical tab and form feed read as line breaks.
_LINE_BREAK_CTRL_RE = re.compile(r"[\x0b\x0c]")
_XML_ILLEGAL_RE = re.compile(r"[\x00-\x08\x0e-\x1f\ufffe\uffff]")


def xml_safe(text: str) -> str:
    """Replace characters Word XML rejects with a readable stand-in."""
    text = _LINE_BREAK_CTRL_RE.sub("\n", text)
    return _XML_ILLEGAL_RE.sub("\ufffd", text)


def _heading_level(stripped: str) -> int:
    hashes = len(stripped) - len(stripped.lstrip("#"))
    return max(1, min(hashes, 3))


def render_docx(
    text: str,
    charts: list[bytes] | None = None,
    *,
    title: str = REPORT_TITLE,
) -> bytes:
    """Render *text* (plus optional chart PNGs) to DOCX bytes."""
    doc = Document()
    doc.core_properties.title = xml_safe(title)

    normal = doc.styles["Normal"]
    normal.font.name = "Calibri"
    normal.font.size = Pt(11)

    for line in xml_safe(text or "").split("\n"):
        stripped = line.strip()

        if stripped.startswith("#"):
            doc.add_paragraph(line, style=f"Heading {_heading_level(stripped)}")
        elif stripped and is_table_line(stripped):
            para = doc.add_paragraph()
            run = para.add_run(line)
            run.font.name = _MONO_FONT
            run.font.size = Pt(9)
        elif stripped.startswith("**"):
            para = doc.add_paragraph()
            para.add_run(line).bold = True
        elif stripped.startswith("* ") or stripped.startswith("- "):
            doc.add_paragraph(line, style="List Bullet")
        else:
            doc.add_paragraph(line)

    for idx, png in enumerate(charts or []):
        try:
            doc.add_picture(io.BytesIO(png), width=Inches(6))
        except Exception as exc:
            logger.warning("Skipping chart %d in DOCX: %s", idx, exc)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
