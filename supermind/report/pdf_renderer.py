"""PDF rendering of answer text.

Rendering runs in two passes:

1. :func:`layout_pdf` turns the text into a flat list of positioned
   :class:`PdfBlock` objects.  It owns every layout decision -- sections,
   wrapping, tables, bullets and page breaks -- and touches no PDF
   machinery, so pagination is a pure function of the text and the page
   constants in :mod:`supermind.constants`.
2. :func:`render_pdf` paints the blocks onto a reportlab canvas and returns
   the encoded document bytes.

Text rules:

- ``### `` starts a new section (its first line is the section heading);
  ``#``/``##`` lines are headings too.
- Pipe-delimited lines form a table; the first row of each table is the
  header row.  Markdown separator rows (``|---|---|``) are dropped.
- Lines starting with ``*`` or ``- `` are bullets.
- Lines starting with ``**`` are subsection titles; other ``**`` markers
  are removed.
- Decorative symbols with no glyph in the base fonts are swapped for
  bracketed tokens (see :data:`SYMBOL_REPLACEMENTS`); anything not listed
  is drawn as-is.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from supermind.constants import (
    PDF_BULLET_INDENT,
    PDF_CHART_HEIGHT,
    PDF_CONTENT_WIDTH,
    PDF_FONT,
    PDF_FONT_BOLD,
    PDF_FONT_SIZE,
    PDF_HEADING_SIZE,
    PDF_LINE_HEIGHT,
    PDF_MARGIN_LEFT,
    PDF_MARGIN_TOP,
    PDF_PAGE_HEIGHT,
    PDF_PAGE_HEIGHT_LIMIT,
    PDF_PAGE_WIDTH,
    PDF_SUBTITLE_SIZE,
    PDF_TABLE_CELL_WIDTH,
    PDF_TABLE_ROW_HEIGHT,
    REPORT_TITLE,
)

logger = logging.getLogger(__name__)

# Longer keys first: the emoji variants carry a trailing U+FE0F selector.
SYMBOL_REPLACEMENTS: dict[str, str] = {
    "⚠️": "[Warning]",
    "➡️": "->",
    "\U0001f4ca": "[Graph]",
    "\U0001f4c8": "[Trend Up]",
    "\U0001f4c9": "[Trend Down]",
    "✅": "[Yes]",
    "✔": "[Yes]",
    "❌": "[No]",
    "⚠": "[Warning]",
    "\U0001f4a1": "[Tip]",
    "\U0001f4cc": "[Note]",
    "\U0001f4dd": "[Note]",
    "\U0001f50d": "[Search]",
    "\U0001f3af": "[Target]",
    "\U0001f680": "[Launch]",
    "\U0001f4b0": "[Money]",
    "⭐": "[Star]",
    "\U0001f539": "-",
    "\U0001f538": "-",
    "→": "->",
}

BULLET_GLYPH = "•"

_SECTION_RE = re.compile(r"^###[ \t]+", re.MULTILINE)
_SEPARATOR_CELL_RE = re.compile(r"^:?-{2,}:?$")
_HEADING_SPACING = 8.0


# ---------------------------------------------------------------------------
# Layout model
# ---------------------------------------------------------------------------


@dataclass
class PdfBlock:
    """One positioned element.  ``y`` is the top edge, measured downwards
    from the top of the page."""

    kind: str  # title | heading | subtitle | text | bullet | table_row | spacer | chart
    page: int
    x: float
    y: float
    height: float
    text: str = ""
    font: str = PDF_FONT
    size: int = PDF_FONT_SIZE
    cells: list[list[str]] = field(default_factory=list)
    cell_width: float = 0.0
    header: bool = False
    chart_index: int = -1


@dataclass
class PdfLayout:
    blocks: list[PdfBlock] = field(default_factory=list)
    page_count: int = 1

    def of_kind(self, kind: str) -> list[PdfBlock]:
        return [b for b in self.blocks if b.kind == kind]

    @property
    def table_rows(self) -> list[PdfBlock]:
        return self.of_kind("table_row")

    @property
    def pages(self) -> list[list[PdfBlock]]:
        """Blocks grouped per page, in page order."""
        grouped: list[list[PdfBlock]] = [[] for _ in range(self.page_count)]
        for block in self.blocks:
            grouped[block.page - 1].append(block)
        return grouped


class _Cursor:
    """Top-down vertical cursor with deterministic page breaks."""

    def __init__(self) -> None:
        self.page = 1
        self.y = PDF_MARGIN_TOP
        self.blocks: list[PdfBlock] = []

    def new_page(self) -> None:
        self.page += 1
        self.y = PDF_MARGIN_TOP

    def place(self, kind: str, height: float, x: float = PDF_MARGIN_LEFT, **kw) -> PdfBlock:
        if self.y + height > PDF_PAGE_HEIGHT_LIMIT and self.y > PDF_MARGIN_TOP:
            self.new_page()
        block = PdfBlock(kind=kind, page=self.page, x=x, y=self.y, height=height, **kw)
        self.blocks.append(block)
        self.y += height
        return block

    def gap(self, height: float) -> None:
        # Gaps never open a page on their own.
        self.y = min(self.y + height, PDF_PAGE_HEIGHT_LIMIT)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def replace_symbols(text: str) -> str:
    """Swap known decorative symbols for bracketed text tokens."""
    for symbol, token in SYMBOL_REPLACEMENTS.items():
        text = text.replace(symbol, token)
    return text


def is_table_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("|") or stripped.count("|") >= 2


def split_cells(line: str) -> list[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def _is_separator_row(cells: list[str]) -> bool:
    return bool(cells) and all(_SEPARATOR_CELL_RE.match(c) for c in cells if c) and any(cells)


def split_sections(text: str) -> list[tuple[str | None, str]]:
    """Split on ``### `` headings into ``(heading, body)`` pairs.

    Text before the first heading becomes a section with no heading.
    """
    parts = _SECTION_RE.split(text)
    sections: list[tuple[str | None, str]] = []
    if parts[0].strip():
        sections.append((None, parts[0]))
    for chunk in parts[1:]:
        heading, _, body = chunk.partition("\n")
        sections.append((heading.strip(), body))
    return sections


def _wrap(text: str, font: str, size: int, width: float) -> list[str]:
    return simpleSplit(text, font, size, width) or [""]


# ---------------------------------------------------------------------------
# Layout pass
# ---------------------------------------------------------------------------


def _layout_heading(cur: _Cursor, text: str, size: int = PDF_HEADING_SIZE) -> None:
    if cur.blocks:
        cur.gap(_HEADING_SPACING)
    for line in _wrap(text, PDF_FONT_BOLD, size, PDF_CONTENT_WIDTH):
        cur.place("heading", size + 6, text=line, font=PDF_FONT_BOLD, size=size)


def _layout_table(cur: _Cursor, rows: list[list[str]]) -> None:
    n_cols = max(len(r) for r in rows)
    cell_width = min(PDF_TABLE_CELL_WIDTH, PDF_CONTENT_WIDTH / n_cols)
    text_width = cell_width - 6
    for i, row in enumerate(rows):
        header = i == 0
        font = PDF_FONT_BOLD if header else PDF_FONT
        padded = row + [""] * (n_cols - len(row))
        wrapped = [_wrap(cell, font, PDF_FONT_SIZE, text_width) for cell in padded]
        n_lines = max(len(w) for w in wrapped)
        height = max(PDF_TABLE_ROW_HEIGHT, n_lines * PDF_LINE_HEIGHT + 4)
        cur.place(
            "table_row", height,
            cells=wrapped, cell_width=cell_width, header=header, font=font,
            text=" | ".join(padded),
        )
    cur.gap(PDF_LINE_HEIGHT / 2)


def _layout_body(cur: _Cursor, body: str) -> None:
    lines = body.split("\n")
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if not stripped:
            cur.gap(PDF_LINE_HEIGHT / 2)
            i += 1
            continue

        if is_table_line(stripped):
            rows: list[list[str]] = []
            while i < len(lines) and lines[i].strip() and is_table_line(lines[i]):
                cells = split_cells(lines[i])
                if not _is_separator_row(cells):
                    rows.append([c.replace("**", "") for c in cells])
                i += 1
            if rows:
                _layout_table(cur, rows)
            continue

        if stripped.startswith("#"):
            _layout_heading(cur, stripped.lstrip("#").strip())
        elif stripped.startswith("**"):
            title = stripped.replace("**", "").strip()
            for wrapped in _wrap(title, PDF_FONT_BOLD, PDF_SUBTITLE_SIZE, PDF_CONTENT_WIDTH):
                cur.place(
                    "subtitle", PDF_SUBTITLE_SIZE + 6,
                    text=wrapped, font=PDF_FONT_BOLD, size=PDF_SUBTITLE_SIZE,
                )
        elif stripped.startswith("*") or stripped.startswith("- "):
            item = stripped.lstrip("*-").strip().replace("**", "")
            width = PDF_CONTENT_WIDTH - PDF_BULLET_INDENT
            for j, wrapped in enumerate(_wrap(item, PDF_FONT, PDF_FONT_SIZE, width - 10)):
                prefix = f"{BULLET_GLYPH} " if j == 0 else "   "
                cur.place(
                    "bullet", PDF_LINE_HEIGHT,
                    x=PDF_MARGIN_LEFT + PDF_BULLET_INDENT, text=prefix + wrapped,
                )
        else:
            plain = stripped.replace("**", "")
            for wrapped in _wrap(plain, PDF_FONT, PDF_FONT_SIZE, PDF_CONTENT_WIDTH):
                cur.place("text", PDF_LINE_HEIGHT, text=wrapped)
        i += 1


def layout_pdf(text: str, *, n_charts: int = 0, title: str = REPORT_TITLE) -> PdfLayout:
    """Lay out *text* into pages.

    Parameters
    ----------
    text:
        Cleaned answer text (visualization blocks already removed).
    n_charts:
        Number of chart images to reserve space for after the prose; each
        chart starts on a fresh page.
    title:
        Document title drawn at the top of the first page.
    """
    cur = _Cursor()
    cur.place("title", PDF_HEADING_SIZE + 10, text=title, font=PDF_FONT_BOLD,
              size=PDF_HEADING_SIZE + 4)

    for heading, body in split_sections(replace_symbols(text or "")):
        if heading is not None:
            _layout_heading(cur, heading)
        _layout_body(cur, body)

    for idx in range(n_charts):
        cur.new_page()
        cur.place("chart", PDF_CHART_HEIGHT + PDF_LINE_HEIGHT, chart_index=idx)

    return PdfLayout(blocks=cur.blocks, page_count=cur.page)


# ---------------------------------------------------------------------------
# Drawing pass
# ---------------------------------------------------------------------------


def _baseline(block: PdfBlock, offset: float) -> float:
    return PDF_PAGE_HEIGHT - (block.y + offset)


def _draw_table_row(c: canvas.Canvas, block: PdfBlock) -> None:
    bottom = PDF_PAGE_HEIGHT - (block.y + block.height)
    for col, lines in enumerate(block.cells):
        x = block.x + col * block.cell_width
        if block.header:
            c.setFillColor(colors.lightgrey)
            c.rect(x, bottom, block.cell_width, block.height, stroke=1, fill=1)
            c.setFillColor(colors.black)
        else:
            c.rect(x, bottom, block.cell_width, block.height, stroke=1, fill=0)
        c.setFont(block.font, PDF_FONT_SIZE)
        for n, line in enumerate(lines):
            c.drawString(x + 3, _baseline(block, PDF_FONT_SIZE + 3 + n * PDF_LINE_HEIGHT), line)


def _draw_chart(c: canvas.Canvas, block: PdfBlock, charts: list[bytes]) -> None:
    try:
        image = ImageReader(io.BytesIO(charts[block.chart_index]))
    except (IndexError, OSError) as exc:
        logger.warning("Skipping chart %d: %s", block.chart_index, exc)
        return
    c.drawImage(
        image,
        block.x,
        PDF_PAGE_HEIGHT - (block.y + PDF_CHART_HEIGHT),
        width=PDF_CONTENT_WIDTH,
        height=PDF_CHART_HEIGHT,
        preserveAspectRatio=True,
        anchor="nw",
    )


def render_pdf(
    text: str,
    charts: list[bytes] | None = None,
    *,
    title: str = REPORT_TITLE,
) -> bytes:
    """Render *text* (plus optional chart PNGs) to PDF bytes."""
    charts = charts or []
    layout = layout_pdf(text, n_charts=len(charts), title=title)

    buf = io.BytesIO()
    c = canvas.Canvas(
        buf,
        pagesize=(PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT),
        pageCompression=0,
        invariant=1,
    )
    c.setTitle(title)

    page = 1
    for block in layout.blocks:
        while page < block.page:
            c.showPage()
            page += 1

        if block.kind == "table_row":
            _draw_table_row(c, block)
        elif block.kind == "chart":
            _draw_chart(c, block, charts)
        else:
            c.setFont(block.font, block.size)
            c.drawString(block.x, _baseline(block, block.size), block.text)

    c.save()
    logger.debug("PDF rendered: %d page(s), %d block(s)", layout.page_count, len(layout.blocks))
    return buf.getvalue()
