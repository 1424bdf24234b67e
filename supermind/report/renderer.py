"""Format Renderer -- package cleaned answer text for the requested format.

Dispatch is a plain table from :class:`ReportFormat` to a render function;
an unrecognised format falls back to Markdown rather than failing.

==========  ============================================================
Format      Output
==========  ============================================================
MARKDOWN    ``text_content`` = the text, verbatim
HTML        ``text_content`` = the text inside a fixed HTML template
PDF         ``binary_content`` = reportlab document (:mod:`.pdf_renderer`)
DOCX        ``binary_content`` = Word document (:mod:`.docx_renderer`)
==========  ============================================================

Visualizations are passed through to the result untouched in every format.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from supermind.constants import FILE_EXTENSIONS, MIME_TYPES, REPORT_TITLE
from supermind.datatypes import ReportFormat, ReportResult, VisualizationSpec
from supermind.report.docx_renderer import render_docx
from supermind.report.pdf_renderer import render_pdf

logger = logging.getLogger(__name__)


HTML_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ font-family: Arial, Helvetica, sans-serif; line-height: 1.5; margin: 2em; }}
  table {{ border-collapse: collapse; width: 100%; margin: 1em 0; }}
  th, td {{ border: 1px solid #cccccc; padding: 6px 10px; text-align: left; }}
  th {{ background-color: #f2f2f2; font-weight: bold; }}
  tr:nth-child(even) {{ background-color: #fafafa; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


def _chart_images(visualizations: list[VisualizationSpec] | None, embed_charts: bool) -> list[bytes]:
    if not embed_charts or not visualizations:
        return []
    from supermind.report.charts import render_charts

    return render_charts(visualizations)


# ---------------------------------------------------------------------------
# Per-format renderers
# ---------------------------------------------------------------------------


def _render_markdown(text: str, visualizations, **_: Any) -> ReportResult:
    return ReportResult.text(ReportFormat.MARKDOWN, text, visualizations)


def _render_html(text: str, visualizations, *, title: str = REPORT_TITLE, **_: Any) -> ReportResult:
    document = HTML_TEMPLATE.format(title=title, body=text)
    return ReportResult.text(ReportFormat.HTML, document, visualizations)


def _render_pdf(text: str, visualizations, *, embed_charts: bool = False,
                title: str = REPORT_TITLE, **_: Any) -> ReportResult:
    charts = _chart_images(visualizations, embed_charts)
    return ReportResult.binary(
        ReportFormat.PDF, render_pdf(text, charts, title=title), visualizations,
    )


def _render_docx(text: str, visualizations, *, embed_charts: bool = False,
                 title: str = REPORT_TITLE, **_: Any) -> ReportResult:
    charts = _chart_images(visualizations, embed_charts)
    return ReportResult.binary(
        ReportFormat.DOCX, render_docx(text, charts, title=title), visualizations,
    )


_RENDERERS: dict[ReportFormat, Callable[..., ReportResult]] = {
    ReportFormat.MARKDOWN: _render_markdown,
    ReportFormat.HTML: _render_html,
    ReportFormat.PDF: _render_pdf,
    ReportFormat.DOCX: _render_docx,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def render(
    cleaned_text: str,
    fmt: ReportFormat | str | None,
    visualizations: list[VisualizationSpec] | None = None,
    *,
    embed_charts: bool = False,
    title: str = REPORT_TITLE,
) -> ReportResult:
    """Render *cleaned_text* into a ReportResult for *fmt*.

    Parameters
    ----------
    cleaned_text:
        Answer text with visualization blocks already removed.
    fmt:
        Requested format.  Anything unrecognised renders as Markdown.
    visualizations:
        Extracted chart specs, passed through to the result.
    embed_charts:
        Draw the charts into PDF/DOCX output as images.
    title:
        Document title for HTML, PDF and DOCX output.
    """
    target = ReportFormat.parse(fmt)
    requested = str(getattr(fmt, "value", fmt) or "").strip().upper()
    if requested and requested not in (target.value, "MD"):
        logger.info("Unrecognised format %r; rendering as Markdown", fmt)

    renderer = _RENDERERS[target]
    result = renderer(
        cleaned_text or "",
        visualizations,
        embed_charts=embed_charts,
        title=title,
    )
    logger.debug("Rendered %s report", target.value)
    return result


# ---------------------------------------------------------------------------
# Artifact helpers
# ---------------------------------------------------------------------------


def suggest_filename(fmt: ReportFormat | str, stem: str = "report") -> str:
    """``report.pdf`` / ``report.docx`` / ``report.html`` / ``report.md``."""
    target = ReportFormat.parse(fmt)
    return f"{stem}.{FILE_EXTENSIONS[target.value]}"


def mime_type(fmt: ReportFormat | str) -> str:
    return MIME_TYPES[ReportFormat.parse(fmt).value]
