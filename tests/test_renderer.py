"""Tests for format dispatch in the renderer.

Tests cover:
  - Markdown passthrough and HTML template wrapping
  - Unknown formats falling back to Markdown
  - Markdown render followed by re-extraction
  - Binary formats populating only binary_content
  - Filename and MIME helpers
  - ReportResult payload invariants and envelope serialisation
"""

from __future__ import annotations

import base64
import json
import unittest

SAMPLE = "## Summary\nEngagement is up.\n\n| Channel | Reach |\n|---|---|\n| Email | 120 |\n"


class TestRender(unittest.TestCase):

    def test_markdown_is_verbatim(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        result = render(SAMPLE, ReportFormat.MARKDOWN)

        self.assertIs(result.format, ReportFormat.MARKDOWN)
        self.assertEqual(result.text_content, SAMPLE)
        self.assertIsNone(result.binary_content)
        self.assertIsNone(result.error_message)

    def test_html_wraps_text_in_template(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        result = render(SAMPLE, "html", title="Weekly")

        self.assertIs(result.format, ReportFormat.HTML)
        self.assertTrue(result.text_content.startswith("<!DOCTYPE html>"))
        self.assertIn("<title>Weekly</title>", result.text_content)
        self.assertIn(SAMPLE, result.text_content)
        self.assertIn("border-collapse", result.text_content)

    def test_unknown_format_renders_markdown(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        for fmt in ("xlsx", None, "", ReportFormat.PENDING, ReportFormat.ERROR):
            result = render("text", fmt)
            self.assertIs(result.format, ReportFormat.MARKDOWN, fmt)
            self.assertEqual(result.text_content, "text")

    def test_md_alias(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        self.assertIs(render("x", "md").format, ReportFormat.MARKDOWN)

    def test_markdown_round_trip_through_extraction(self):
        from supermind.report.renderer import render
        from supermind.report.visualization import extract

        raw = SAMPLE + '\n```json\n{"visualizations": [{"title": "Reach", "data": [{"name": "Email", "reach": 120}]}]}\n```\n'
        first = extract(raw)
        rendered = render(first.cleaned_text, "MARKDOWN", first.specs)
        second = extract(rendered.text_content)

        self.assertEqual(second.cleaned_text, first.cleaned_text)
        self.assertEqual(second.specs, [])

    def test_visualizations_passed_through(self):
        from supermind.datatypes import ChartSeries, VisualizationSpec
        from supermind.report.renderer import render

        specs = [VisualizationSpec("Reach", series=[ChartSeries("reach", [1.0])], categories=["a"])]
        for fmt in ("MARKDOWN", "HTML", "PDF", "DOCX"):
            self.assertEqual(render("x", fmt, specs).visualizations, specs)

    def test_pdf_populates_binary_only(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        result = render(SAMPLE, ReportFormat.PDF)

        self.assertIs(result.format, ReportFormat.PDF)
        self.assertTrue(result.binary_content.startswith(b"%PDF"))
        self.assertIsNone(result.text_content)

    def test_docx_populates_binary_only(self):
        from supermind.datatypes import ReportFormat
        from supermind.report.renderer import render

        result = render(SAMPLE, "DOCX")

        self.assertIs(result.format, ReportFormat.DOCX)
        self.assertTrue(result.binary_content.startswith(b"PK"))
        self.assertIsNone(result.text_content)


class TestArtifactHelpers(unittest.TestCase):

    def test_suggest_filename(self):
        from supermind.report.renderer import suggest_filename

        self.assertEqual(suggest_filename("PDF"), "report.pdf")
        self.assertEqual(suggest_filename("DOCX"), "report.docx")
        self.assertEqual(suggest_filename("HTML"), "report.html")
        self.assertEqual(suggest_filename("MARKDOWN"), "report.md")
        self.assertEqual(suggest_filename("PDF", stem="q3"), "q3.pdf")

    def test_mime_type(self):
        from supermind.report.renderer import mime_type

        self.assertEqual(mime_type("PDF"), "application/pdf")
        self.assertEqual(mime_type("markdown"), "text/markdown")


class TestReportResult(unittest.TestCase):

    def test_exactly_one_payload_enforced(self):
        from supermind.datatypes import ReportFormat, ReportResult

        with self.assertRaises(ValueError):
            ReportResult(ReportFormat.MARKDOWN)
        with self.assertRaises(ValueError):
            ReportResult(ReportFormat.MARKDOWN, text_content="a", error_message="b")
        with self.assertRaises(ValueError):
            ReportResult(ReportFormat.PDF, text_content="not bytes")

    def test_envelope_base64_encodes_binary(self):
        from supermind.datatypes import ReportFormat, ReportResult

        result = ReportResult.binary(ReportFormat.PDF, b"%PDF-1.4 data")
        envelope = json.loads(result.to_json())

        self.assertEqual(envelope["format"], "PDF")
        self.assertEqual(base64.b64decode(envelope["binary_content"]), b"%PDF-1.4 data")
        self.assertIsNone(envelope["text_content"])
        self.assertIsNone(envelope["error_message"])

    def test_error_turn_carries_message(self):
        from supermind.datatypes import ReportFormat, ReportResult

        turn = ReportResult.error("boom").to_turn("q")

        self.assertIs(turn.format, ReportFormat.ERROR)
        self.assertEqual(turn.answer_text, "boom")
        self.assertFalse(turn.is_pending)


if __name__ == "__main__":
    unittest.main()
