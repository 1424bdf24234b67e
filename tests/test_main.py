"""Tests for the command-line entry point."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock


class _Client:
    def __init__(self, reply):
        self.reply = reply

    def run_flow(self, input_value, *, session_id=None, tweaks=None):
        return self.reply


class TestMain(unittest.TestCase):

    def _run(self, reply, *extra):
        import main

        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        with mock.patch("supermind.clients.create_flow_client", return_value=_Client(reply)):
            code = main.main(["Weekly summary", "--output-dir", tmp.name, *extra])
        return code, Path(tmp.name)

    def test_writes_markdown_artifact(self):
        from supermind.datatypes import FlowResponse

        code, out = self._run(FlowResponse(success=True, message="# Report"), "--format", "md")

        self.assertEqual(code, 0)
        self.assertEqual((out / "report.md").read_text(encoding="utf-8"), "# Report")

    def test_writes_pdf_artifact(self):
        from supermind.datatypes import FlowResponse

        code, out = self._run(FlowResponse(success=True, message="Body"), "--format", "PDF")

        self.assertEqual(code, 0)
        self.assertTrue((out / "report.pdf").read_bytes().startswith(b"%PDF"))

    def test_error_exit_code_and_json(self):
        from supermind.datatypes import FlowResponse

        with mock.patch("builtins.print") as printed:
            code, out = self._run(FlowResponse(success=False, error="quota exceeded"), "--json")

        self.assertEqual(code, 1)
        envelope = json.loads(printed.call_args.args[0])
        self.assertEqual(envelope["format"], "ERROR")
        self.assertIn("quota exceeded", envelope["error_message"])
        self.assertEqual(list(out.iterdir()), [])


if __name__ == "__main__":
    unittest.main()
