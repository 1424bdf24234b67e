#!/usr/bin/env python3
"""SuperMind -- Interactive terminal chat.

Type questions and get reports back in the chosen format.  Binary reports
(PDF/DOCX) are saved to the output directory; text reports are printed.

Commands:
    /sessions     list chats for this user and project, newest first
    /open N       switch to chat N from the last listing
    /delete N     delete chat N from the last listing
    /new          start a new chat with the next message
    /format FMT   change output format (PDF, DOCX, HTML, MARKDOWN)
    /quit         exit

Usage:
    python run.py
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)


# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------

def _color(text: str, code: str) -> str:
    """Wrap text in ANSI color codes (no-op on Windows)."""
    if os.name == "nt":
        return text
    return f"\033[{code}m{text}\033[0m"


def _green(t: str) -> str:
    return _color(t, "32")


def _yellow(t: str) -> str:
    return _color(t, "33")


def _red(t: str) -> str:
    return _color(t, "31")


def _cyan(t: str) -> str:
    return _color(t, "36")


def _bold(t: str) -> str:
    return _color(t, "1")


def _dim(t: str) -> str:
    return _color(t, "2")


def _banner():
    print("")
    print(_bold(_cyan("  ================================================================")))
    print(_bold(_cyan("     SUPERMIND -- AI Report Chat")))
    print(_bold(_cyan("  ================================================================")))
    print(_dim("  Ask a question, get a PDF, DOCX, HTML or Markdown report"))
    print(_dim("  Type /sessions, /open N, /delete N, /new, /format FMT or /quit"))
    print("")


def _separator():
    print(_dim("  " + "-" * 60))


def _ok(msg: str):
    print(f"  {_green('[OK]')} {msg}")


def _warn(msg: str):
    print(f"  {_yellow('[!]')} {msg}")


def _err(msg: str):
    print(f"  {_red('[ERROR]')} {msg}")


def _info(msg: str):
    print(f"  {_dim('[i]')} {msg}")


def _prompt(msg: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    try:
        value = input(f"  > {msg}{suffix}: ").strip()
    except (EOFError, KeyboardInterrupt):
        print("")
        sys.exit(0)
    return value if value else default


# ---------------------------------------------------------------------------
# Chat state
# ---------------------------------------------------------------------------

class ChatLoop:
    """Holds the current session, format and last session listing."""

    def __init__(self, service, user_id: str, project_id: str, fmt, output_dir: Path):
        self.service = service
        self.user_id = user_id
        self.project_id = project_id
        self.fmt = fmt
        self.output_dir = output_dir
        self.session_id: str | None = None
        self.listing: list = []
        self.saved = 0

    # -- commands -------------------------------------------------------

    def show_sessions(self):
        self.listing = self.service.list_sessions(self.user_id, self.project_id)
        if not self.listing:
            _info("No chats yet.")
            return
        for i, session in enumerate(self.listing, start=1):
            marker = "*" if session.session_id == self.session_id else " "
            print(f"  {marker} {i:>2}. {session.short_title(40)}  "
                  + _dim(session.created_at.strftime("%Y-%m-%d %H:%M")))

    def _pick(self, arg: str):
        try:
            idx = int(arg) - 1
        except ValueError:
            _warn("Give a number from /sessions")
            return None
        if not 0 <= idx < len(self.listing):
            _warn("No such chat; run /sessions first")
            return None
        return self.listing[idx]

    def open_session(self, arg: str):
        session = self._pick(arg)
        if session is None:
            return
        self.session_id = session.session_id
        _ok(f"Opened: {session.title}")
        for turn in self.service.get_turns(session.session_id):
            print(_bold(f"  you: {turn.query}"))
            if turn.answer_text is not None:
                print(f"  [{turn.format.value}] {turn.answer_text[:200]}")
            elif turn.binary_payload is not None:
                print(_dim(f"  [{turn.format.value}] {len(turn.binary_payload)} bytes"))

    def delete_session(self, arg: str):
        session = self._pick(arg)
        if session is None:
            return
        if not self.service.delete_session(session.session_id):
            _err("Could not delete that chat.")
            return
        if session.session_id == self.session_id:
            self.session_id = None
        self.listing = [s for s in self.listing if s.session_id != session.session_id]
        _ok(f"Deleted: {session.title}")

    def set_format(self, arg: str):
        from supermind.datatypes import ReportFormat

        self.fmt = ReportFormat.parse(arg)
        _ok(f"Format: {self.fmt.value}")

    # -- messages -------------------------------------------------------

    def ask(self, query: str):
        from supermind.constants import MSG_PENDING
        from supermind.report.renderer import suggest_filename

        print(_dim(f"  {MSG_PENDING}"))
        reply = self.service.send(
            self.user_id, self.project_id, query, self.fmt, session_id=self.session_id,
        )
        self.session_id = reply.session_id
        result = reply.result

        if result.is_error:
            _err(result.error_message)
            return

        if result.binary_content is not None:
            self.saved += 1
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / suggest_filename(result.format, stem=f"report_{self.saved}")
            path.write_bytes(result.binary_content)
            _ok(f"Saved {result.format.value}: {path}")
        else:
            _separator()
            print(result.text_content)
            _separator()

        for spec in result.visualizations or []:
            _info(f"Chart: {spec.title} ({spec.chart_kind.value}, {len(spec.categories)} points)")

    def handle(self, line: str) -> bool:
        """Process one input line.  Returns False to quit."""
        if not line.startswith("/"):
            self.ask(line)
            return True

        command, _, arg = line.partition(" ")
        arg = arg.strip()
        if command in ("/quit", "/exit"):
            return False
        if command == "/sessions":
            self.show_sessions()
        elif command == "/open":
            self.open_session(arg)
        elif command == "/delete":
            self.delete_session(arg)
        elif command == "/new":
            self.session_id = None
            _ok("New chat; your next message starts it.")
        elif command == "/format":
            self.set_format(arg)
        else:
            _warn(f"Unknown command {command}")
        return True


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    _banner()

    from supermind.chat_service import ChatService
    from supermind.clients import create_flow_client
    from supermind.datatypes import ReportFormat

    try:
        client = create_flow_client()
    except SystemExit as exc:
        _err(f"Failed to load connection settings: {exc}")
        _info("Create a .env file from .env.example")
        return 1

    user_id = _prompt("User id", "local")
    project_id = _prompt("Project id", "default")
    fmt = ReportFormat.parse(_prompt("Report format (PDF/DOCX/HTML/MARKDOWN)", "MARKDOWN"))
    output_dir = Path(_prompt("Output directory", "output"))
    _ok(f"Format: {fmt.value}")

    loop = ChatLoop(ChatService(client), user_id, project_id, fmt, output_dir)
    while True:
        line = _prompt("You")
        if not line:
            continue
        if not loop.handle(line):
            break

    print("")
    _ok("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
