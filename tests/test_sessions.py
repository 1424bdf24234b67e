"""Tests for the Session Manager.

Tests cover:
  - Newest-first ordering, with ties broken by creation order
  - Scoping by user and project
  - Atomic delete and snapshot reads
  - Immutable titles and title derivation
  - Pending turn resolution and the single-writer exchange
"""

from __future__ import annotations

import threading
import unittest
from datetime import datetime, timedelta, timezone


class _Clock:
    """Deterministic clock advancing a fixed step per call."""

    def __init__(self, step_s: float = 1.0):
        self.now = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step_s)

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class TestOrdering(unittest.TestCase):

    def test_newest_first(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager(clock=_Clock())
        s1 = mgr.create_session("u", "p", "first")
        s2 = mgr.create_session("u", "p", "second")
        s3 = mgr.create_session("u", "p", "third")

        ids = [s.session_id for s in mgr.list_sessions("u", "p")]
        self.assertEqual(ids, [s3.session_id, s2.session_id, s1.session_id])

    def test_same_timestamp_uses_creation_order(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager(clock=_Clock(step_s=0))
        s1 = mgr.create_session("u", "p", "a")
        s2 = mgr.create_session("u", "p", "b")

        ids = [s.session_id for s in mgr.list_sessions("u", "p")]
        self.assertEqual(ids, [s2.session_id, s1.session_id])

    def test_scoped_by_user_and_project(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        mine = mgr.create_session("u", "p", "mine")
        mgr.create_session("u", "other", "other project")
        mgr.create_session("someone", "p", "other user")

        self.assertEqual([s.session_id for s in mgr.list_sessions("u", "p")], [mine.session_id])
        self.assertEqual(mgr.list_sessions("nobody", "p"), [])


class TestTitles(unittest.TestCase):

    def test_derive_title(self):
        from supermind.constants import SESSION_TITLE_DEFAULT, SESSION_TITLE_MAX_CHARS
        from supermind.sessions import derive_title

        self.assertEqual(derive_title("\n  How   did we do?\nDetails"), "How did we do?")
        self.assertEqual(derive_title("   "), SESSION_TITLE_DEFAULT)
        long_title = derive_title("word " * 50)
        self.assertLessEqual(len(long_title), SESSION_TITLE_MAX_CHARS)
        self.assertTrue(long_title.endswith("..."))

    def test_title_immutable(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        session = mgr.create_session("u", "p", "Original")

        with self.assertRaises(AttributeError):
            session.title = "Changed"
        self.assertEqual(mgr.get_session(session.session_id).title, "Original")

    def test_short_title(self):
        from supermind.sessions import SessionManager

        session = SessionManager().create_session("u", "p", "A fairly long conversation title")

        self.assertEqual(session.short_title(8), "A fairly ...")
        self.assertEqual(session.short_title(100), "A fairly long conversation title")


class TestTurns(unittest.TestCase):

    def test_new_session_has_no_turns(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        session = mgr.create_session("u", "p")

        self.assertEqual(mgr.get_turns(session.session_id), [])
        self.assertEqual(session.turns, [])

    def test_append_preserves_order(self):
        from supermind.datatypes import ConversationTurn
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        for q in ("one", "two", "three"):
            mgr.append_turn(sid, ConversationTurn(query=q))

        self.assertEqual([t.query for t in mgr.get_turns(sid)], ["one", "two", "three"])

    def test_get_turns_is_snapshot(self):
        from supermind.datatypes import ConversationTurn
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        mgr.append_turn(sid, ConversationTurn(query="one"))

        snapshot = mgr.get_turns(sid)
        snapshot.append(ConversationTurn(query="injected"))
        snapshot[0].query = "mutated"

        self.assertEqual([t.query for t in mgr.get_turns(sid)], ["one"])

    def test_append_unknown_session_raises(self):
        from supermind.datatypes import ConversationTurn
        from supermind.errors import SessionNotFoundError
        from supermind.sessions import SessionManager

        with self.assertRaises(SessionNotFoundError):
            SessionManager().append_turn("missing", ConversationTurn(query="q"))

    def test_resolve_pending_in_place(self):
        from supermind.datatypes import ConversationTurn, ReportFormat
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        mgr.append_turn(sid, ConversationTurn(query="before", format=ReportFormat.MARKDOWN))
        pending = mgr.append_turn(sid, ConversationTurn(query="q", format=ReportFormat.PENDING))
        mgr.append_turn(sid, ConversationTurn(query="after", format=ReportFormat.MARKDOWN))

        final = ConversationTurn(query="q", format=ReportFormat.HTML, answer_text="<html>")
        mgr.resolve_pending(sid, pending.turn_id, final)

        turns = mgr.get_turns(sid)
        self.assertEqual([t.query for t in turns], ["before", "q", "after"])
        self.assertIs(turns[1].format, ReportFormat.HTML)
        self.assertFalse(any(t.is_pending for t in turns))

    def test_resolve_non_pending_raises(self):
        from supermind.datatypes import ConversationTurn, ReportFormat
        from supermind.errors import SessionError
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        done = mgr.append_turn(sid, ConversationTurn(query="q", format=ReportFormat.MARKDOWN))

        with self.assertRaises(SessionError):
            mgr.resolve_pending(sid, done.turn_id, ConversationTurn(query="q", format=ReportFormat.HTML))
        with self.assertRaises(SessionError):
            mgr.resolve_pending(sid, "nope", ConversationTurn(query="q", format=ReportFormat.HTML))


class TestDelete(unittest.TestCase):

    def test_delete_removes_session_and_turns(self):
        from supermind.datatypes import ConversationTurn
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        mgr.append_turn(sid, ConversationTurn(query="q"))

        self.assertTrue(mgr.delete_session(sid))
        self.assertEqual(mgr.get_turns(sid), [])
        self.assertIsNone(mgr.get_session(sid))
        self.assertEqual(mgr.list_sessions("u", "p"), [])

    def test_delete_unknown_returns_false(self):
        from supermind.sessions import SessionManager

        self.assertFalse(SessionManager().delete_session("missing"))

    def test_delete_refused_mid_exchange(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        with mgr.exchange(sid):
            self.assertFalse(mgr.delete_session(sid))
        self.assertTrue(mgr.delete_session(sid))

    def test_concurrent_readers_see_whole_state(self):
        from supermind.datatypes import ConversationTurn
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id
        for i in range(50):
            mgr.append_turn(sid, ConversationTurn(query=str(i)))

        observed = []

        def reader():
            for _ in range(200):
                observed.append(len(mgr.get_turns(sid)))

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        mgr.delete_session(sid)
        for t in threads:
            t.join()

        self.assertTrue(set(observed) <= {0, 50})


class TestExchange(unittest.TestCase):

    def test_second_exchange_busy(self):
        from supermind.errors import SessionBusyError
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id

        with mgr.exchange(sid):
            self.assertTrue(mgr.is_busy(sid))
            with self.assertRaises(SessionBusyError):
                with mgr.exchange(sid):
                    pass
        self.assertFalse(mgr.is_busy(sid))

    def test_slot_released_on_error(self):
        from supermind.sessions import SessionManager

        mgr = SessionManager()
        sid = mgr.create_session("u", "p", "q").session_id

        with self.assertRaises(RuntimeError):
            with mgr.exchange(sid):
                raise RuntimeError("boom")
        self.assertFalse(mgr.is_busy(sid))

    def test_unknown_session(self):
        from supermind.errors import SessionNotFoundError
        from supermind.sessions import SessionManager

        with self.assertRaises(SessionNotFoundError):
            with SessionManager().exchange("missing"):
                pass


if __name__ == "__main__":
    unittest.main()
