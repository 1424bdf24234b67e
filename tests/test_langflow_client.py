"""Tests for the Langflow flow clients.

Tests cover:
  - Gateway request shape and reply parsing
  - Direct Langflow request shape and nested message extraction
  - Stream draining when streaming is enabled
  - Client factory selection from config and secrets
"""

from __future__ import annotations

import unittest
from unittest import mock


def _langflow_reply(text="Final answer", stream_url=None):
    component = {"outputs": {"message": {"message": {"text": text}}}}
    if stream_url:
        component["artifacts"] = {"stream_url": stream_url}
    return {"session_id": "abc", "outputs": [{"outputs": [component]}]}


class TestGatewayClient(unittest.TestCase):

    def test_request_payload(self):
        from supermind.clients.langflow import FlowGatewayClient

        with mock.patch("supermind.clients.langflow.post_json",
                        return_value={"success": True, "message": "Hi"}) as post:
            reply = FlowGatewayClient("http://gw/").run_flow(
                "question", session_id="s1", tweaks={"X": {}},
            )

        url, payload = post.call_args.args[:2]
        self.assertEqual(url, "http://gw/run-flow")
        self.assertEqual(payload["inputValue"], "question")
        self.assertEqual(payload["inputType"], "chat")
        self.assertEqual(payload["outputType"], "chat")
        self.assertFalse(payload["stream"])
        self.assertEqual(payload["tweaks"], {"X": {}})
        self.assertEqual(payload["sessionId"], "s1")
        self.assertTrue(reply.success)
        self.assertEqual(reply.message, "Hi")

    def test_default_tweaks_sent(self):
        from supermind.clients.langflow import DEFAULT_TWEAKS, FlowGatewayClient

        with mock.patch("supermind.clients.langflow.post_json",
                        return_value={"success": True, "message": ""}) as post:
            FlowGatewayClient("http://gw").run_flow("q")

        payload = post.call_args.args[1]
        self.assertEqual(payload["tweaks"], DEFAULT_TWEAKS)
        self.assertNotIn("sessionId", payload)


class TestParseGatewayReply(unittest.TestCase):

    def test_failure_reply(self):
        from supermind.clients.langflow import parse_gateway_reply

        reply = parse_gateway_reply({"success": False, "error": "quota exceeded"})

        self.assertFalse(reply.success)
        self.assertEqual(reply.error, "quota exceeded")

    def test_failure_without_detail(self):
        from supermind.clients.langflow import parse_gateway_reply

        self.assertIsNone(parse_gateway_reply({"success": False}).error)

    def test_raw_langflow_response(self):
        from supermind.clients.langflow import parse_gateway_reply

        reply = parse_gateway_reply({"success": True, "response": _langflow_reply("Nested")})

        self.assertEqual(reply.message, "Nested")

    def test_malformed_reply(self):
        from supermind.clients.langflow import parse_gateway_reply
        from supermind.errors import UpstreamError

        with self.assertRaises(UpstreamError):
            parse_gateway_reply(["not", "a", "dict"])
        with self.assertRaises(UpstreamError):
            parse_gateway_reply({"success": True})


class TestExtractMessageText(unittest.TestCase):

    def test_primary_path(self):
        from supermind.clients.langflow import extract_message_text

        self.assertEqual(extract_message_text(_langflow_reply("Deep")), "Deep")

    def test_results_fallback(self):
        from supermind.clients.langflow import extract_message_text

        data = {"outputs": [{"outputs": [{"results": {"message": {"text": "From results"}}}]}]}
        self.assertEqual(extract_message_text(data), "From results")

    def test_missing_outputs(self):
        from supermind.clients.langflow import extract_message_text
        from supermind.errors import UpstreamError

        for data in ({}, {"outputs": []}, {"outputs": [{"outputs": [{}]}]}):
            with self.assertRaises(UpstreamError):
                extract_message_text(data)


class TestLangflowClient(unittest.TestCase):

    def _client(self, stream=False):
        from supermind.clients.langflow import LangflowClient

        return LangflowClient("https://lf.example/", "lf-1", "flow-9", "tok", stream=stream, timeout=7)

    def test_request_shape(self):
        with mock.patch("supermind.clients.langflow.post_json",
                        return_value=_langflow_reply()) as post:
            reply = self._client().run_flow("q", session_id="s1")

        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://lf.example/lf/lf-1/api/v1/run/flow-9")
        self.assertEqual(args[1]["input_value"], "q")
        self.assertEqual(args[1]["session_id"], "s1")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(kwargs["params"], {"stream": "false"})
        self.assertEqual(kwargs["timeout"], 7)
        self.assertEqual(reply.message, "Final answer")

    def test_stream_drained(self):
        events = [
            ("token", {"chunk": "Hel"}),
            ("token", {"chunk": "lo"}),
            ("end", {"message": {"text": "Hello world"}}),
        ]
        with mock.patch("supermind.clients.langflow.post_json",
                        return_value=_langflow_reply("", stream_url="https://lf.example/stream/1")), \
                mock.patch("supermind.clients.langflow.iter_sse_events",
                           return_value=iter(events)) as sse:
            reply = self._client(stream=True).run_flow("q")

        self.assertEqual(sse.call_args.args[0], "https://lf.example/stream/1")
        self.assertEqual(reply.message, "Hello world")

    def test_stream_chunks_joined_without_end(self):
        events = [("token", {"chunk": "a"}), ("token", {"chunk": "b"})]
        with mock.patch("supermind.clients.langflow.post_json",
                        return_value=_langflow_reply("", stream_url="u")), \
                mock.patch("supermind.clients.langflow.iter_sse_events", return_value=iter(events)):
            reply = self._client(stream=True).run_flow("q")

        self.assertEqual(reply.message, "ab")

    def test_stream_error_event(self):
        from supermind.errors import UpstreamError

        with mock.patch("supermind.clients.langflow.post_json",
                        return_value=_langflow_reply("", stream_url="u")), \
                mock.patch("supermind.clients.langflow.iter_sse_events",
                           return_value=iter([("error", "flow crashed")])):
            with self.assertRaises(UpstreamError):
                self._client(stream=True).run_flow("q")


class TestClientFactory(unittest.TestCase):

    def setUp(self):
        from supermind.config_loader import reset_global_config

        reset_global_config()

    def tearDown(self):
        from supermind.config_loader import reset_global_config

        reset_global_config()

    def test_gateway_default(self):
        from supermind.clients import FlowGatewayClient, create_flow_client

        with mock.patch("supermind.clients.load_secrets", return_value={}):
            client = create_flow_client("gateway")

        self.assertIsInstance(client, FlowGatewayClient)

    def test_langflow_from_secrets(self):
        from supermind.clients import LangflowClient, create_flow_client

        secrets = {
            "LANGFLOW_BASE_URL": "https://lf", "LANGFLOW_ID": "a",
            "FLOW_ID": "b", "APPLICATION_TOKEN": "t",
        }
        with mock.patch("supermind.clients.load_secrets", return_value=secrets):
            client = create_flow_client("langflow")

        self.assertIsInstance(client, LangflowClient)

    def test_unknown_kind(self):
        from supermind.clients import create_flow_client

        with self.assertRaises(ValueError):
            create_flow_client("carrier-pigeon")


if __name__ == "__main__":
    unittest.main()
