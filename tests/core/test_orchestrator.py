"""
Unit tests for `core/orchestrator.py` – ChatOrchestrator exchange behavior.

The model backend is a MagicMock whose `create_message` returns prepared
`MessagesResponse` objects in order, so each test controls exactly what the
backend "says" on the initial exchange and on the follow-up. The tool executor
is the real one, wired to a MagicMock weather client; this keeps the tool
registry, schema validation and result binding under test while the weather
lookup stays observable.

Covers:
- The tool path: tool_use -> execution -> one follow-up carrying the bound result
- The local fallback when the follow-up fails or has no text
- Invalid arguments and unknown tool names
- The plain path (no tools advertised)
- Backend failures rendered as text
- Demo mode without any network access
"""

import random
import unittest
from unittest.mock import MagicMock, patch

from core.credentials import CredentialConfig, CredentialResolver
from core.demo import DemoResponder
from core.orchestrator import ChatOrchestrator, NO_TOOL_RESULTS_TEXT
from llm_cloud.provider import MalformedResponseError, MessagesClientError
from llm_cloud.tools.core import ToolExecutor, ToolManager
from llm_cloud.tools.handlers import register_all_tools
from shared.models import CallerContext, ChatPath, ErrorKind, MessagesResponse, WeatherSnapshot

TOKYO = WeatherSnapshot(
    city="Tokyo", country="Japan", temperature=22, unit="°C", description="Clear sky",
    humidity=40, pressure=1012.0, wind_speed=3.5, cloud_cover=5,
)


def _response(*blocks):
    return MessagesResponse.model_validate({"id": "msg", "content": list(blocks)})


def _text(text):
    return {"type": "text", "text": text}


def _tool_use(call_id, name="get_weather", **arguments):
    return {"type": "tool_use", "id": call_id, "name": name, "input": arguments}


class TestChatOrchestrator(unittest.TestCase):
    """
    Live-mode tests; every collaborator is injected so no configuration or
    environment variable decides the path.
    """

    def setUp(self):
        manager = ToolManager()
        register_all_tools(manager)
        self.weather_client = MagicMock()
        self.weather_client.get_weather.return_value = TOKYO
        resolver = CredentialResolver(CredentialConfig())
        self.executor = ToolExecutor(manager, self.weather_client, resolver)
        self.client = MagicMock()
        self.orchestrator = ChatOrchestrator(
            client=self.client, tool_executor=self.executor, demo_mode=False,
        )
        self.caller = CallerContext(user_id="u-1", name="Ada")

    def test_tool_answer_sends_bound_result_in_follow_up(self):
        self.client.create_message.side_effect = [
            _response(_text("Let me check."), _tool_use("toolu_1", city="Tokyo")),
            _response(_text("It's 22°C and clear in Tokyo.")),
        ]

        outcome = self.orchestrator.respond_detailed(
            "What's the weather in Tokyo?", use_tools=True, caller=self.caller,
        )

        self.assertEqual(outcome.text, "It's 22°C and clear in Tokyo.")
        self.assertEqual(outcome.path, ChatPath.TOOL_ANSWER)
        self.assertEqual(outcome.exchanges, 2)
        self.assertEqual(self.client.create_message.call_count, 2)
        self.weather_client.get_weather.assert_called_once_with("Tokyo", "open-meteo")

        follow_up_messages = self.client.create_message.call_args_list[1].args[0]
        self.assertEqual([m["role"] for m in follow_up_messages], ["user", "assistant", "user"])
        result_block = follow_up_messages[-1]["content"][0]
        self.assertEqual(result_block["type"], "tool_result")
        self.assertEqual(result_block["tool_use_id"], "toolu_1")
        self.assertIn('"temperature": 22', result_block["content"])
        self.assertFalse(result_block["is_error"])

    def test_tools_and_caller_reach_the_system_prompt(self):
        self.client.create_message.return_value = _response(_text("Hello Ada"))

        self.orchestrator.respond("hi", system_prompt="Answer in French.", use_tools=True, caller=self.caller)

        kwargs = self.client.create_message.call_args.kwargs
        self.assertEqual([t["name"] for t in kwargs["tools"]], ["get_weather"])
        self.assertIn("Ada (ID: u-1)", kwargs["system"])
        self.assertTrue(kwargs["system"].endswith("\n\nAnswer in French."))

    def test_no_tool_use_returns_text_after_one_exchange(self):
        self.client.create_message.return_value = _response(_text("Just chatting."))
        outcome = self.orchestrator.respond_detailed("hello", use_tools=True, caller=self.caller)
        self.assertEqual((outcome.text, outcome.path, outcome.exchanges), ("Just chatting.", ChatPath.DIRECT, 1))
        self.weather_client.get_weather.assert_not_called()

    def test_follow_up_failure_falls_back_to_summaries(self):
        self.client.create_message.side_effect = [
            _response(_tool_use("toolu_1", city="Tokyo")),
            MessagesClientError("HTTP 529", status=529, body="overloaded"),
        ]
        outcome = self.orchestrator.respond_detailed("Weather in Tokyo?", use_tools=True, caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.TOOL_FALLBACK)
        self.assertEqual(outcome.text, "🌤️ Weather in Tokyo, Japan: 22°C, Clear sky")
        self.assertEqual(outcome.exchanges, 2)

    def test_follow_up_without_text_falls_back(self):
        self.client.create_message.side_effect = [
            _response(_tool_use("toolu_1", city="Tokyo")),
            _response(),
        ]
        outcome = self.orchestrator.respond_detailed("Weather in Tokyo?", use_tools=True, caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.TOOL_FALLBACK)
        self.assertIn("Tokyo", outcome.text)

    def test_absent_weather_with_failed_follow_up_reports_unavailable(self):
        self.weather_client.get_weather.return_value = None
        for follow_up in (MessagesClientError("Network error"), _response()):
            with self.subTest(follow_up=follow_up):
                self.client.create_message.side_effect = [
                    _response(_tool_use("toolu_1", city="Atlantis")),
                    follow_up,
                ]
                outcome = self.orchestrator.respond_detailed(
                    "Weather in Atlantis?", use_tools=True, caller=self.caller,
                )
                self.assertEqual(outcome.path, ChatPath.TOOL_FALLBACK)
                self.assertEqual(outcome.text, "Weather data not available")
                self.assertEqual(outcome.exchanges, 2)

    def test_repeated_tool_use_id_runs_no_tools(self):
        self.client.create_message.side_effect = MalformedResponseError(
            "Unexpected response shape from model backend: 1 validation error(s)", status=200,
        )
        outcome = self.orchestrator.respond_detailed("Tokyo twice?", use_tools=True, caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.ERROR)
        self.assertEqual(outcome.exchanges, 1)
        self.weather_client.get_weather.assert_not_called()

    def test_unexpected_failure_reports_exchanges_issued(self):
        # an unvalidated response can still carry a repeated id; binding then fails
        repeated = MessagesResponse.model_construct(
            id="msg",
            content=[
                _response(_tool_use("toolu_1", city="Tokyo")).content[0],
                _response(_tool_use("toolu_1", city="Paris")).content[0],
            ],
        )
        self.client.create_message.return_value = repeated

        outcome = self.orchestrator.respond_detailed("Tokyo and Paris?", use_tools=True, caller=self.caller)

        self.assertEqual(outcome.path, ChatPath.ERROR)
        self.assertEqual(outcome.exchanges, 1)
        self.assertEqual(self.client.create_message.call_count, 1)

    def test_missing_city_is_reported_without_lookup(self):
        self.client.create_message.side_effect = [
            _response(_tool_use("toolu_1")),
            _response(),
        ]
        outcome = self.orchestrator.respond_detailed("Weather?", use_tools=True, caller=self.caller)

        self.weather_client.get_weather.assert_not_called()
        self.assertEqual(outcome.tool_results[0].error_kind, ErrorKind.MISSING_PARAMETER)
        self.assertIn("Missing required parameter: city", outcome.text)
        error_block = self.client.create_message.call_args_list[1].args[0][-1]["content"][0]
        self.assertTrue(error_block["is_error"])

    def test_unknown_tool_short_circuits(self):
        self.client.create_message.return_value = _response(_tool_use("toolu_1", name="get_stock_price", ticker="ACME"))

        outcome = self.orchestrator.respond_detailed("ACME price?", use_tools=True, caller=self.caller)

        self.assertEqual(outcome.path, ChatPath.UNKNOWN_TOOL)
        self.assertEqual(outcome.exchanges, 1)
        self.assertEqual(self.client.create_message.call_count, 1)
        self.assertIn("get_stock_price", outcome.text)
        self.assertEqual(outcome.tool_results[0].error_kind, ErrorKind.UNKNOWN_TOOL)

    def test_failing_lookup_is_distinct_from_unknown_tool(self):
        self.weather_client.get_weather.side_effect = RuntimeError("boom")
        self.client.create_message.side_effect = [
            _response(_tool_use("toolu_1", city="Tokyo")),
            _response(_text("Sorry, the weather service failed.")),
        ]
        outcome = self.orchestrator.respond_detailed("Weather in Tokyo?", use_tools=True, caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.TOOL_ANSWER)
        self.assertEqual(outcome.tool_results[0].error_kind, ErrorKind.TOOL_EXECUTION_FAILURE)

    def test_results_answer_every_call_in_order(self):
        self.client.create_message.side_effect = [
            _response(_tool_use("toolu_a", city="Tokyo"), _tool_use("toolu_b", city="Paris")),
            _response(_text("Both done.")),
        ]
        self.orchestrator.respond("Tokyo and Paris?", use_tools=True, caller=self.caller)
        blocks = self.client.create_message.call_args_list[1].args[0][-1]["content"]
        self.assertEqual([b["tool_use_id"] for b in blocks], ["toolu_a", "toolu_b"])

    def test_plain_chat_does_not_advertise_tools(self):
        self.client.create_message.return_value = _response(_text("Hi Ada!"))
        executor = MagicMock()
        orchestrator = ChatOrchestrator(client=self.client, tool_executor=executor, demo_mode=False)

        outcome = orchestrator.respond_detailed("hello", use_tools=False, caller=self.caller)

        self.assertEqual((outcome.text, outcome.path, outcome.exchanges), ("Hi Ada!", ChatPath.DIRECT, 1))
        executor.run_tool.assert_not_called()
        self.assertNotIn("tools", self.client.create_message.call_args.kwargs)
        self.assertIn("Ada", self.client.create_message.call_args.kwargs["system"])

    def test_backend_http_error_becomes_text(self):
        self.client.create_message.side_effect = MessagesClientError(
            "HTTP 401", status=401, body='{"error": "invalid x-api-key"}',
        )
        outcome = self.orchestrator.respond_detailed("hello", caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.ERROR)
        self.assertEqual(outcome.text, 'Claude API Error (401): {"error": "invalid x-api-key"}')

    def test_malformed_response_becomes_text(self):
        self.client.create_message.side_effect = MalformedResponseError("Invalid JSON", status=200, body="<html>")
        text = self.orchestrator.respond("hello", use_tools=True, caller=self.caller)
        self.assertEqual(text, "Error: Invalid JSON")

    def test_unexpected_failure_becomes_text(self):
        self.client.create_message.side_effect = ValueError("kaboom")
        outcome = self.orchestrator.respond_detailed("hello", caller=self.caller)
        self.assertEqual(outcome.path, ChatPath.ERROR)
        self.assertEqual(outcome.text, "Error: kaboom")

    def test_fallback_text_is_never_empty(self):
        from core.orchestrator import fallback_text
        self.assertEqual(fallback_text([]), NO_TOOL_RESULTS_TEXT)


class TestDemoMode(unittest.TestCase):

    @patch("urllib.request.urlopen")
    def test_demo_mode_never_touches_the_network(self, mock_urlopen):
        factory = MagicMock()
        orchestrator = ChatOrchestrator(
            demo_mode=True,
            demo_responder=DemoResponder(seed=7),
            client_factory=factory,
        )

        plain = orchestrator.respond_detailed("hello there")
        weather = orchestrator.respond_detailed("what's the weather like?", use_tools=True)

        self.assertEqual(plain.path, ChatPath.DEMO)
        self.assertIn("hello there", plain.text)
        self.assertEqual(weather.path, ChatPath.DEMO)
        self.assertIn("(Demo mode)", weather.text)
        self.assertEqual(weather.exchanges, 0)
        factory.assert_not_called()
        mock_urlopen.assert_not_called()

    def test_same_seed_same_answer(self):
        first = ChatOrchestrator(demo_mode=True, demo_responder=DemoResponder(rng=random.Random(3)))
        second = ChatOrchestrator(demo_mode=True, demo_responder=DemoResponder(rng=random.Random(3)))
        for message in ("weather in my town?", "tell me a joke"):
            self.assertEqual(
                first.respond(message, use_tools=True),
                second.respond(message, use_tools=True),
            )


if __name__ == "__main__":
    unittest.main()
