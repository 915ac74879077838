"""Tests for the planner layer: the offline heuristic client, the hosted
clients' guard rails (with the network mocked) and error wrapping."""

from __future__ import annotations

import json
import unittest
from unittest import mock

from enclosureai.pipeline.plan import validate
from enclosureai.planner import (
    AnthropicClient, GeminiClient, LLMPlanner, MockLLMClient,
    OpenAICompatibleClient, PlannerError, build_user_message, get_planner,
)
from enclosureai.planner.client import _extract_json
from tests.plan_fixtures import FailingLLMClient, StaticLLMClient, full_featured_raw


def _plan(prompt: str, previous=None) -> dict:
    return LLMPlanner(MockLLMClient()).plan_next(previous, prompt)


class TestMockClient(unittest.TestCase):

    def test_board_prompt(self):
        raw = _plan("ESP32 enclosure with USB-C on the front and cooling vents")
        self.assertEqual(raw["dimensions"], {"length": 59.0, "width": 32.0, "height": 14.0})
        self.assertEqual(raw["pcb_mounting"]["type"], "standoffs")
        self.assertEqual(raw["ports"], [{"type": "usb_c", "side": "front", "position": 29.5}])
        self.assertTrue(raw["ventilation"]["enabled"])

    def test_explicit_dimensions_win(self):
        raw = _plan("raspberry pi case, 100 x 70 x 30 mm")
        self.assertEqual(raw["dimensions"], {"length": 100.0, "width": 70.0, "height": 30.0})

    def test_ports_default_to_back_and_spread(self):
        raw = _plan("80x50x30 box with hdmi, ethernet")
        self.assertEqual([(p["type"], p["side"]) for p in raw["ports"]],
                         [("hdmi", "back"), ("ethernet", "back")])
        self.assertEqual([p["position"] for p in raw["ports"]], [26.7, 53.3])

    def test_usb_c_is_not_also_usb(self):
        raw = _plan("usb-c on the left")
        self.assertEqual([p["type"] for p in raw["ports"]], ["usb_c"])
        self.assertEqual(raw["ports"][0]["side"], "left")

    def test_vent_style_and_side(self):
        raw = _plan("honeycomb vents on the bottom")
        self.assertEqual(raw["ventilation"],
                         {"enabled": True, "style": "honeycomb", "side": "bottom"})
        raw = _plan("top ventilation slots")
        self.assertEqual(raw["ventilation"]["side"], "top")
        self.assertEqual(raw["ventilation"]["style"], "slots")

    def test_prevent_is_not_vent(self):
        raw = _plan("a box to prevent dust")
        self.assertFalse(raw["ventilation"]["enabled"])

    def test_lid_and_walls(self):
        raw = _plan("snap-fit lid, 3 mm walls")
        self.assertEqual(raw["lid"]["style"], "snap")
        self.assertEqual(raw["wall_thickness"], 3.0)
        raw = _plan("lid held by 6 screws")
        self.assertEqual(raw["lid"], {"style": "screw", "screw_count": 6})

    def test_edit_previous_plan(self):
        previous = validate(full_featured_raw())
        raw = _plan("make it taller and add an audio jack on the right", previous)
        self.assertEqual(raw["dimensions"]["height"], 40.0)
        self.assertEqual(raw["dimensions"]["length"], 89.0)
        self.assertEqual(len(raw["ports"]), 5)
        self.assertEqual(raw["ports"][-1]["type"], "audio_jack")
        self.assertEqual(raw["lid"]["screw_count"], 4)

    def test_remove_ports(self):
        previous = validate(full_featured_raw())
        raw = _plan("remove all ports", previous)
        self.assertEqual(raw["ports"], [])

    def test_output_always_validates(self):
        for prompt in ("", "???", "a giant 900x900x900 box with 40 screws",
                       "wall mount case, pillars, vents on the sides"):
            plan = validate(_plan(prompt))
            self.assertGreaterEqual(plan.wall_thickness, 2.0)


class TestPlanner(unittest.TestCase):

    def test_initial_message(self):
        self.assertEqual(build_user_message(None, "a box"), "INITIAL_REQUEST: a box")

    def test_change_message(self):
        msg = build_user_message({"b": 1, "a": 2}, "taller")
        self.assertEqual(msg, 'CURRENT_DESIGN_STATE: {"a": 2, "b": 1}\n\nCHANGE_REQUEST: taller')

    def test_previous_plan_serialized(self):
        client = StaticLLMClient({})
        LLMPlanner(client).plan_next(validate(full_featured_raw()), "taller")
        system, user = client.calls[0]
        self.assertIn("SCHEMA", system)
        state = user.split("CURRENT_DESIGN_STATE: ", 1)[1].split("\n\n", 1)[0]
        self.assertEqual(json.loads(state)["dimensions"]["length"], 89.0)

    def test_errors_are_wrapped(self):
        planner = LLMPlanner(FailingLLMClient())
        with self.assertRaises(PlannerError) as ctx:
            planner.plan_next(None, "a box")
        self.assertEqual(str(ctx.exception), "quota exceeded")
        self.assertEqual(ctx.exception.backend, "FailingLLMClient")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_get_planner(self):
        self.assertIsInstance(get_planner("mock").client, MockLLMClient)
        self.assertIsInstance(get_planner("OpenAI").client, OpenAICompatibleClient)
        self.assertIsInstance(get_planner("gemini").client, GeminiClient)
        self.assertIsInstance(get_planner("anthropic").client, AnthropicClient)
        self.assertIsInstance(get_planner("nonsense").client, MockLLMClient)
        self.assertIsInstance(get_planner("").client, MockLLMClient)


class TestExtractJson(unittest.TestCase):

    def test_fenced(self):
        self.assertEqual(_extract_json('```json\n{"lid": {"style": "snap"}}\n```'),
                         {"lid": {"style": "snap"}})

    def test_no_json(self):
        with self.assertRaises(ValueError):
            _extract_json("Sorry, I can't help with that.")


def _response(status: int, content: str = "") -> mock.Mock:
    r = mock.Mock(status_code=status)
    r.json.return_value = {"choices": [{"message": {"content": content}}]}
    return r


class TestHostedClients(unittest.TestCase):

    def test_openai_requires_config(self):
        client = OpenAICompatibleClient(base_url="", api_key="", model="")
        with self.assertRaises(RuntimeError):
            client.complete_json("s", "u")

    @mock.patch("enclosureai.planner.client.time.sleep")
    @mock.patch("enclosureai.planner.client.requests.post")
    def test_openai_retries_rate_limit(self, post, sleep):
        post.side_effect = [_response(429), _response(429),
                            _response(200, '{"lid": {"style": "snap"}}')]
        client = OpenAICompatibleClient(base_url="https://llm.example/v1/",
                                        api_key="k", model="m")
        self.assertEqual(client.complete_json("s", "u"), {"lid": {"style": "snap"}})
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [2, 4])
        self.assertEqual(post.call_args.args[0], "https://llm.example/v1/chat/completions")
        self.assertEqual(post.call_args.kwargs["json"]["messages"][0],
                         {"role": "system", "content": "s"})

    @mock.patch("enclosureai.planner.client.time.sleep")
    @mock.patch("enclosureai.planner.client.requests.post")
    def test_openai_gives_up(self, post, sleep):
        limited = _response(429)
        limited.raise_for_status.side_effect = RuntimeError("429 Too Many Requests")
        post.return_value = limited
        client = OpenAICompatibleClient(base_url="https://llm.example/v1",
                                        api_key="k", model="m")
        with self.assertRaises(RuntimeError):
            client.complete_json("s", "u")
        self.assertEqual(post.call_count, 4)
        self.assertEqual(sleep.call_count, 3)

    def test_gemini_requires_key(self):
        with self.assertRaises(RuntimeError):
            GeminiClient(api_key="").complete_json("s", "u")

    def test_anthropic_requires_key(self):
        with self.assertRaises(RuntimeError):
            AnthropicClient(api_key="").complete_json("s", "u")

    def test_anthropic_default_model(self):
        with mock.patch.dict("os.environ", {}, clear=True):
            self.assertEqual(AnthropicClient().model, "claude-haiku-4-5")
