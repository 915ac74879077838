"""
Planner — turns a prompt (and optionally the previous plan) into a raw plan.

The planner only produces *raw* JSON: it may be partial or malformed,
which is fine because every result goes through the validator next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from enclosureai.pipeline.plan import DesignPlan, plan_to_dict

from .client import (
    LLMClient, MockLLMClient, OpenAICompatibleClient, GeminiClient, AnthropicClient,
)
from .prompts import SYSTEM_PROMPT, build_user_message

log = logging.getLogger("enclosureAI.planner")

PLANNERS = ("mock", "openai", "gemini", "anthropic")


class PlannerError(Exception):
    """The planner could not produce a plan (network, quota, bad JSON...)."""

    def __init__(self, message: str, backend: str = "") -> None:
        self.backend = backend
        super().__init__(message)


@dataclass
class LLMPlanner:
    client: LLMClient = field(default_factory=MockLLMClient)
    system_prompt: str = SYSTEM_PROMPT

    @property
    def backend(self) -> str:
        return type(self.client).__name__

    def plan_next(self, previous: DesignPlan | None, request: str) -> dict:
        """Return the raw plan for *request*, applied on top of *previous*."""
        prev = plan_to_dict(previous) if previous is not None else None
        user = build_user_message(prev, request)
        log.info("Planning with %s (%s)", self.backend,
                 "change request" if prev else "initial request")
        try:
            return self.client.complete_json(self.system_prompt, user)
        except Exception as e:
            log.warning("Planner %s failed: %s", self.backend, e)
            raise PlannerError(str(e) or type(e).__name__, self.backend) from e


def get_planner(name: str = "mock") -> LLMPlanner:
    """Build the planner selected by name (``ENCLOSURE_PLANNER``)."""
    key = (name or "mock").strip().lower()
    if key == "openai":
        return LLMPlanner(OpenAICompatibleClient())
    if key == "gemini":
        return LLMPlanner(GeminiClient())
    if key == "anthropic":
        return LLMPlanner(AnthropicClient())
    if key != "mock":
        log.warning("Unknown planner '%s'; using the offline heuristic planner", name)
    return LLMPlanner(MockLLMClient())
