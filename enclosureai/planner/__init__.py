"""Planner — natural language to raw design plan."""

from .client import (
    LLMClient, MockLLMClient, OpenAICompatibleClient, GeminiClient, AnthropicClient,
)
from .planner import LLMPlanner, PlannerError, PLANNERS, get_planner
from .prompts import SYSTEM_PROMPT, build_user_message

__all__ = [
    # Clients
    "LLMClient", "MockLLMClient", "OpenAICompatibleClient", "GeminiClient",
    "AnthropicClient",
    # Planner
    "LLMPlanner", "PlannerError", "PLANNERS", "get_planner",
    # Prompts
    "SYSTEM_PROMPT", "build_user_message",
]
