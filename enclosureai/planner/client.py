from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol
import json
import logging
import os
import re
import time

import requests

log = logging.getLogger("enclosureAI.planner")


class LLMClient(Protocol):
    def complete_json(self, system: str, user: str) -> dict:
        ...


def _extract_json(content: str) -> dict:
    match = re.search(r"\{.*\}", content, flags=re.DOTALL)
    if not match:
        raise ValueError("Model did not return JSON.")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Model returned JSON that is not an object.")
    return data


def _env(name: str, default: str = ""):
    return field(default_factory=lambda: os.environ.get(name, default))


# ── offline heuristic planner ───────────────────────────────────────

_STATE_RE = re.compile(r"CURRENT_DESIGN_STATE:\s*(\{.*?\})\s*(?:\n|$)", re.DOTALL)
_REQUEST_RE = re.compile(r"(?:CHANGE_REQUEST|INITIAL_REQUEST):\s*(.*)", re.DOTALL)

_NUM = r"(\d+(?:\.\d+)?)"
_DIMS_RE = re.compile(
    rf"{_NUM}\s*(?:mm)?\s*[x×*]\s*{_NUM}\s*(?:mm)?\s*[x×*]\s*{_NUM}")

# Board footprints with ~4 mm clearance per axis.
_BOARDS = [
    ("arduino nano", (49.0, 22.0, 17.0)),
    ("arduino uno", (73.0, 57.0, 19.0)),
    ("raspberry pi", (89.0, 60.0, 21.0)),
    ("esp32", (59.0, 32.0, 14.0)),
    ("arduino", (73.0, 57.0, 19.0)),
]

# Most specific first: matched text is blanked so "usb-c" is not also "usb".
_PORT_PATTERNS = [
    (r"usb[\s_-]?c\b|type[\s_-]?c\b", "usb_c"),
    (r"micro[\s_-]?usb", "micro_usb"),
    (r"\busb\b", "usb"),
    (r"\bhdmi\b", "hdmi"),
    (r"\bethernet\b|\brj45\b", "ethernet"),
    (r"\baudio\b|\bheadphone", "audio_jack"),
    (r"\bsd[\s_-]?card\b|\bsd\b", "sd_card"),
    (r"\bpower\b|\bdc[\s_-]?jack\b|\bbarrel\b", "power"),
]

_SIDE_RE = re.compile(r"\b(front|back|rear|left|right)\b")
_CLAUSE_RE = re.compile(r"[,.;]|\band\b|\bwith\b")


def _ports_in(text: str) -> list[tuple[str, str | None]]:
    """(type, side or None) for every connector mentioned in *text*."""
    found: list[tuple[str, str | None]] = []
    for clause in _CLAUSE_RE.split(text):
        side_match = _SIDE_RE.search(clause)
        side = side_match.group(1) if side_match else None
        if side == "rear":
            side = "back"
        for pattern, ptype in _PORT_PATTERNS:
            clause, n = re.subn(pattern, " ", clause)
            found += [(ptype, side)] * n
    return found


def _spread_ports(ports: list[dict], dims: dict) -> None:
    """Space ports that share a wall evenly along it."""
    by_side: dict[str, list[dict]] = {}
    for p in ports:
        by_side.setdefault(p["side"], []).append(p)
    for side, group in by_side.items():
        axis = "length" if side in ("front", "back") else "width"
        wall = float(dims.get(axis) or 40.0)
        for k, p in enumerate(group):
            p["position"] = round(wall * (k + 1) / (len(group) + 1), 1)


@dataclass
class MockLLMClient:
    """Offline fallback: a tiny heuristic parser that returns a plan-like dict.

    Understands explicit sizes ("80x50x30 mm"), common boards, connector
    names with an optional wall ("usb-c on the left"), ventilation, lid
    style, and simple edits of a previous plan ("make it taller").
    """

    step_mm: float = 10.0

    def complete_json(self, system: str, user: str) -> dict:
        state = _STATE_RE.search(user)
        plan: dict = json.loads(state.group(1)) if state else {}
        m = _REQUEST_RE.search(user)
        text = (m.group(1) if m else user).lower()

        dims = dict(plan.get("dimensions") or {})
        m = _DIMS_RE.search(text)
        if m:
            dims = {"length": float(m.group(1)), "width": float(m.group(2)),
                    "height": float(m.group(3))}
        elif not dims:
            for name, (length, width, height) in _BOARDS:
                if name in text:
                    dims = {"length": length, "width": width, "height": height}
                    break
        for word, axes, sign in (
            ("taller", ("height",), 1), ("shorter", ("height",), -1),
            ("longer", ("length",), 1), ("wider", ("width",), 1),
            ("narrower", ("width",), -1),
            ("bigger", ("length", "width", "height"), 1),
            ("larger", ("length", "width", "height"), 1),
            ("smaller", ("length", "width", "height"), -1),
        ):
            if word in text:
                for axis in axes:
                    if axis in dims:
                        dims[axis] = float(dims[axis]) + sign * self.step_mm
        if dims:
            plan["dimensions"] = dims

        if "wall mount" in text or "wall-mount" in text:
            plan["case_type"] = "wall_mount"
        elif "desktop" in text or "desk " in text:
            plan["case_type"] = "desktop"
        elif any(w in text for w in ("handheld", "remote", "portable")):
            plan["case_type"] = "handheld"

        m = re.search(rf"{_NUM}\s*mm\s*(?:thick\s*)?walls?", text)
        if m:
            plan["wall_thickness"] = float(m.group(1))

        if "pillar" in text:
            plan["pcb_mounting"] = {"type": "pillars", "standoff_height": 3, "hole_dia": 2.5}
        elif "standoff" in text or (
                "pcb_mounting" not in plan and any(b in text for b, _ in _BOARDS)):
            plan["pcb_mounting"] = {"type": "standoffs", "standoff_height": 3, "hole_dia": 2.5}

        ports = [] if re.search(r"\b(no|remove|without)\b[\w\s]*\bports?\b", text) \
            else list(plan.get("ports") or [])
        new_ports = [{"type": t, "side": s or "back"} for t, s in _ports_in(text)]
        if new_ports:
            ports += new_ports
            _spread_ports(ports, plan.get("dimensions") or {})
        plan["ports"] = ports

        vent = dict(plan.get("ventilation") or {"enabled": False})
        if re.search(r"\b(no|without|remove)\s+(vent|ventilation)", text):
            vent["enabled"] = False
        elif re.search(r"\bvent|\bcool|\bheat|\bfans?\b|airflow|breath", text):
            vent["enabled"] = True
        if "honeycomb" in text or "hex" in text:
            vent["style"] = "honeycomb"
        elif "slot" in text:
            vent["style"] = "slots"
        m = re.search(r"\b(top|bottom|front|back|left|right|sides)\s+(?:vent|ventilation)", text) \
            or re.search(r"vent\w*\s+(?:on|in)\s+(?:the\s+)?(top|bottom|front|back|left|right|sides)", text)
        if m:
            vent["side"] = m.group(1)
        plan["ventilation"] = vent

        lid = dict(plan.get("lid") or {})
        if "snap" in text:
            lid["style"] = "snap"
        elif "screw" in text:
            lid["style"] = "screw"
        m = re.search(rf"{_NUM}\s*screws", text)
        if m:
            lid["style"] = "screw"
            lid["screw_count"] = int(float(m.group(1)))
        plan["lid"] = lid
        return plan


# ── hosted models ───────────────────────────────────────────────────

_MAX_RETRIES = 3
_BASE_DELAY_S = 2


@dataclass
class OpenAICompatibleClient:
    """Client for OpenAI-compatible chat endpoints (OpenAI, Groq, ...).

    Configure environment variables:
      - LLM_BASE_URL (e.g. https://api.groq.com/openai/v1)
      - LLM_API_KEY
      - LLM_MODEL
    """
    base_url: str = _env("LLM_BASE_URL")
    api_key: str = _env("LLM_API_KEY")
    model: str = _env("LLM_MODEL")
    timeout_s: float = 60.0

    def complete_json(self, system: str, user: str) -> dict:
        if not (self.base_url and self.api_key and self.model):
            raise RuntimeError("LLM_BASE_URL, LLM_API_KEY, and LLM_MODEL must be set.")

        url = f"{self.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user}
            ],
            "temperature": 0.1,
            "response_format": {"type": "json_object"},
        }
        for attempt in range(_MAX_RETRIES + 1):
            r = requests.post(url, headers=headers, json=payload, timeout=self.timeout_s)
            if r.status_code == 429 and attempt < _MAX_RETRIES:
                # Exponential backoff: 2, 4, 8 seconds
                sleep_time = _BASE_DELAY_S * (2 ** attempt)
                log.warning("LLM rate limit hit. Retrying in %ds (attempt %d/%d)",
                            sleep_time, attempt + 1, _MAX_RETRIES)
                time.sleep(sleep_time)
                continue
            r.raise_for_status()
            data = r.json()
            content = data["choices"][0]["message"]["content"]
            return _extract_json(content)
        raise RuntimeError("Max retries exceeded")


@dataclass
class GeminiClient:
    """Client for Google AI Studio Gemini models.

    Configure environment variables:
      - GEMINI_API_KEY
      - GEMINI_MODEL (optional, default: gemini-flash-latest)
    """

    api_key: str = _env("GEMINI_API_KEY")
    model: str = _env("GEMINI_MODEL", "gemini-flash-latest")

    def complete_json(self, system: str, user: str) -> dict:
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY must be set.")

        import google.generativeai as genai
        from google.api_core.exceptions import ResourceExhausted

        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(
            self.model,
            system_instruction=system,
            generation_config={"response_mime_type": "application/json", "temperature": 0.1},
        )

        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = model.generate_content(user)
                content = response.text or ""
                return _extract_json(content)
            except ResourceExhausted:
                if attempt == _MAX_RETRIES:
                    raise
                # Exponential backoff: 2, 4, 8 seconds
                sleep_time = _BASE_DELAY_S * (2 ** attempt)
                log.warning("Gemini rate limit hit. Retrying in %ds (attempt %d/%d)",
                            sleep_time, attempt + 1, _MAX_RETRIES)
                time.sleep(sleep_time)

        raise RuntimeError("Max retries exceeded")


@dataclass
class AnthropicClient:
    """Client for Anthropic models.

    Configure environment variables:
      - ANTHROPIC_API_KEY
      - ANTHROPIC_MODEL (optional, default: claude-haiku-4-5)
    """

    api_key: str = _env("ANTHROPIC_API_KEY")
    model: str = _env("ANTHROPIC_MODEL", "claude-haiku-4-5")
    max_tokens: int = 1024

    def complete_json(self, system: str, user: str) -> dict:
        if not self.api_key:
            raise RuntimeError("ANTHROPIC_API_KEY must be set.")

        import anthropic

        client = anthropic.Anthropic(api_key=self.api_key, max_retries=_MAX_RETRIES)
        response = client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        content = "".join(b.text for b in response.content if b.type == "text")
        return _extract_json(content)
