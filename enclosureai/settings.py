"""
Runtime settings — read from the environment, optionally seeded from a
``.env`` / ``.env.local`` file in the project root.

Variables already present in the environment always win over the files.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from enclosureai.scad.compiler import DEFAULT_TIMEOUT_S
from enclosureai.credits import FREE_CREDITS

log = logging.getLogger("enclosureAI.settings")

ROOT = Path(__file__).resolve().parents[1]


# ── .env loader ────────────────────────────────────────────────────

def load_env(root: Path = ROOT) -> None:
    for name in (".env", ".env.local"):
        p = root / name
        if p.exists():
            for line in p.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and "=" in line and not line.startswith("#"):
                    k, v = line.split("=", 1)
                    k = k.strip()
                    v = v.strip().strip('"').strip("'")
                    if k and k not in os.environ:
                        os.environ[k] = v


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default


# ── Settings ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    outputs_dir: Path
    sessions_dir: Path
    credits_db: Path
    free_credits: int = FREE_CREDITS
    render_timeout_s: float = DEFAULT_TIMEOUT_S
    planner: str = "mock"
    openscad_bin: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        outputs = Path(os.environ.get("ENCLOSURE_OUTPUTS_DIR") or ROOT / "outputs")
        return cls(
            outputs_dir=outputs,
            sessions_dir=Path(os.environ.get("ENCLOSURE_SESSIONS_DIR") or ROOT / "sessions"),
            credits_db=Path(os.environ.get("ENCLOSURE_CREDITS_DB") or ROOT / "database.sqlite"),
            free_credits=int(_float_env("ENCLOSURE_FREE_CREDITS", FREE_CREDITS)),
            render_timeout_s=_float_env("ENCLOSURE_RENDER_TIMEOUT_S", DEFAULT_TIMEOUT_S),
            planner=os.environ.get("ENCLOSURE_PLANNER", "mock"),
            openscad_bin=os.environ.get("OPENSCAD_BIN") or None,
        )
