"""
Request orchestration — drives one prompt through every stage:

  planner → validate → resolve → compile_program → emit (+ render)

Each stage advances the ``RequestContext``; any failure moves it to
FAILED and surfaces as a ``RequestFailed``.  Files written for a failed
request are discarded before the error propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from enclosureai.pipeline.emitter import ArtifactStore
from enclosureai.pipeline.placer import PlacementMap, FeatureCollision, resolve
from enclosureai.pipeline.plan import DesignPlan, validate_with_report
from enclosureai.pipeline.state import RequestContext, RequestStage, RequestFailed
from enclosureai.planner import LLMPlanner, PlannerError
from enclosureai.scad.compiler import Renderer, RenderError, RenderTimeout, RenderFailure
from enclosureai.scad.shell import compile_program
from enclosureai.session import SessionStore

log = logging.getLogger("enclosureAI.pipeline")


@dataclass(frozen=True)
class CompiledPlan:
    plan: DesignPlan
    placements: PlacementMap
    program: str
    adjustments: tuple[str, ...]


@dataclass(frozen=True)
class GenerateResult:
    file_id: str
    plan: DesignPlan
    placements: PlacementMap
    program: str
    mesh_path: Path
    urls: dict[str, str]
    adjustments: tuple[str, ...]
    history: tuple[RequestStage, ...]


def compile_raw_plan(raw) -> CompiledPlan:
    """Validate, resolve and compile a raw plan without touching disk.

    Raises ``FeatureCollision`` if two hard features overlap.
    """
    plan, adjustments = validate_with_report(raw)
    for issue in adjustments:
        log.info("ValidationDefaulted: %s", issue)
    placements = resolve(plan)
    return CompiledPlan(plan, placements, compile_program(plan, placements), tuple(adjustments))


class EnclosurePipeline:
    """One instance per server; every call to ``run`` is independent."""

    def __init__(
        self,
        planner: LLMPlanner,
        store: ArtifactStore,
        renderer: Renderer,
        sessions: SessionStore,
    ) -> None:
        self.planner = planner
        self.store = store
        self.renderer = renderer
        self.sessions = sessions

    def run(self, prompt: str, user_id: str, continue_session: bool = False) -> GenerateResult:
        """Generate an enclosure for *prompt*.

        With *continue_session* the user's last plan is handed to the
        planner as the state to edit.

        Raises
        ------
        RequestFailed
            With ``stage`` set to where the request stopped.
        """
        ctx = RequestContext()
        previous = self.sessions.get(user_id) if continue_session else None

        # ── RECEIVED: ask the planner ──
        try:
            raw = self.planner.plan_next(previous, prompt)
        except PlannerError as e:
            raise ctx.fail("Failed to generate design plan. Please try again.", str(e), e) from e

        # ── VALIDATED ──
        plan, adjustments = validate_with_report(raw)
        for issue in adjustments:
            log.info("ValidationDefaulted: %s", issue)
        ctx.advance(RequestStage.VALIDATED)
        # Saved before placement so a colliding plan can be fixed by a follow-up prompt.
        self.sessions.put(user_id, plan)

        # ── PLACED ──
        try:
            placements = resolve(plan)
        except FeatureCollision as e:
            raise ctx.fail(str(e), f"{e.feature_a} / {e.feature_b} on {e.face}", e) from e
        ctx.advance(RequestStage.PLACED)

        # ── COMPILED ──
        program = compile_program(plan, placements)
        ctx.advance(RequestStage.COMPILED)

        # ── EMITTED ──
        file_id = self.store.new_id()
        ctx.file_id = file_id
        try:
            mesh = self.store.emit(file_id, program, self.renderer)
        except RenderTimeout as e:
            self.store.discard(file_id)
            raise ctx.fail("STL generation timed out.", str(e), e) from e
        except RenderFailure as e:
            self.store.discard(file_id)
            raise ctx.fail("OpenSCAD compilation failed.", e.stderr or str(e), e) from e
        except RenderError as e:
            self.store.discard(file_id)
            raise ctx.fail("STL file was not generated.", str(e), e) from e
        except OSError as e:
            self.store.discard(file_id)
            raise ctx.fail("Could not write the output files.", str(e), e) from e
        ctx.advance(RequestStage.EMITTED)

        log.info("Request %s done: %d port(s), %d vent cell(s), lid=%s",
                 file_id, len(placements.ports), len(placements.vents), plan.lid.style)
        return GenerateResult(
            file_id=file_id,
            plan=plan,
            placements=placements,
            program=program,
            mesh_path=mesh,
            urls=self.store.urls(file_id),
            adjustments=tuple(adjustments),
            history=tuple(ctx.history),
        )


__all__ = [
    "CompiledPlan", "GenerateResult", "EnclosurePipeline", "compile_raw_plan",
    "RequestFailed",
]
