"""
FastAPI web server — generate endpoint, credit lookup, health check and
static downloads of the generated files.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from enclosureai.credits import CreditLedger, SQLiteCredits
from enclosureai.pipeline.emitter import ArtifactStore
from enclosureai.pipeline.placer import FeatureCollision, placement_to_dict
from enclosureai.pipeline.plan import plan_to_dict
from enclosureai.pipeline.request import EnclosurePipeline
from enclosureai.pipeline.state import RequestFailed
from enclosureai.planner import PlannerError, get_planner
from enclosureai.scad.compiler import OpenScadRenderer, RenderTimeout
from enclosureai.session import DiskSessionStore
from enclosureai.settings import Settings, load_env

log = logging.getLogger("enclosureAI.web")


# ── Models ─────────────────────────────────────────────────────────

class GenerateRequest(BaseModel):
    prompt: str = ""
    userId: str = ""
    continueSession: bool = False


def _error(status: int, error: str, details: str = "", **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": error, "details": details, **extra})


def _failure_response(e: RequestFailed) -> JSONResponse:
    cause = e.cause
    if isinstance(cause, FeatureCollision):
        return _error(422, e.reason, e.detail, stage=e.stage.name, collision={
            "featureA": cause.feature_a,
            "featureB": cause.feature_b,
            "face": cause.face,
        })
    if isinstance(cause, PlannerError):
        return _error(502, e.reason, e.detail, stage=e.stage.name)
    if isinstance(cause, RenderTimeout):
        return _error(504, e.reason, e.detail, stage=e.stage.name)
    return _error(500, e.reason, e.detail, stage=e.stage.name)


# ── App ────────────────────────────────────────────────────────────

def create_app(pipeline: EnclosurePipeline, credits: CreditLedger) -> FastAPI:
    app = FastAPI(title="EnclosureAI")
    app.state.pipeline = pipeline
    app.state.credits = credits

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/generate")
    def generate(req: GenerateRequest):
        prompt = req.prompt.strip()
        user_id = req.userId.strip()
        if not prompt:
            return _error(400, "A non-empty 'prompt' string is required.")
        if not user_id:
            return _error(400, "A 'userId' is required.")

        if credits.get_credits(user_id) <= 0:
            return _error(403, "No credits remaining.", credits=0)

        try:
            result = pipeline.run(prompt, user_id, continue_session=req.continueSession)
        except RequestFailed as e:
            return _failure_response(e)

        credits.deduct_credit(user_id)
        return {
            "message": "Enclosure generated successfully.",
            "fileId": result.file_id,
            "stlUrl": result.urls["stl"],
            "scadUrl": result.urls["scad"],
            "designPlan": plan_to_dict(result.plan),
            "placements": placement_to_dict(result.placements),
            "adjustments": list(result.adjustments),
            "credits": credits.get_credits(user_id),
        }

    @app.get("/api/credits/{user_id}")
    def get_credits(user_id: str):
        return {"credits": credits.get_credits(user_id)}

    @app.get("/api/health")
    def health():
        available = getattr(pipeline.renderer, "available", None)
        return {
            "status": "ok",
            "openscad": bool(available()) if callable(available) else None,
        }

    app.mount("/outputs", StaticFiles(directory=pipeline.store.outputs_dir), name="outputs")
    return app


def build_app(settings: Settings | None = None) -> FastAPI:
    """Wire the production stores, planner and renderer from *settings*."""
    if settings is None:
        load_env()
        settings = Settings.from_env()
    pipeline = EnclosurePipeline(
        planner=get_planner(settings.planner),
        store=ArtifactStore(settings.outputs_dir),
        renderer=OpenScadRenderer(settings.openscad_bin, settings.render_timeout_s),
        sessions=DiskSessionStore(settings.sessions_dir),
    )
    credits = SQLiteCredits(settings.credits_db, settings.free_credits)
    log.info("Outputs in %s, planner=%s", Path(settings.outputs_dir), pipeline.planner.backend)
    return create_app(pipeline, credits)


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run(build_app(), host=host, port=port, reload=False)
