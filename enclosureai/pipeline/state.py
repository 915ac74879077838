"""
State machine for a single generate request.

States:
- RECEIVED:  prompt accepted, planner produced a raw plan
- VALIDATED: raw plan normalized into a DesignPlan
- PLACED:    every feature resolved onto a face
- COMPILED:  OpenSCAD program built
- EMITTED:   program written and rendered to a mesh
- FAILED:    terminal; records the stage that failed and why
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

log = logging.getLogger("enclosureAI.pipeline")


class RequestStage(Enum):
    RECEIVED = auto()
    VALIDATED = auto()
    PLACED = auto()
    COMPILED = auto()
    EMITTED = auto()
    FAILED = auto()


_NEXT = {
    RequestStage.RECEIVED: RequestStage.VALIDATED,
    RequestStage.VALIDATED: RequestStage.PLACED,
    RequestStage.PLACED: RequestStage.COMPILED,
    RequestStage.COMPILED: RequestStage.EMITTED,
}


class RequestFailed(Exception):
    """A request ended in FAILED.

    Attributes
    ----------
    stage : RequestStage
        The stage the request was in when it failed.
    reason : str
        Short user-facing message.
    detail : str
        Technical detail (exception text, renderer stderr, ...).
    cause : Exception | None
        The underlying exception, if any.
    """

    def __init__(self, stage: RequestStage, reason: str, detail: str = "",
                 cause: Exception | None = None) -> None:
        self.stage = stage
        self.reason = reason
        self.detail = detail
        self.cause = cause
        super().__init__(f"{reason} (at {stage.name})")


@dataclass
class RequestContext:
    """Tracks one request's progress through the stages."""
    file_id: Optional[str] = None
    stage: RequestStage = RequestStage.RECEIVED
    history: list[RequestStage] = field(default_factory=lambda: [RequestStage.RECEIVED])
    failure: Optional[RequestFailed] = None

    @property
    def done(self) -> bool:
        return self.stage in (RequestStage.EMITTED, RequestStage.FAILED)

    def advance(self, to: RequestStage) -> None:
        """Move to the next stage; skipping or going backwards is a bug."""
        if self.done:
            raise RuntimeError(f"Request already finished in {self.stage.name}")
        if _NEXT.get(self.stage) is not to:
            raise RuntimeError(f"Illegal transition {self.stage.name} -> {to.name}")
        log.debug("Request %s: %s -> %s", self.file_id or "-", self.stage.name, to.name)
        self.stage = to
        self.history.append(to)

    def fail(self, reason: str, detail: str = "",
             cause: Exception | None = None) -> RequestFailed:
        """Enter FAILED and return the exception to raise."""
        err = RequestFailed(self.stage, reason, detail, cause)
        log.info("Request %s failed at %s: %s", self.file_id or "-", self.stage.name, reason)
        self.failure = err
        self.stage = RequestStage.FAILED
        self.history.append(RequestStage.FAILED)
        return err
