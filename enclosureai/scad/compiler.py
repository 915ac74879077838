"""
OpenSCAD renderer — runs the openscad CLI to turn a program into an STL mesh.

The renderer is handed to the pipeline as a capability: anything with a
``render(program_path, mesh_path)`` method works, which is how tests swap
in a fake.  Rendering is never retried; a timeout is fatal.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Protocol

log = logging.getLogger("enclosureAI.render")

DEFAULT_TIMEOUT_S = 120.0


class RenderError(Exception):
    """Base class for everything that can go wrong while rendering."""


class RenderTimeout(RenderError):
    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"OpenSCAD timed out ({timeout_s:g}s).")


class RenderFailure(RenderError):
    def __init__(self, exit_status: int | None, stderr: str) -> None:
        self.exit_status = exit_status
        self.stderr = stderr
        super().__init__(stderr or f"OpenSCAD exited with code {exit_status}")


class RenderArtifactMissing(RenderError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"OpenSCAD reported success but {path.name} was not written.")


class Renderer(Protocol):
    def render(self, program_path: Path, mesh_path: Path) -> None: ...


def find_openscad() -> str | None:
    """Locate the openscad binary."""
    override = os.environ.get("OPENSCAD_BIN")
    if override:
        return override if Path(override).exists() else shutil.which(override)
    # Try PATH first
    path = shutil.which("openscad")
    if path:
        return path
    # Common Windows locations
    if sys.platform == "win32":
        for candidate in [
            r"C:\Program Files\OpenSCAD\openscad.exe",
            r"C:\Program Files (x86)\OpenSCAD\openscad.exe",
        ]:
            if Path(candidate).exists():
                return candidate
    return None


class OpenScadRenderer:
    """Render programs with the openscad CLI under a hard timeout."""

    def __init__(self, executable: str | None = None,
                 timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self.executable = executable
        self.timeout_s = timeout_s

    def available(self) -> bool:
        return (self.executable or find_openscad()) is not None

    def render(self, program_path: Path, mesh_path: Path) -> None:
        """Compile *program_path* to *mesh_path*.

        Raises
        ------
        RenderTimeout
            If openscad does not finish within ``timeout_s``.
        RenderFailure
            If openscad is missing or exits with a non-zero status.
        RenderArtifactMissing
            If openscad exits cleanly but the mesh file does not exist.
        """
        exe = self.executable or find_openscad()
        if not exe:
            raise RenderFailure(None, "OpenSCAD not found on PATH.")

        log.info("Rendering %s -> %s", program_path.name, mesh_path.name)
        try:
            result = subprocess.run(
                [exe, "-o", str(mesh_path), str(program_path)],
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            log.warning("OpenSCAD timed out after %.0fs on %s", self.timeout_s, program_path.name)
            raise RenderTimeout(self.timeout_s) from e
        except OSError as e:
            raise RenderFailure(None, str(e)) from e

        stderr = result.stderr.strip()
        if result.returncode != 0:
            log.warning("OpenSCAD exited with code %d", result.returncode)
            raise RenderFailure(result.returncode, stderr)
        if not mesh_path.exists():
            raise RenderArtifactMissing(mesh_path)
        if stderr:
            log.debug("OpenSCAD: %s", stderr)
