"""
Program emitter — writes compiled programs and rendered meshes under an
outputs directory, one fresh id per request.

Layout:
  outputs/<id>.scad           program text (written atomically)
  outputs/<id>.stl            rendered mesh
  outputs/cache/<sha256>.stl  meshes keyed by program text

Identical programs produce identical meshes, so a cache hit copies the
stored mesh to the new id instead of running the renderer again.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path

from enclosureai.scad.compiler import Renderer

log = logging.getLogger("enclosureAI.emitter")


class ArtifactStore:
    """Owns the outputs directory and the mesh cache inside it."""

    def __init__(self, outputs_dir: Path, url_prefix: str = "/outputs",
                 use_cache: bool = True) -> None:
        self.outputs_dir = Path(outputs_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.use_cache = use_cache
        self.cache_dir = self.outputs_dir / "cache"
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    # ── paths ───────────────────────────────────────────────────────

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def program_path(self, file_id: str) -> Path:
        return self.outputs_dir / f"{file_id}.scad"

    def mesh_path(self, file_id: str) -> Path:
        return self.outputs_dir / f"{file_id}.stl"

    def urls(self, file_id: str) -> dict[str, str]:
        return {
            "stl": f"{self.url_prefix}/{file_id}.stl",
            "scad": f"{self.url_prefix}/{file_id}.scad",
        }

    # ── writing ─────────────────────────────────────────────────────

    def write_program(self, file_id: str, text: str) -> Path:
        """Write the program via a temp file + rename so readers never see half of it."""
        target = self.program_path(file_id)
        fd, tmp = tempfile.mkstemp(dir=self.outputs_dir, prefix=f".{file_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return target

    def discard(self, file_id: str) -> None:
        """Remove every file for *file_id* after a failed request."""
        for path in (self.program_path(file_id), self.mesh_path(file_id)):
            path.unlink(missing_ok=True)
        for tmp in self.outputs_dir.glob(f".{file_id}.*.tmp"):
            tmp.unlink(missing_ok=True)

    # ── mesh cache ──────────────────────────────────────────────────

    @staticmethod
    def digest(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def cached_mesh(self, text: str) -> Path | None:
        if not self.use_cache:
            return None
        path = self.cache_dir / f"{self.digest(text)}.stl"
        return path if path.exists() else None

    def _remember_mesh(self, text: str, mesh: Path) -> None:
        """Store *mesh* under the digest of *text*; failures only cost a cache miss."""
        if not self.use_cache:
            return
        target = self.cache_dir / f"{self.digest(text)}.stl"
        tmp = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{target.stem[:12]}.",
                                       suffix=".tmp")
            os.close(fd)
            shutil.copyfile(mesh, tmp)
            os.replace(tmp, target)
        except OSError as e:
            log.warning("Could not cache mesh %s: %s", target.name, e)
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)

    def emit(self, file_id: str, text: str, renderer: Renderer) -> Path:
        """Write *text* for *file_id* and make sure its mesh exists.

        Returns the mesh path.  Renderer errors propagate unchanged; the
        caller decides whether to ``discard``.
        """
        program = self.write_program(file_id, text)
        mesh = self.mesh_path(file_id)
        hit = self.cached_mesh(text)
        if hit is not None:
            log.info("Mesh cache hit for %s (%s)", file_id, hit.stem[:12])
            shutil.copyfile(hit, mesh)
            return mesh
        renderer.render(program, mesh)
        self._remember_mesh(text, mesh)
        return mesh
