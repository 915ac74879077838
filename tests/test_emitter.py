"""Tests for the artifact store (program files, meshes, mesh cache)."""

from __future__ import annotations

import shutil
import threading
from unittest import mock

import pytest

from enclosureai.pipeline.emitter import ArtifactStore
from enclosureai.scad.compiler import RenderTimeout
from tests.plan_fixtures import FakeRenderer

PROGRAM = "// demo\nmodule a() {\n    cube([1.000, 1.000, 1.000]);\n}\n\na();\n"


@pytest.fixture
def store(tmp_path):
    return ArtifactStore(tmp_path / "outputs")


def test_creates_outputs_dir(tmp_path):
    ArtifactStore(tmp_path / "a" / "b")
    assert (tmp_path / "a" / "b").is_dir()


def test_new_ids_are_unique():
    ids = {ArtifactStore.new_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 32 for i in ids)


def test_urls(store):
    assert store.urls("abc") == {"stl": "/outputs/abc.stl", "scad": "/outputs/abc.scad"}
    custom = ArtifactStore(store.outputs_dir, url_prefix="/files/")
    assert custom.urls("abc")["stl"] == "/files/abc.stl"


def test_write_program_leaves_no_temp_files(store):
    path = store.write_program("abc", PROGRAM)
    assert path == store.program_path("abc")
    assert path.read_text(encoding="utf-8") == PROGRAM
    assert list(store.outputs_dir.glob("*.tmp")) == []


def test_emit_renders_and_caches(store):
    renderer = FakeRenderer()
    mesh = store.emit("first", PROGRAM, renderer)
    assert mesh == store.mesh_path("first")
    assert mesh.exists()
    assert renderer.calls == [(store.program_path("first"), mesh)]
    assert (store.cache_dir / f"{store.digest(PROGRAM)}.stl").exists()


def test_cache_hit_skips_renderer(store):
    renderer = FakeRenderer()
    store.emit("first", PROGRAM, renderer)
    second = store.emit("second", PROGRAM, renderer)
    assert len(renderer.calls) == 1
    assert second.read_bytes() == store.mesh_path("first").read_bytes()
    assert store.program_path("second").read_text(encoding="utf-8") == PROGRAM


def test_different_program_misses_cache(store):
    renderer = FakeRenderer()
    store.emit("first", PROGRAM, renderer)
    store.emit("second", PROGRAM.replace("1.000", "2.000"), renderer)
    assert len(renderer.calls) == 2


def test_cache_disabled(tmp_path):
    store = ArtifactStore(tmp_path, use_cache=False)
    renderer = FakeRenderer()
    store.emit("first", PROGRAM, renderer)
    store.emit("second", PROGRAM, renderer)
    assert len(renderer.calls) == 2
    assert not store.cache_dir.exists()


def test_renderer_errors_propagate_and_discard_cleans_up(store):
    with pytest.raises(RenderTimeout):
        store.emit("slow", PROGRAM, FakeRenderer(fail_with="timeout"))
    assert store.program_path("slow").exists()
    assert store.cached_mesh(PROGRAM) is None
    store.discard("slow")
    assert not store.program_path("slow").exists()
    assert not store.mesh_path("slow").exists()


def test_discard_unknown_id_is_harmless(store):
    store.discard("missing")


def test_overlapping_cache_writes_both_succeed(store, tmp_path):
    other = tmp_path / "other.stl"
    other.write_text("solid other\nendsolid other\n", encoding="utf-8")
    real_copy = shutil.copyfile
    nested = []

    def copy_then_race(src, dst):
        real_copy(src, dst)
        if not nested:
            # a second request stores the same program between our copy and rename
            nested.append(dst)
            store._remember_mesh(PROGRAM, other)
        return dst

    with mock.patch("enclosureai.pipeline.emitter.shutil.copyfile", side_effect=copy_then_race):
        mesh = store.emit("first", PROGRAM, FakeRenderer())
    assert mesh.exists()
    assert store.cached_mesh(PROGRAM) is not None
    assert list(store.cache_dir.glob("*.tmp")) == []


def test_concurrent_emits_of_one_program(store):
    errors: list[BaseException] = []

    def emit(i):
        try:
            store.emit(f"req{i}", PROGRAM, FakeRenderer())
        except BaseException as e:  # collected for the assertion below
            errors.append(e)

    threads = [threading.Thread(target=emit, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert all(store.mesh_path(f"req{i}").exists() for i in range(8))
    assert list(store.cache_dir.glob("*.tmp")) == []


def test_cache_write_failure_does_not_fail_emit(store):
    # a plain file where the cache directory should be
    store.cache_dir.write_text("", encoding="utf-8")
    renderer = FakeRenderer()
    mesh = store.emit("first", PROGRAM, renderer)
    assert mesh.exists()
    assert len(renderer.calls) == 1
