"""
EnclosureAI — entry point.

Usage:
    python -m enclosureai serve                      # start web server on :8000
    python -m enclosureai serve --port 3000
    python -m enclosureai compile plan.json          # plan file -> plan.scad
    python -m enclosureai compile plan.json --out box.scad --render
    python -m enclosureai prompt "ESP32 box with usb-c on the back"

Add --verbose to any command for debug logging.
"""

import json
import logging
import sys
from pathlib import Path

USAGE = (
    "Usage: python -m enclosureai serve [--port PORT] [--host HOST]\n"
    "       python -m enclosureai compile PLAN.json [--out FILE.scad] [--render]\n"
    "       python -m enclosureai prompt TEXT [--user ID] [--continue]\n"
    "       (any command) --verbose"
)


def _option(args: list[str], name: str, default: str | None = None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _positional(args: list[str]) -> str | None:
    """First argument after the command that is not an option or its value."""
    skip = False
    for a in args[1:]:
        if skip:
            skip = False
            continue
        if a in ("--port", "--host", "--out", "--user"):
            skip = True
            continue
        if not a.startswith("--"):
            return a
    return None


def _compile(args: list[str]) -> int:
    from enclosureai.pipeline.placer import FeatureCollision
    from enclosureai.pipeline.request import compile_raw_plan
    from enclosureai.scad.compiler import OpenScadRenderer, RenderError
    from enclosureai.settings import Settings, load_env

    src = _positional(args)
    if not src:
        print(USAGE)
        return 1
    plan_path = Path(src)
    raw = json.loads(plan_path.read_text(encoding="utf-8"))
    try:
        compiled = compile_raw_plan(raw)
    except FeatureCollision as e:
        print(f"Collision: {e}")
        return 2
    for issue in compiled.adjustments:
        print(f"  adjusted: {issue}")

    out = Path(_option(args, "--out") or plan_path.with_suffix(".scad"))
    out.write_text(compiled.program, encoding="utf-8")
    print(f"Wrote {out}")

    if "--render" in args:
        load_env()
        settings = Settings.from_env()
        renderer = OpenScadRenderer(settings.openscad_bin, settings.render_timeout_s)
        mesh = out.with_suffix(".stl")
        try:
            renderer.render(out, mesh)
        except RenderError as e:
            print(f"Render failed: {e}")
            return 3
        print(f"Wrote {mesh}")
    return 0


def _prompt(args: list[str]) -> int:
    from enclosureai.pipeline.state import RequestFailed
    from enclosureai.web.server import build_app

    text = _positional(args)
    if not text:
        print(USAGE)
        return 1
    app = build_app()
    pipeline = app.state.pipeline
    try:
        result = pipeline.run(text, _option(args, "--user", "cli"),
                              continue_session="--continue" in args)
    except RequestFailed as e:
        print(f"Failed at {e.stage.name}: {e.reason}")
        if e.detail:
            print(f"  {e.detail}")
        return 2
    for issue in result.adjustments:
        print(f"  adjusted: {issue}")
    print(f"Program: {pipeline.store.program_path(result.file_id)}")
    print(f"Mesh:    {result.mesh_path}")
    return 0


def main():
    args = sys.argv[1:]
    cmd = args[0] if args else "serve"

    logging.basicConfig(
        level=logging.DEBUG if "--verbose" in args else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if cmd == "serve":
        port = int(_option(args, "--port", "8000"))
        host = _option(args, "--host", "127.0.0.1")

        from enclosureai.web.server import main as serve
        serve(host=host, port=port)
    elif cmd == "compile":
        sys.exit(_compile(args))
    elif cmd == "prompt":
        sys.exit(_prompt(args))
    else:
        print(f"Unknown command: {cmd}")
        print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
