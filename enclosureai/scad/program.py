"""
CSG program model — a tiny operation tree that serializes to OpenSCAD.

A ``Program`` is a linear list of named declarations.  Each declaration
becomes one ``module name() { ... }`` block whose body is a tree of
primitives (``Cube``, ``Cylinder``), transforms (``Translate``,
``Rotate``) and boolean operations (``Boolean``).  Declarations refer to
earlier ones through ``Ref`` nodes, so the emitted source reads as a
sequence of declare / union / difference steps.

Numbers are always written with three decimals, which makes the output
byte-stable for identical input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

_INDENT = "    "


def fmt(x: float) -> str:
    """Format a number for OpenSCAD source (fixed 3 decimals, no -0)."""
    s = f"{x:.3f}"
    return "0.000" if s == "-0.000" else s


def vec(values: Sequence[float]) -> str:
    return "[" + ", ".join(fmt(v) for v in values) + "]"


class Node:
    """Base class for everything that can appear in a module body."""

    def lines(self, indent: str = "") -> list[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class Cube(Node):
    size: tuple[float, float, float]

    def lines(self, indent: str = "") -> list[str]:
        return [f"{indent}cube({vec(self.size)});"]


@dataclass(frozen=True)
class Cylinder(Node):
    """Cylinder, cone (``r1``/``r2``) or prism (small ``segments``)."""

    h: float
    r: float | None = None
    r1: float | None = None
    r2: float | None = None
    segments: int = 32

    def lines(self, indent: str = "") -> list[str]:
        if self.r is not None:
            radius = f"r = {fmt(self.r)}"
        else:
            radius = f"r1 = {fmt(self.r1 or 0.0)}, r2 = {fmt(self.r2 or 0.0)}"
        return [f"{indent}cylinder(h = {fmt(self.h)}, {radius}, $fn = {self.segments});"]


@dataclass(frozen=True)
class Translate(Node):
    offset: tuple[float, float, float]
    child: Node

    def lines(self, indent: str = "") -> list[str]:
        return [f"{indent}translate({vec(self.offset)})"] + self.child.lines(indent + _INDENT)


@dataclass(frozen=True)
class Rotate(Node):
    angles: tuple[float, float, float]
    child: Node

    def lines(self, indent: str = "") -> list[str]:
        return [f"{indent}rotate({vec(self.angles)})"] + self.child.lines(indent + _INDENT)


@dataclass(frozen=True)
class Boolean(Node):
    """``union`` or ``difference`` of its children, in order."""

    op: str
    children: tuple[Node, ...]

    def lines(self, indent: str = "") -> list[str]:
        out = [f"{indent}{self.op}() {{"]
        for child in self.children:
            out += child.lines(indent + _INDENT)
        out.append(f"{indent}}}")
        return out


@dataclass(frozen=True)
class Ref(Node):
    """Call of a previously declared module."""

    name: str

    def lines(self, indent: str = "") -> list[str]:
        return [f"{indent}{self.name}();"]


def union(*children: Node) -> Boolean:
    return Boolean("union", tuple(children))


def difference(*children: Node) -> Boolean:
    return Boolean("difference", tuple(children))


@dataclass(frozen=True)
class Declaration:
    name: str
    body: Node
    comment: str = ""

    def lines(self) -> list[str]:
        out = [f"// {self.comment}"] if self.comment else []
        out.append(f"module {self.name}() {{")
        out += self.body.lines(_INDENT)
        out += ["}", ""]
        return out


@dataclass
class Program:
    """Ordered collection of declarations plus top-level calls."""

    title: str
    notes: list[str] = field(default_factory=list)
    params: list[tuple[str, str]] = field(default_factory=list)
    declarations: list[Declaration] = field(default_factory=list)
    entry: list[Node] = field(default_factory=list)

    def declare(self, name: str, body: Node, comment: str = "") -> Ref:
        """Append a named module and return a reference to it."""
        if any(d.name == name for d in self.declarations):
            raise ValueError(f"Duplicate module name '{name}'")
        self.declarations.append(Declaration(name, body, comment))
        return Ref(name)

    def param(self, name: str, value: float | int) -> None:
        text = str(value) if isinstance(value, int) else fmt(value)
        self.params.append((name, text))

    def names(self) -> list[str]:
        return [d.name for d in self.declarations]

    def render(self) -> str:
        lines = [f"// {self.title}"]
        lines += [f"// {n}" for n in self.notes]
        lines.append("")
        if self.params:
            width = max(len(name) for name, _ in self.params)
            lines += [f"{name.ljust(width)} = {value};" for name, value in self.params]
            lines.append("")
        for decl in self.declarations:
            lines += decl.lines()
        for node in self.entry:
            lines += node.lines()
        return "\n".join(lines) + "\n"
