from .program import Program
from .shell import build_program, compile_program
from .compiler import (
    OpenScadRenderer, RenderError, RenderTimeout, RenderFailure,
    RenderArtifactMissing, find_openscad,
)
