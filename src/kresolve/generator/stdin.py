from dataclasses import dataclass

from kresolve.errors import ReadError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.stdin import Stdin
from kresolve.tools.nodes import load_manifests


@dataclass
class StdinGenerator(Generator[Stdin], resource_type=Stdin):
    def generate(self, /, res: Stdin, ctx: ResolutionContext) -> Outputs:
        if ctx.stdin is None:
            raise ReadError(res.origin(), "no input stream is available")
        try:
            text = ctx.stdin.read()
        except OSError as exc:
            raise ReadError(res.origin(), str(exc))
        return list(load_manifests(text, res.origin()))
