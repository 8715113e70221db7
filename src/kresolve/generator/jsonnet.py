from dataclasses import dataclass
import json
from typing import Any

from kresolve.errors import ParseError, RenderError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.jsonnet import Jsonnet
from kresolve.tools.nodes import to_manifests
from kresolve.tools.render import Renderer


def _flatten(data: Any) -> Any:
    # A program may evaluate to an object of manifests keyed by an arbitrary name.
    if isinstance(data, dict) and "apiVersion" not in data and "kind" not in data:
        if all(isinstance(value, (dict, list)) for value in data.values()):
            return [_flatten(value) for value in data.values()]
    return data


@dataclass
class JsonnetGenerator(Generator[Jsonnet], resource_type=Jsonnet):
    """
    Evaluates a Jsonnet program. The program may evaluate to a single manifest, a list of manifests, a `kind: List` or
    an object whose values are manifests.
    """

    renderer: Renderer

    def generate(self, /, res: Jsonnet, ctx: ResolutionContext) -> Outputs:
        origin = res.origin()
        output = self.renderer.jsonnet(
            origin,
            filename=res.filename,
            code=res.code,
            jsonnet_path=res.jsonnetPath,
            ext_vars=res.extVars,
            ext_code=res.extCode,
            top_level_args=res.topLevelArgs,
            cwd=ctx.working_dir,
        )

        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise RenderError(origin, f"renderer produced malformed output: {exc}")

        try:
            return list(to_manifests(_flatten(data), origin))
        except ParseError as exc:
            raise RenderError(origin, f"renderer produced malformed output: {exc.message}")
