from dataclasses import dataclass

from kresolve.generator import Generator, Outputs, ResolutionContext, load_rendered
from kresolve.resources.kustomize import Kustomize
from kresolve.tools.render import Renderer


@dataclass
class KustomizeGenerator(Generator[Kustomize], resource_type=Kustomize):
    renderer: Renderer

    def generate(self, /, res: Kustomize, ctx: ResolutionContext) -> Outputs:
        output = self.renderer.kustomize(res.origin(), res.root, cwd=ctx.working_dir)
        return load_rendered(output, res.origin())
