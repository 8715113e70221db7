from dataclasses import dataclass

from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.parse import parse_locator
from kresolve.resources.resource import Resource


@dataclass
class ResourceGenerator(Generator[Resource], resource_type=Resource):
    recurse: bool = False
    """ Whether directories named by locator strings may be traversed. """

    def generate(self, /, res: Resource, ctx: ResolutionContext) -> Outputs:
        return [parse_locator(value, ctx.working_dir, recurse=self.recurse) for value in res.resources]
