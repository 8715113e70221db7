from dataclasses import dataclass

from kresolve.errors import ParseError, UnsupportedInContextError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.http import HTTP
from kresolve.tools.fetch import Fetcher
from kresolve.tools.nodes import load_manifests


@dataclass
class HTTPGenerator(Generator[HTTP], resource_type=HTTP):
    fetcher: Fetcher | None
    """ The remote fetch collaborator. HTTP locators cannot be resolved without one. """

    def generate(self, /, res: HTTP, ctx: ResolutionContext) -> Outputs:
        if self.fetcher is None:
            raise UnsupportedInContextError(res.origin(), "no remote fetch collaborator is available")

        body = self.fetcher.fetch_url(res.url, res.headers)
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(res.url, f"response is not valid UTF-8: {exc}")
        return list(load_manifests(text, res.url))
