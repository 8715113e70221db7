from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from loguru import logger

from kresolve.errors import ParseError, ReadError, UnsupportedInContextError
from kresolve.generator import Generator, Outputs, ResolutionContext, load_rendered
from kresolve.resources.helm import Helm
from kresolve.tools.fetch import Fetcher
from kresolve.tools.render import Renderer


@dataclass
class HelmGenerator(Generator[Helm], resource_type=Helm):
    renderer: Renderer
    """ The renderer collaborator that runs `helm template`. """

    search_path: list[Path] = field(default_factory=list)
    """ A list of directories to search for Helm charts in if the chart path is not explicitly absolute or relative. """

    fetcher: Fetcher | None = None
    """ The remote fetch collaborator, needed for charts in Git repositories. """

    def generate(self, /, res: Helm, ctx: ResolutionContext) -> Outputs:
        origin = res.origin()
        repository: str | None = None
        chart: str

        if res.chart.repository:
            if res.chart.path:
                raise ParseError(origin, "Cannot specify both `chart.repository` and `chart.path`.")
            if res.chart.git:
                raise ParseError(origin, "Cannot specify both `chart.repository` and `chart.git`.")
            if not res.chart.name:
                raise ParseError(origin, "`chart.name` must be set when `chart.repository` is set.")

            if res.chart.repository.startswith("oci://"):
                chart = f"{res.chart.repository.rstrip('/')}/{res.chart.name}"
            else:
                chart = res.chart.name
                repository = res.chart.repository

        elif res.chart.git:
            if res.chart.name:
                raise ParseError(origin, "Cannot specify both `chart.git` and `chart.name`, did you mean `chart.path`?")
            if self.fetcher is None:
                raise UnsupportedInContextError(origin, "no remote fetch collaborator is available")

            parsed = urlparse(res.chart.git)
            refs = parse_qs(parsed.query).get("ref")
            checkout_dir = self.fetcher.fetch_git(parsed._replace(query="").geturl(), refs[0] if refs else None)
            chart_dir = checkout_dir / (res.chart.path or "")
            if not chart_dir.resolve().is_relative_to(checkout_dir.resolve()):
                raise ReadError(origin, f"Chart path {res.chart.path!r} points outside of the repository")
            chart = str(chart_dir)

        elif res.chart.path:
            chart = str(self._find_chart(res.chart.path, ctx, origin))

        else:
            raise ParseError(origin, "Either `chart.repository`, `chart.git` or `chart.path` must be set.")

        output = self.renderer.helm(
            origin,
            chart=chart,
            release_name=res.release.name,
            namespace=res.release.namespace,
            repository=repository,
            version=res.chart.version,
            values=res.values,
            value_files=[str(ctx.resolve_path(file)) for file in res.valueFiles],
            include_tests=res.includeTests,
            cwd=ctx.working_dir,
        )
        return load_rendered(output, origin)

    def _find_chart(self, path: str, ctx: ResolutionContext, origin: str) -> Path:
        is_explicit = path.startswith(("/", "./", "../"))
        if is_explicit:
            chart_path = ctx.resolve_path(path)
            if not chart_path.exists():
                raise ReadError(origin, f"Chart path '{path}' not found")
            return chart_path

        for directory in [ctx.working_dir, *self.search_path]:
            chart_path = directory / path
            if chart_path.exists():
                logger.trace("Found chart '{}' at {}", path, chart_path)
                return chart_path

        raise ReadError(origin, f"Chart '{path}' not found in search path {self.search_path}")
