from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from kubernetes.client.api_client import ApiClient

from kresolve.errors import UnknownKindError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources import KResource
from kresolve.tools.fetch import Fetcher
from kresolve.tools.render import Renderer
from kresolve.tools.types import Manifest


@dataclass
class DispatchingGenerator(Generator[KResource], resource_type=KResource):
    """
    Dispatches to the appropriate generator based on the locator kind.

    Plain manifests can be passed to this generator as well; anything that is not a locator is returned as-is.
    """

    generators: dict[str, Generator] = field(default_factory=dict)
    """ Collection of generators to dispatch to based on the locator kind. """

    @staticmethod
    def default(
        *,
        fetcher: Fetcher | None = None,
        renderer: Renderer | None = None,
        search_path: list[Path] | None = None,
        recurse: bool = False,
        client_factory: Callable[[], ApiClient] | None = None,
    ) -> "DispatchingGenerator":
        """
        Create a new DispatchingGenerator with the default set of generators.

        Args:
            fetcher: The remote fetch collaborator. Without it, `Git` and `HTTP` locators cannot be resolved.
            renderer: The external renderer collaborator. Defaults to running the tools from the `PATH`.
            search_path: A list of directories to search for Helm charts in if the chart path is not explicitly
                         absolute or relative.
            recurse: Whether directories named in locator strings may be traversed.
            client_factory: Creates the Kubernetes API client for `Kubernetes` locators.
        """

        from kresolve.generator.file import FileGenerator
        from kresolve.generator.git import GitGenerator
        from kresolve.generator.helm import HelmGenerator
        from kresolve.generator.http import HTTPGenerator
        from kresolve.generator.jsonnet import JsonnetGenerator
        from kresolve.generator.kubernetes import KubernetesGenerator
        from kresolve.generator.kustomize import KustomizeGenerator
        from kresolve.generator.resource import ResourceGenerator
        from kresolve.generator.secret import SecretGenerator
        from kresolve.generator.stdin import StdinGenerator

        renderer = renderer or Renderer()

        return DispatchingGenerator(
            generators={
                "Resource": ResourceGenerator(recurse=recurse),
                "File": FileGenerator(),
                "Stdin": StdinGenerator(),
                "Git": GitGenerator(fetcher),
                "HTTP": HTTPGenerator(fetcher),
                "Helm": HelmGenerator(renderer, search_path=list(search_path or []), fetcher=fetcher),
                "Jsonnet": JsonnetGenerator(renderer),
                "Kustomize": KustomizeGenerator(renderer),
                "Secret": SecretGenerator(),
                "Kubernetes": KubernetesGenerator(client_factory),
            }
        )

    # Generator implementation

    def generate(self, /, res: KResource | Manifest, ctx: ResolutionContext) -> Outputs:
        if not isinstance(res, KResource):
            if (loaded := KResource.maybe_load(res)) is None:
                return [res]
            res = loaded

        if res.KIND not in self.generators:
            raise UnknownKindError(res.API_VERSION, res.KIND)

        generator = self.generators[res.KIND]
        return generator.generate(res, ctx)
