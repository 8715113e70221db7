from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path
import sys
from typing import Any, NoReturn, Optional

from kubernetes.client.api_client import ApiClient
from kubernetes.config.config_exception import ConfigException
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config
from loguru import logger
from typer import Argument, Exit, Option

from kresolve.engine import ExpansionEngine
from kresolve.errors import KResolveError, UnsupportedInContextError
from kresolve.filter import OutputFilter
from kresolve.generator.dispatch import DispatchingGenerator
from kresolve.project.config import ProjectConfig
from kresolve.resources import PROVENANCE_ANNOTATIONS, KResource
from kresolve.resources.resource import Resource
from kresolve.tools.fetch import Fetcher
from kresolve.tools.nodes import dump_manifests
from kresolve.tools.render import Renderer
from kresolve.tools.types import Manifest, Manifests

from . import app


class OutputFormat(str, Enum):
    YAML = "yaml"
    JSON = "json"


def fail(exc: Exception) -> NoReturn:
    logger.error("{}", exc)
    raise Exit(1)


def new_client_factory(in_cluster: bool) -> Callable[[], ApiClient]:
    """
    Return a factory for the Kubernetes API client. The configuration is only loaded when the first `Kubernetes`
    locator is resolved, so that commands that never talk to a cluster do not require a kubeconfig.
    """

    def factory() -> ApiClient:
        try:
            if in_cluster:
                logger.info("Using in-cluster configuration.")
                load_incluster_config()
            else:
                load_kube_config()
        except ConfigException as exc:
            raise UnsupportedInContextError("kubernetes", f"no usable Kubernetes configuration: {exc}")
        return ApiClient()

    return factory


def new_engine(
    *,
    depth: int | None = None,
    workers: int | None = None,
    recurse: bool = False,
    in_cluster: bool = False,
) -> ExpansionEngine:
    """
    Create an expansion engine from the project configuration. Explicitly passed options take precedence.
    """

    try:
        project = ProjectConfig.load()
    except ValueError as exc:
        fail(exc)

    config = project.config
    generator = DispatchingGenerator.default(
        fetcher=Fetcher(config.cache_dir),
        renderer=Renderer(kube_version=config.kube_version),
        search_path=config.search_path,
        recurse=recurse,
        client_factory=new_client_factory(in_cluster),
    )
    return ExpansionEngine(
        generator,
        max_depth=config.max_depth if depth is None else depth,
        working_dir=Path.cwd(),
        stdin=sys.stdin,
        workers=config.workers if workers is None else workers,
    )


def expand(engine: ExpansionEngine, items: Sequence[Manifest | KResource]) -> Manifests:
    """
    Expand *items*, exiting with status 1 if resolution fails.
    """

    try:
        return engine.expand(items)
    except KResolveError as exc:
        fail(exc)


def new_filter(keep_annotations: bool = False, **kwargs: Any) -> OutputFilter:
    """
    Create the output filter. The provenance annotations are removed unless *keep_annotations* is set.
    """

    try:
        return OutputFilter(clear_annotations=[] if keep_annotations else list(PROVENANCE_ANNOTATIONS), **kwargs)
    except KResolveError as exc:
        fail(exc)


def write(manifests: Manifests, output: OutputFormat, output_filter: OutputFilter | None = None) -> None:
    output_filter = output_filter or new_filter()
    sys.stdout.write(dump_manifests(output_filter.apply(manifests), output.value))


@app.command()
def resolve(
    inputs: list[str] = Argument(
        ..., help="Locators to resolve: files, directories, URLs, Git repositories or `-` for standard input."
    ),
    depth: Optional[int] = Option(
        None, "--depth", "-d", help="Limit the number of times expansion can happen. [default: 100]"
    ),
    output: OutputFormat = Option(OutputFormat.YAML, "--output", "-o", help="The output format."),
    recurse: bool = Option(False, "--recurse", "-r", help="Traverse directories."),
    selector: Optional[str] = Option(
        None, "--selector", "-l", help="Only keep resources matching this label selector."
    ),
    kind: Optional[str] = Option(None, "--kind", help="Only keep resources of these (comma separated) kinds."),
    keep_status: bool = Option(False, "--keep-status", help="Retain the `status` field of resources."),
    keep_comments: bool = Option(True, "--keep-comments/--no-keep-comments", help="Retain comments."),
    format: bool = Option(False, "--format", help="Rewrite fields into canonical Kubernetes order."),
    sort: bool = Option(False, "--sort", help="Sort resources by kind, namespace and name."),
    keep_annotations: bool = Option(
        False, "--keep-annotations", help="Retain the annotations that record where each resource came from."
    ),
    workers: Optional[int] = Option(
        None, "--workers", help="The number of locators resolved concurrently. [default: 4]"
    ),
    in_cluster: bool = Option(
        False, help="Use the in-cluster Kubernetes configuration to resolve `Kubernetes` locators."
    ),
) -> None:
    """
    Resolve locators into a flat stream of Kubernetes manifests.
    """

    output_filter = new_filter(
        keep_annotations,
        label_selector=selector,
        kind=kind,
        keep_status=keep_status,
        keep_comments=keep_comments,
        format=format,
        sort=sort,
    )

    engine = new_engine(depth=depth, workers=workers, recurse=recurse, in_cluster=in_cluster)
    manifests = expand(engine, [Resource(resources=inputs)])
    write(manifests, output, output_filter)
