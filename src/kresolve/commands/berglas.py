from typing import Optional

from loguru import logger
from typer import Argument, Option

from kresolve.berglas import BerglasMutator
from kresolve.errors import KResolveError
from kresolve.resources import KResource
from kresolve.resources.resource import Resource
from kresolve.tools.types import Manifest, Manifests

from . import app
from .resolve import OutputFormat, expand, fail, new_engine, new_filter, write


@app.command()
def berglas(
    inputs: list[str] = Argument(..., help="Locators of the manifests to mutate."),
    secrets_dir: Optional[str] = Option(
        None,
        "--secrets-dir",
        help="Directory holding local copies of the referenced secrets as `<bucket>/<object>`. When set, the "
        "references are resolved into generated secrets instead of being resolved when the pod starts.",
    ),
    recurse: bool = Option(False, "--recurse", "-r", help="Traverse directories."),
    output: OutputFormat = Option(OutputFormat.YAML, "--output", "-o", help="The output format."),
    keep_annotations: bool = Option(
        False, "--keep-annotations", help="Retain the annotations that record where each resource came from."
    ),
) -> None:
    """
    Rewrite pod templates that reference Berglas secrets in their container environment.
    """

    engine = new_engine(recurse=recurse)
    manifests = expand(engine, [Resource(resources=inputs)])

    mutator = BerglasMutator(secrets_dir=secrets_dir)
    for manifest in manifests:
        try:
            mutated = mutator.mutate(manifest)
        except KResolveError as exc:
            fail(exc)
        if mutated:
            logger.info("Mutated {} {}", manifest["kind"], (manifest.get("metadata") or {}).get("name"))

    secrets: list[Manifest | KResource] = [*mutator.flush_secrets()]
    if secrets:
        manifests = Manifests([*manifests, *expand(engine, secrets)])

    write(manifests, output, new_filter(keep_annotations))
