from typer import Argument, Option

from kresolve.resources.secret import Secret

from . import app
from .resolve import OutputFormat, expand, new_engine, new_filter, write


@app.command()
def secret(
    name: str = Argument(..., help="The name of the secret."),
    type: str = Option("Opaque", "--type", help="The type of the secret."),
    from_literal: list[str] = Option([], "--from-literal", help="Add a literal value given as KEY=VALUE."),
    from_file: list[str] = Option([], "--from-file", help="Add a file given as PATH or KEY=PATH."),
    from_env_file: list[str] = Option([], "--from-env-file", help="Add the KEY=VALUE lines of an env file."),
    output: OutputFormat = Option(OutputFormat.YAML, "--output", "-o", help="The output format."),
    keep_annotations: bool = Option(
        False, "--keep-annotations", help="Retain the annotations that record where each resource came from."
    ),
) -> None:
    """
    Generate a Kubernetes secret.
    """

    locator = Secret(secretName=name, type=type, literals=from_literal, files=from_file, envs=from_env_file)
    write(expand(new_engine(), [locator]), output, new_filter(keep_annotations))
