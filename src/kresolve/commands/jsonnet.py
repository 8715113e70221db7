from typing import Optional

from typer import Argument, BadParameter, Option

from kresolve.resources.jsonnet import Jsonnet

from . import app
from .resolve import OutputFormat, expand, new_engine, new_filter, write


def parse_assignments(values: list[str], param_hint: str) -> dict[str, str]:
    result = {}
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key:
            raise BadParameter(f"Expected KEY=VALUE, got {value!r}", param_hint=param_hint)
        result[key] = rest
    return result


@app.command()
def jsonnet(
    filename: Optional[str] = Argument(None, help="The Jsonnet file to evaluate."),
    code: Optional[str] = Option(None, "--exec", "-e", help="Evaluate a Jsonnet snippet instead of a file."),
    jpath: list[str] = Option([], "--jpath", "-J", help="Add a library search directory."),
    ext_str: list[str] = Option([], "--ext-str", "-V", help="Provide an external string variable as KEY=VALUE."),
    ext_code: list[str] = Option([], "--ext-code", help="Provide an external code variable as KEY=VALUE."),
    tla_str: list[str] = Option([], "--tla-str", "-A", help="Provide a top-level string argument as KEY=VALUE."),
    output: OutputFormat = Option(OutputFormat.YAML, "--output", "-o", help="The output format."),
    keep_annotations: bool = Option(
        False, "--keep-annotations", help="Retain the annotations that record where each resource came from."
    ),
) -> None:
    """
    Evaluate a Jsonnet program that produces Kubernetes manifests.
    """

    if (filename is None) == (code is None):
        raise BadParameter("Specify either a FILENAME or --exec, but not both.")

    locator = Jsonnet(
        filename=filename,
        code=code,
        jsonnetPath=jpath,
        extVars=parse_assignments(ext_str, "--ext-str"),
        extCode=parse_assignments(ext_code, "--ext-code"),
        topLevelArgs=parse_assignments(tla_str, "--tla-str"),
    )
    write(expand(new_engine(), [locator]), output, new_filter(keep_annotations))
