from typing import Any, Optional

from typer import Argument, BadParameter, Option
import yaml

from kresolve.resources.helm import ChartRef, Helm, ReleaseMetadata

from . import app
from .resolve import OutputFormat, expand, new_engine, new_filter, write


def set_value(values: dict[str, Any], assignment: str) -> None:
    """
    Apply a `--set` style assignment (`a.b.c=value`) to *values*. The value is parsed as YAML, so `--set replicas=3`
    sets an integer.
    """

    path, sep, raw = assignment.partition("=")
    if not sep or not path:
        raise ValueError(f"Expected KEY=VALUE, got {assignment!r}")

    *parents, key = path.split(".")
    target = values
    for parent in parents:
        target = target.setdefault(parent, {})
        if not isinstance(target, dict):
            raise ValueError(f"Cannot set {path!r}: {parent!r} is not a mapping")
    target[key] = yaml.safe_load(raw) if raw else ""


def chart_ref(chart: str, repo: str | None, version: str | None) -> ChartRef:
    if repo:
        return ChartRef(repository=repo, name=chart, version=version)
    if chart.startswith("oci://"):
        repository, _, name = chart.rpartition("/")
        return ChartRef(repository=repository, name=name, version=version)
    return ChartRef(path=chart, version=version)


@app.command()
def helm(
    chart: str = Argument(..., help="The chart name (with `--repo`), an `oci://` reference or a chart directory."),
    repo: Optional[str] = Option(None, "--repo", help="The chart repository URL."),
    version: Optional[str] = Option(None, "--version", help="The chart version."),
    release_name: str = Option("RELEASE-NAME", "--release-name", help="The release name."),
    namespace: Optional[str] = Option(None, "--namespace", "-n", help="The release namespace."),
    set_: list[str] = Option([], "--set", help="Set a value, e.g. `image.tag=latest`."),
    values: list[str] = Option([], "--values", "-f", help="A values file."),
    include_tests: bool = Option(False, "--include-tests", help="Render the chart's test hooks."),
    output: OutputFormat = Option(OutputFormat.YAML, "--output", "-o", help="The output format."),
    keep_annotations: bool = Option(
        False, "--keep-annotations", help="Retain the annotations that record where each resource came from."
    ),
) -> None:
    """
    Render a Helm chart.
    """

    chart_values: dict[str, Any] = {}
    for assignment in set_:
        try:
            set_value(chart_values, assignment)
        except ValueError as exc:
            raise BadParameter(str(exc), param_hint="--set")

    locator = Helm(
        chart=chart_ref(chart, repo, version),
        release=ReleaseMetadata(name=release_name, namespace=namespace),
        values=chart_values,
        valueFiles=values,
        includeTests=include_tests,
    )
    write(expand(new_engine(), [locator]), output, new_filter(keep_annotations))
