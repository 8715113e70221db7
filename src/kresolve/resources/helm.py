from dataclasses import dataclass, field
from typing import Any

from kresolve.resources import KResource


@dataclass
class ChartRef:
    """
    Represents a reference to a Helm chart.
    """

    path: str | None = None
    """ Path to the chart in the Git repository; or relative to the working directory or project search path. """

    git: str | None = None
    """ URL to a Git repository containing the chart. May include a query string to specify a `ref`. """

    repository: str | None = None
    """ A Helm repository, if the chart is not local. Must either use the `https://` or `oci://` scheme. """

    name: str | None = None
    """ The name of the chart. This is only needed when `repository` is set. """

    version: str | None = None
    """ The version of the chart. This is only needed when `repository` is set. """


@dataclass
class ReleaseMetadata:
    """
    Metadata for a Helm release.
    """

    name: str = "RELEASE-NAME"
    """ The name of the release. """

    namespace: str | None = None
    """ The namespace the release is rendered for. """


@dataclass(kw_only=True)
class Helm(KResource):
    """
    Represents a Helm chart rendered with `helm template`.
    """

    FORMAT = "helm"
    RENDERED = True

    chart: ChartRef
    """ Reference to the Helm chart. """

    release: ReleaseMetadata = field(default_factory=ReleaseMetadata)
    """ Metadata for the release. """

    values: dict[str, Any] = field(default_factory=dict)
    """ Values for the Helm chart. """

    valueFiles: list[str] = field(default_factory=list)
    """ Additional values files, applied before `values`. """

    includeTests: bool = False
    """ Whether to render the chart's test hooks. """

    def origin(self) -> str:
        chart = self.chart
        if chart.repository:
            origin = f"{chart.repository.rstrip('/')}/{chart.name}"
        elif chart.git:
            origin = chart.git + (f"//{chart.path}" if chart.path else "")
        else:
            origin = chart.path or "<unset>"
        if chart.version:
            origin += f"@{chart.version}"
        return origin
