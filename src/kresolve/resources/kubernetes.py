from dataclasses import dataclass, field

from kresolve.resources import KResource

DEFAULT_TYPES = ["deployments", "statefulsets", "configmaps"]


@dataclass
class Kubernetes(KResource):
    """
    Resources read from a live cluster through the Kubernetes API.
    """

    FORMAT = "kubernetes"

    namespaces: list[str] = field(default_factory=list)
    """ Namespaces to read from. If empty, all namespaces (or those matching `namespaceSelector`) are read. """

    namespaceSelector: str | None = None
    """ Label selector for the namespaces to read from. """

    types: list[str] = field(default_factory=lambda: list(DEFAULT_TYPES))
    """ Resource types, by plural name (`deployments`), qualified name (`deployments.apps`) or kind. """

    labelSelector: str | None = None
    """ Label selector for the resources to read. """

    def origin(self) -> str:
        scope = ",".join(self.namespaces) or self.namespaceSelector or "*"
        return f"kubernetes:{scope}/{','.join(self.types)}"
