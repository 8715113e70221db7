from dataclasses import dataclass

from kresolve.resources import KResource


@dataclass
class Kustomize(KResource):
    """
    A Kustomize overlay, rendered with `kustomize build`.
    """

    FORMAT = "kustomize"
    RENDERED = True

    root: str
    """ The directory containing the `kustomization.yaml`, or a remote Kustomize target. """

    def origin(self) -> str:
        return self.root
