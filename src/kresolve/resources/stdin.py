from dataclasses import dataclass

from kresolve.resources import KResource


@dataclass
class Stdin(KResource):
    """
    Manifests read from the input stream bound to the resolution context.
    """

    def origin(self) -> str:
        return "stdin"
