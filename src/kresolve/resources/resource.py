from dataclasses import dataclass, field

from kresolve.resources import KResource


@dataclass
class Resource(KResource):
    """
    A list of locator strings, e.g. paths, URLs or `-` for standard input. Each string is parsed into its own locator.
    """

    resources: list[str] = field(default_factory=list)

    def origin(self) -> str:
        return ", ".join(self.resources) or "<empty>"
