from dataclasses import dataclass, field

from kresolve.resources import KResource


@dataclass
class HTTP(KResource):
    """
    Manifests downloaded from an HTTP(S) URL.
    """

    url: str
    headers: dict[str, str] = field(default_factory=dict)

    def origin(self) -> str:
        return self.url

    def format(self) -> str:
        return "json" if self.url.split("?")[0].lower().endswith(".json") else "yaml"
