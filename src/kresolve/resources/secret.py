from dataclasses import dataclass, field

from kresolve.resources import KResource


@dataclass
class Secret(KResource):
    """
    Generates a `v1/Secret` from literal values, files and env files.
    """

    FORMAT = "secret"

    secretName: str
    type: str = "Opaque"

    literals: list[str] = field(default_factory=list)
    """ Literal values given as `key=value`. """

    files: list[str] = field(default_factory=list)
    """ Files given as `path` or `key=path`. The key defaults to the file name. """

    envs: list[str] = field(default_factory=list)
    """ Env files containing `KEY=VALUE` lines. """

    def origin(self) -> str:
        return f"secret/{self.secretName}"
