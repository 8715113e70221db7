from dataclasses import dataclass, field

from kresolve.resources import KResource


@dataclass
class Jsonnet(KResource):
    """
    A Jsonnet program evaluated with the `jsonnet` command line tool.
    """

    FORMAT = "jsonnet"
    RENDERED = True

    filename: str | None = None
    """ The Jsonnet file to evaluate. Mutually exclusive with `code`. """

    code: str | None = None
    """ A Jsonnet snippet to evaluate. Mutually exclusive with `filename`. """

    jsonnetPath: list[str] = field(default_factory=list)
    """ Library search directories (`--jpath`). """

    extVars: dict[str, str] = field(default_factory=dict)
    """ External string variables (`--ext-str`). """

    extCode: dict[str, str] = field(default_factory=dict)
    """ External code variables (`--ext-code`). """

    topLevelArgs: dict[str, str] = field(default_factory=dict)
    """ Top-level string arguments (`--tla-str`). """

    def origin(self) -> str:
        return self.filename or "<snippet>"
