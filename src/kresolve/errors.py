"""
Error types raised while resolving locators into Kubernetes manifests.
"""

from dataclasses import dataclass
import textwrap


class KResolveError(Exception):
    """
    Base class for all errors raised by kresolve.
    """


def _format_message(message: str) -> str:
    if "\n" in message:
        return "\n\n" + textwrap.indent(message, "  ")
    return message


@dataclass
class ReadError(KResolveError):
    """
    A path or stream could not be read.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"Unable to read {self.source}: {_format_message(self.message)}"


@dataclass
class ParseError(KResolveError):
    """
    A document is not valid YAML/JSON or is not a Kubernetes manifest.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"Unable to parse {self.source}: {_format_message(self.message)}"


@dataclass
class FetchError(KResolveError):
    """
    A remote transport (HTTP, Git, Kubernetes API) failed.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"Unable to fetch {self.source}: {_format_message(self.message)}"


@dataclass
class RenderError(KResolveError):
    """
    An external renderer (Helm, Jsonnet, Kustomize) failed or produced malformed output.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"Unable to render {self.source}: {_format_message(self.message)}"


@dataclass
class DepthExceededError(KResolveError):
    """
    The recursion budget was exhausted before all locators were resolved.
    """

    origin: str
    depth: int
    max_depth: int

    def __str__(self) -> str:
        return f"Maximum expansion depth exceeded at {self.origin} (depth {self.depth}, max depth {self.max_depth})"


@dataclass
class UnknownKindError(KResolveError):
    """
    No type is registered for an apiVersion/kind pair.
    """

    api_version: str
    kind: str

    def __str__(self) -> str:
        return f"Unknown kind {self.kind!r} for apiVersion {self.api_version!r}"


@dataclass
class SelectorError(KResolveError):
    """
    A label or kind selector could not be parsed.
    """

    selector: str
    message: str

    def __str__(self) -> str:
        return f"Invalid selector {self.selector!r}: {self.message}"


@dataclass
class UnsupportedInContextError(KResolveError):
    """
    A locator requires a collaborator that is not available in the current context.
    """

    origin: str
    message: str

    def __str__(self) -> str:
        return f"Cannot resolve {self.origin}: {self.message}"


@dataclass
class ResolutionError(KResolveError):
    """
    Wraps the error raised while resolving a single locator, recording where in the expansion it happened.
    """

    origin: str
    depth: int
    cause: KResolveError

    def __str__(self) -> str:
        return f"Error resolving {self.origin} at depth {self.depth}: {self.cause}"
