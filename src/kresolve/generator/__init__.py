"""
This package contains the resolvers that expand locators into Kubernetes manifests or further locators.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Generic, TextIO, TypeVar

from kresolve.errors import ParseError, RenderError
from kresolve.resources import KResource
from kresolve.tools.nodes import load_manifests
from kresolve.tools.types import Manifest

T = TypeVar("T")

Outputs = list[Manifest | KResource]
""" The result of resolving a locator: terminal manifests and locators that need to be resolved further. """


@dataclass(frozen=True)
class ResolutionContext:
    """
    The context a locator is resolved in. Owned by the expansion engine for the duration of one run.
    """

    depth: int
    """ The depth of the locator being resolved. Locators passed to the engine have depth zero. """

    max_depth: int
    """ The maximum depth the engine will resolve locators at. """

    working_dir: Path
    """ The directory that relative paths are resolved against. """

    stdin: TextIO | None = None
    """ The input stream that `Stdin` locators read from. """

    def resolve_path(self, path: str | Path) -> Path:
        """
        Resolve *path* relative to the working directory.
        """

        path = Path(path)
        if not path.is_absolute():
            path = self.working_dir / path
        return path


class Generator(ABC, Generic[T]):
    """
    Base class for resolving locators of one kind.
    """

    resource_type: ClassVar[type[Any]]

    def __init_subclass__(cls, resource_type: type[T], **kwargs):
        cls.resource_type = resource_type
        super().__init_subclass__(**kwargs)

    @abstractmethod
    def generate(self, /, resource: T, ctx: ResolutionContext) -> Outputs:
        """
        Resolve a locator and return the manifests and locators it expands to, in order.
        """

        raise NotImplementedError


def load_rendered(text: str, source: str) -> Outputs:
    """
    Parse the output of an external renderer. Malformed output is reported as a `RenderError`.
    """

    try:
        return list(load_manifests(text, source))
    except ParseError as exc:
        raise RenderError(source, f"renderer produced malformed output: {exc.message}")
