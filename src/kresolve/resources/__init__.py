"""
This package contains kresolve's locator resources. Locators are Kubernetes-esque documents in the `kresolve.io/v1`
API group that describe where manifests come from; they are expanded by the engine until only plain Kubernetes
resources remain. Because locators are documents themselves, they can appear inline in any manifest source.
"""

from abc import ABC, abstractmethod
from typing import ClassVar, cast

from pydantic import TypeAdapter, ValidationError
from typing_extensions import Self

from kresolve.errors import ParseError, UnknownKindError
from kresolve.tools.nodes import to_node, to_plain
from kresolve.tools.types import Manifest

API_VERSION = "kresolve.io/v1"

ANNOTATION_ORIGIN = "kresolve.io/origin"
""" Records the locator (path, URL, chart, ...) that produced a manifest. """

ANNOTATION_FORMAT = "kresolve.io/format"
""" Records the format the manifest was read or rendered from. """

ANNOTATION_DEPTH = "kresolve.io/depth"
""" Records the expansion depth at which the manifest was produced. """

PROVENANCE_ANNOTATIONS = (ANNOTATION_ORIGIN, ANNOTATION_FORMAT, ANNOTATION_DEPTH)


class KResource(ABC):
    """
    Base class for locator resources.
    """

    API_VERSION: ClassVar[str]
    """
    The API version of the resource. Always `kresolve.io/v1` for the locators shipped with kresolve.
    """

    KIND: ClassVar[str]
    """
    The kind identifier of the resource. If not set, this will default to the class name.
    """

    FORMAT: ClassVar[str] = "yaml"
    """
    The format recorded in the provenance of the manifests produced by this locator.
    """

    RENDERED: ClassVar[bool] = False
    """
    If set, everything the locator produces is terminal, even documents that look like locators themselves. This is
    the case for the output of external renderers.
    """

    def __init_subclass__(cls, api_version: str = API_VERSION, kind: str | None = None, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls.API_VERSION = api_version
        if kind is not None or "KIND" not in vars(cls):
            cls.KIND = kind or cls.__name__

    @abstractmethod
    def origin(self) -> str:
        """
        Return a short human readable description of where this locator reads from, e.g. a path or URL.
        """

        raise NotImplementedError

    def format(self) -> str:
        """
        Return the format recorded in the provenance of the produced manifests.
        """

        return self.FORMAT

    @classmethod
    def load(cls, manifest: Manifest) -> "Self":
        """
        Load a locator from a manifest. If called directly on `KResource`, this will deserialize into the appropriate
        subclass based on the `kind` field in the manifest. If the method is instead called on a subclass directly,
        the subclass will be used to deserialize the manifest.

        Raises:
            UnknownKindError: If the `apiVersion` or `kind` is not a known locator type.
            ParseError: If the manifest does not match the locator's schema.
        """

        api_version = str(manifest.get("apiVersion"))
        kind = str(manifest.get("kind"))
        if api_version != API_VERSION:
            raise UnknownKindError(api_version, kind)

        if cls is KResource:
            module_name = __name__ + "." + kind.lower()
            try:
                module = __import__(module_name, fromlist=[kind])
                subcls: type[KResource] = getattr(module, kind)
                assert isinstance(subcls, type) and issubclass(subcls, KResource), f"{subcls} is not a KResource"
            except (ImportError, AttributeError, AssertionError):
                raise UnknownKindError(api_version, kind)

        else:
            if kind != cls.KIND:
                raise UnknownKindError(api_version, kind)
            subcls = cls

        data = to_plain(manifest)
        data.pop("apiVersion")
        data.pop("kind")
        data.pop("metadata", None)

        try:
            return cast(Self, TypeAdapter(subcls).validate_python(data))
        except ValidationError as exc:
            raise ParseError(f"{kind} locator", str(exc))

    @classmethod
    def maybe_load(cls, manifest: Manifest) -> "Self | None":
        """
        Maybe load the manifest into a locator if the `apiVersion` matches. If the resource kind is not supported,
        an error will be raised.
        """

        if cls.matches(manifest):
            return cls.load(manifest)
        return None

    @classmethod
    def matches(cls, manifest: Manifest) -> bool:
        """
        Check if the manifest is a locator of the correct `apiVersion` and possibly `kind` (if called on a
        `KResource` subclass).
        """

        if manifest.get("apiVersion") != API_VERSION:
            return False

        if cls is not KResource and manifest.get("kind") != cls.KIND:
            return False

        return True

    def dump(self) -> Manifest:
        """
        Dump the locator to a manifest.
        """

        data = TypeAdapter(type(self)).dump_python(self, exclude_none=True)
        manifest = Manifest(to_node({"apiVersion": self.API_VERSION, "kind": self.KIND, **data}))
        return manifest
