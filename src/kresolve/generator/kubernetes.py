from collections.abc import Callable
from dataclasses import dataclass, field
import threading
from typing import Any

from kubernetes.client.api_client import ApiClient
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.resource import ResourceList
from loguru import logger
import urllib3

from kresolve.errors import FetchError, UnknownKindError, UnsupportedInContextError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.kubernetes import Kubernetes
from kresolve.tools.nodes import to_manifests

SERVER_METADATA_FIELDS = ("managedFields", "resourceVersion", "uid", "selfLink", "creationTimestamp", "generation")
""" Metadata fields that are populated by the API server and stripped from the listed objects. """


@dataclass
class KubernetesGenerator(Generator[Kubernetes], resource_type=Kubernetes):
    """
    Lists objects from a live cluster. The API client is only created when the first `Kubernetes` locator is resolved.
    """

    client_factory: Callable[[], ApiClient] | None
    """ Creates the Kubernetes API client. Kubernetes locators cannot be resolved without one. """

    _client: DynamicClient | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _get_client(self, origin: str) -> DynamicClient:
        if self.client_factory is None:
            raise UnsupportedInContextError(origin, "no Kubernetes API client is available")
        with self._lock:
            if self._client is None:
                self._client = DynamicClient(self.client_factory())
            return self._client

    def generate(self, /, res: Kubernetes, ctx: ResolutionContext) -> Outputs:
        origin = res.origin()
        try:
            client = self._get_client(origin)
            namespaces = self._get_namespaces(client, res)

            items: list[dict[str, Any]] = []
            for type_name in res.types:
                api = self._find_api(client, type_name)
                scopes = namespaces if api.namespaced else [None]
                for namespace in scopes:
                    logger.debug("Listing {} in namespace {}", type_name, namespace or "<all>")
                    result = client.get(api, namespace=namespace, label_selector=res.labelSelector)
                    items.extend(result.to_dict().get("items") or [])
        except (ApiException, urllib3.exceptions.HTTPError) as exc:
            raise FetchError(origin, str(exc))

        for item in items:
            metadata = item.get("metadata") or {}
            for key in SERVER_METADATA_FIELDS:
                metadata.pop(key, None)

        return list(to_manifests(items, origin))

    def _get_namespaces(self, client: DynamicClient, res: Kubernetes) -> list[str | None]:
        if res.namespaces:
            return list(res.namespaces)
        if res.namespaceSelector:
            api = client.resources.get(api_version="v1", kind="Namespace")
            result = client.get(api, label_selector=res.namespaceSelector).to_dict()
            return [item["metadata"]["name"] for item in result.get("items") or []]
        return [None]

    def _find_api(self, client: DynamicClient, type_name: str) -> Any:
        name, _, group = type_name.partition(".")
        filters: dict[str, str] = {"group": group} if group else {}

        candidates = client.resources.search(name=name, **filters) or client.resources.search(kind=name, **filters)
        candidates = [api for api in candidates if not isinstance(api, ResourceList)]
        if not candidates:
            raise UnknownKindError(group or "*", type_name)

        preferred = [api for api in candidates if getattr(api, "preferred", False)]
        return (preferred or candidates)[0]
