"""
Post-processing of the expanded manifests: selection, normalization and ordering.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml.comments import CommentedMap

from kresolve.selector import LabelSelector, parse_kinds
from kresolve.tools.nodes import get_annotations, strip_comments
from kresolve.tools.types import Manifest, Manifests

KIND_ORDER = [
    "Namespace",
    "ResourceQuota",
    "LimitRange",
    "PodSecurityPolicy",
    "PodDisruptionBudget",
    "ServiceAccount",
    "Secret",
    "SecretList",
    "ConfigMap",
    "StorageClass",
    "PersistentVolume",
    "PersistentVolumeClaim",
    "CustomResourceDefinition",
    "ClusterRole",
    "ClusterRoleList",
    "ClusterRoleBinding",
    "ClusterRoleBindingList",
    "Role",
    "RoleList",
    "RoleBinding",
    "RoleBindingList",
    "Service",
    "DaemonSet",
    "Pod",
    "ReplicationController",
    "ReplicaSet",
    "Deployment",
    "HorizontalPodAutoscaler",
    "StatefulSet",
    "Job",
    "CronJob",
    "IngressClass",
    "Ingress",
    "APIService",
]
""" The order in which kinds are conventionally applied to a cluster. Kinds not listed here sort last. """

_KIND_PRIORITY = {kind: index for index, kind in enumerate(KIND_ORDER)}

TOP_LEVEL_ORDER = ["apiVersion", "kind", "metadata", "spec", "data", "stringData", "type"]
METADATA_ORDER = ["name", "generateName", "namespace", "labels", "annotations"]


def sort_key(manifest: Manifest) -> tuple[int, str, str]:
    metadata = manifest.get("metadata") or {}
    return (
        _KIND_PRIORITY.get(str(manifest.get("kind")), len(KIND_ORDER)),
        str(metadata.get("namespace") or ""),
        str(metadata.get("name") or ""),
    )


def _reorder(mapping: dict[str, Any], first: Sequence[str], last: Sequence[str] = ()) -> CommentedMap:
    keys = [key for key in first if key in mapping]
    keys += [key for key in mapping if key not in first and key not in last]
    keys += [key for key in last if key in mapping]

    result = CommentedMap()
    if isinstance(mapping, CommentedMap):
        mapping.copy_attributes(result)
    for key in keys:
        result[key] = mapping[key]
    return result


def format_manifest(manifest: Manifest) -> Manifest:
    """
    Return *manifest* with its top-level and metadata fields in canonical Kubernetes order.
    """

    result = _reorder(manifest, TOP_LEVEL_ORDER, last=["status"])
    if isinstance(result.get("metadata"), dict):
        result["metadata"] = _reorder(result["metadata"], METADATA_ORDER)
    return Manifest(result)


@dataclass
class OutputFilter:
    """
    Selects and normalizes manifests. Selectors are parsed when the filter is created, so malformed selectors are
    reported before any locator is resolved.
    """

    label_selector: str | None = None
    """ Only keep manifests whose labels match this selector. """

    kind: str | None = None
    """ Only keep manifests of these (comma separated) kinds. """

    keep_status: bool = False
    """ Retain the `status` field. """

    keep_comments: bool = True
    """ Retain comments from the source documents. """

    format: bool = False
    """ Rewrite fields into canonical Kubernetes order. """

    sort: bool = False
    """ Order manifests by kind priority, then namespace, then name. """

    clear_annotations: Sequence[str] = field(default_factory=list)
    """ Annotation keys to remove. """

    def __post_init__(self) -> None:
        self._selector = LabelSelector.parse(self.label_selector) if self.label_selector else None
        self._kinds = parse_kinds(self.kind) if self.kind else None

    def apply(self, manifests: Manifests) -> Manifests:
        result = []
        for manifest in manifests:
            if not self.selects(manifest):
                continue
            result.append(self.normalize(manifest))

        if self.sort:
            result.sort(key=sort_key)

        return Manifests(result)

    def selects(self, manifest: Manifest) -> bool:
        if self._kinds is not None and manifest.get("kind") not in self._kinds:
            return False
        if self._selector is not None:
            labels = (manifest.get("metadata") or {}).get("labels")
            if not self._selector.matches(labels):
                return False
        return True

    def normalize(self, manifest: Manifest) -> Manifest:
        if not self.keep_status:
            manifest.pop("status", None)

        if self.clear_annotations:
            annotations = get_annotations(manifest)
            if annotations is not None:
                for key in self.clear_annotations:
                    annotations.pop(key, None)
                if not annotations:
                    del manifest["metadata"]["annotations"]

        if not self.keep_comments:
            manifest = Manifest(strip_comments(manifest))

        if self.format:
            manifest = format_manifest(manifest)

        return manifest
