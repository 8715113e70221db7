"""
Parsing and serialization of resource nodes. Documents are loaded with the `ruamel.yaml` round-trip loader so that
key order and comments survive until the manifests are written out again.
"""

from io import StringIO
import json
from typing import Any, Literal

from ruamel.yaml import YAML, YAMLError
from ruamel.yaml.comments import CommentedMap, CommentedSeq

from kresolve.errors import ParseError
from kresolve.tools.types import Manifest, ManifestKey, Manifests

OutputFormat = Literal["yaml", "json"]


def _new_yaml() -> YAML:
    # YAML instances carry parser state and must not be shared between threads.
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.explicit_start = True
    yaml.width = 4096
    return yaml


def to_node(data: Any) -> Any:
    """
    Convert plain Python data into the round-trip representation used for resource nodes. Values that already are
    round-trip containers are converted recursively too, retaining their comments.
    """

    if isinstance(data, dict):
        result = CommentedMap()
        if isinstance(data, CommentedMap):
            data.copy_attributes(result)
        for key, value in data.items():
            result[key] = to_node(value)
        return result
    if isinstance(data, (list, tuple)):
        seq = CommentedSeq()
        if isinstance(data, CommentedSeq):
            data.copy_attributes(seq)
        seq.extend(to_node(value) for value in data)
        return seq
    return data


def to_plain(node: Any) -> Any:
    """
    Convert a resource node into plain Python builtins (dict, list, str, int, float, bool, None).
    """

    if isinstance(node, dict):
        return {str(key): to_plain(value) for key, value in node.items()}
    if isinstance(node, (list, tuple)):
        return [to_plain(value) for value in node]
    if isinstance(node, bool) or node is None:
        return node
    if isinstance(node, str):
        return str(node)
    if isinstance(node, int):
        return int(node)
    if isinstance(node, float):
        return float(node)
    return str(node)


def strip_comments(node: Any) -> Any:
    """
    Return a copy of *node* without any of the comments attached to it or its children.
    """

    if isinstance(node, dict):
        result = CommentedMap()
        for key, value in node.items():
            result[key] = strip_comments(value)
        return result
    if isinstance(node, (list, tuple)):
        return CommentedSeq(strip_comments(value) for value in node)
    return node


def _iter_documents(data: Any, source: str) -> list[Manifest]:
    if data is None:
        return []
    if isinstance(data, list):
        result: list[Manifest] = []
        for item in data:
            result.extend(_iter_documents(item, source))
        return result
    if not isinstance(data, dict):
        raise ParseError(source, f"expected a mapping, got {type(data).__name__}")
    if data.get("kind") == "List" and isinstance(data.get("items"), list):
        return _iter_documents(data["items"], source)
    if not isinstance(data.get("apiVersion"), str) or not isinstance(data.get("kind"), str):
        raise ParseError(source, "document is missing 'apiVersion' or 'kind'")
    return [Manifest(data)]


def to_manifests(data: Any, source: str) -> Manifests:
    """
    Convert already decoded data (a mapping, a list of mappings or a `kind: List`) into manifests.

    Raises:
        ParseError: If a document is not a Kubernetes manifest.
    """

    return Manifests(_iter_documents(to_node(data), source))


def load_manifests(text: str, source: str) -> Manifests:
    """
    Parse one or more YAML (or JSON) documents into manifests, in document order. Empty documents are skipped and
    `kind: List` documents are unwrapped into their items.

    Raises:
        ParseError: If the text is not valid YAML or a document is not a Kubernetes manifest.
    """

    try:
        documents = list(_new_yaml().load_all(text))
    except YAMLError as exc:
        raise ParseError(source, str(exc))

    result = Manifests([])
    for document in documents:
        result.extend(_iter_documents(document, source))
    return result


def dump_manifests(manifests: Manifests, output: OutputFormat = "yaml") -> str:
    """
    Serialize manifests to text. YAML output is a multi-document stream; JSON output is a single object, or a `v1/List`
    when there is more than one manifest.
    """

    if output == "json":
        if len(manifests) == 1:
            data: Any = manifests[0]
        else:
            data = {"apiVersion": "v1", "kind": "List", "items": list(manifests)}
        return json.dumps(to_plain(data), indent=2) + "\n"

    if output != "yaml":
        raise ValueError(f"Unsupported output format: {output!r}")

    stream = StringIO()
    _new_yaml().dump_all([to_node(manifest) for manifest in manifests], stream)
    return stream.getvalue()


def manifest_key(manifest: Manifest) -> ManifestKey | None:
    """
    Return the identity of a manifest, or `None` if it has no name.
    """

    metadata = manifest.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        return None
    return (
        str(manifest.get("apiVersion", "")),
        str(manifest.get("kind", "")),
        str(metadata.get("namespace") or ""),
        str(name),
    )


def get_annotations(manifest: Manifest, create: bool = False) -> dict[str, Any] | None:
    """
    Return the `metadata.annotations` map of a manifest. If *create* is set, missing maps are created.
    """

    metadata = manifest.get("metadata")
    if metadata is None:
        if not create:
            return None
        metadata = manifest["metadata"] = CommentedMap()
    annotations = metadata.get("annotations")
    if annotations is None:
        if not create:
            return None
        annotations = metadata["annotations"] = CommentedMap()
    return annotations
