from typing import Any, NewType


Manifest = NewType("Manifest", dict[str, Any])
""" Represents a Kubernetes manifest. Parsed manifests are order and comment preserving `CommentedMap`s. """

Manifests = NewType("Manifests", list[Manifest])
""" Represents a list of Kubernetes manifests. """

ManifestKey = tuple[str, str, str, str]
""" The identity of a manifest: `(apiVersion, kind, namespace, name)`. """
