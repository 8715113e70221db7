"""
Rewrites pod templates that reference Berglas secrets (`berglas://<bucket>/<object>`) in container environment
variables.

Two modes are supported:

* With a secrets directory, references that name a `destination` path are resolved at build time: the environment
  variable is replaced by the path, a `Secret` locator is generated per bucket (reading
  `<secrets_dir>/<bucket>/<object>`) and the secret is mounted at the path.
* Without, the containers are wrapped with `berglas exec` so that the references are resolved when the pod starts.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import parse_qs, urlparse

from loguru import logger

from kresolve.errors import ParseError
from kresolve.resources.secret import Secret
from kresolve.tools.nodes import to_node
from kresolve.tools.types import Manifest

REFERENCE_PREFIX = "berglas://"

BERGLAS_IMAGE = "us-docker.pkg.dev/berglas/berglas/berglas:latest"
BIN_VOLUME_NAME = "berglas-bin"
BIN_VOLUME_MOUNT_PATH = "/berglas/bin/"

POD_TEMPLATE_PATHS = {
    "Deployment": ("spec", "template", "spec"),
    "StatefulSet": ("spec", "template", "spec"),
    "DaemonSet": ("spec", "template", "spec"),
    "ReplicaSet": ("spec", "template", "spec"),
    "Job": ("spec", "template", "spec"),
    "CronJob": ("spec", "jobTemplate", "spec", "template", "spec"),
    "Pod": ("spec",),
}


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


@dataclass(frozen=True)
class BerglasReference:
    bucket: str
    object: str
    generation: str | None = None
    filepath: str | None = None
    """ The `destination` of the reference, if it is an absolute path. """

    @staticmethod
    def parse(value: str) -> "BerglasReference":
        if not is_reference(value):
            raise ParseError(value, "not a Berglas reference")
        parsed = urlparse(value)
        obj = parsed.path.lstrip("/")
        if not parsed.netloc or not obj:
            raise ParseError(value, "Berglas reference must be of the form berglas://<bucket>/<object>")
        generation = parsed.fragment or None
        query = parse_qs(parsed.query)
        destination = query.get("destination", [None])[0]
        filepath = destination if destination and destination.startswith("/") else None
        return BerglasReference(parsed.netloc, obj, generation, filepath)


def _get_pod_spec(manifest: Manifest) -> dict[str, Any] | None:
    path = POD_TEMPLATE_PATHS.get(str(manifest.get("kind")))
    if path is None:
        return None
    node: Any = manifest
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node if isinstance(node, dict) else None


@dataclass
class BerglasMutator:
    secrets_dir: str | None = None
    """ Directory holding local copies of the referenced objects, as `<bucket>/<object>`. Enables secret generation. """

    secrets: dict[str, Secret] = field(default_factory=dict)
    """ Secret locators collected while mutating, keyed by bucket. """

    def mutate(self, manifest: Manifest) -> bool:
        """
        Mutate the pod template of *manifest* in place. Returns `True` if anything was changed.
        """

        pod_spec = _get_pod_spec(manifest)
        if pod_spec is None:
            return False
        if self.secrets_dir is not None:
            return self._mutate_with_secrets(pod_spec)
        return self._mutate_with_exec(pod_spec)

    def flush_secrets(self) -> list[Secret]:
        """
        Return and forget the Secret locators collected so far.
        """

        secrets = list(self.secrets.values())
        self.secrets.clear()
        return secrets

    def _containers(self, pod_spec: dict[str, Any]) -> list[dict[str, Any]]:
        return [*(pod_spec.get("initContainers") or []), *(pod_spec.get("containers") or [])]

    def _mutate_with_secrets(self, pod_spec: dict[str, Any]) -> bool:
        assert self.secrets_dir is not None
        buckets: list[str] = []

        for container in self._containers(pod_spec):
            for env in container.get("env") or []:
                if not is_reference(env.get("value")):
                    continue
                ref = BerglasReference.parse(env["value"])
                if ref.filepath is None:
                    # Without a destination the value can only be resolved at runtime.
                    logger.warning(
                        "Skipping Berglas reference without destination in container {}", container.get("name")
                    )
                    continue

                filename = PurePosixPath(ref.filepath).name
                secret = self.secrets.setdefault(ref.bucket, Secret(secretName=ref.bucket))
                source = f"{filename}={self.secrets_dir.rstrip('/')}/{ref.bucket}/{ref.object}"
                if source not in secret.files:
                    secret.files.append(source)

                env["value"] = ref.filepath
                container.setdefault("volumeMounts", []).append(
                    to_node({"name": ref.bucket, "mountPath": ref.filepath, "subPath": filename, "readOnly": True})
                )
                if ref.bucket not in buckets:
                    buckets.append(ref.bucket)

        for bucket in buckets:
            pod_spec.setdefault("volumes", []).append(to_node({"name": bucket, "secret": {"secretName": bucket}}))

        return bool(buckets)

    def _mutate_with_exec(self, pod_spec: dict[str, Any]) -> bool:
        mutated = False
        for container in self._containers(pod_spec):
            if not any(is_reference(env.get("value")) for env in container.get("env") or []):
                continue
            if not container.get("command"):
                logger.warning("Cannot wrap container {} without an explicit command", container.get("name"))
                continue
            original = [*container["command"], *(container.get("args") or [])]
            container["command"] = [BIN_VOLUME_MOUNT_PATH + "berglas"]
            container["args"] = ["exec", "--local", "--", *original]
            container.setdefault("volumeMounts", []).append(
                to_node({"name": BIN_VOLUME_NAME, "mountPath": BIN_VOLUME_MOUNT_PATH, "readOnly": True})
            )
            mutated = True

        if mutated:
            pod_spec.setdefault("volumes", []).append(
                to_node({"name": BIN_VOLUME_NAME, "emptyDir": {"medium": "Memory"}})
            )
            init_container = {
                "name": "copy-berglas-bin",
                "image": BERGLAS_IMAGE,
                "imagePullPolicy": "IfNotPresent",
                "command": ["sh", "-c", f"cp /bin/berglas {BIN_VOLUME_MOUNT_PATH}"],
                "volumeMounts": [{"name": BIN_VOLUME_NAME, "mountPath": BIN_VOLUME_MOUNT_PATH}],
            }
            pod_spec["initContainers"] = [to_node(init_container), *(pod_spec.get("initContainers") or [])]

        return mutated
