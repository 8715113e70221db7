"""
External renderer collaborator: runs `helm`, `jsonnet` and `kustomize` and returns their output.
"""

from dataclasses import dataclass
from pathlib import Path
import shlex
import subprocess
from tempfile import TemporaryDirectory
from textwrap import indent
from typing import Any

from loguru import logger
import yaml

from kresolve.errors import RenderError


@dataclass
class Renderer:
    helm_bin: str = "helm"
    jsonnet_bin: str = "jsonnet"
    kustomize_bin: str = "kustomize"

    kube_version: str | None = None
    """
    The Kubernetes version to render Helm charts for. This matters for Helm's capability detection (such as, for
    example, picking the right apiVersion for Ingress resources).
    """

    def run(self, source: str, command: list[str], cwd: Path | None = None) -> str:
        """
        Run *command* and return its standard output.

        Raises:
            RenderError: If the executable is missing or exits with a non-zero status.
        """

        logger.debug("Rendering {}: $ {}", source, " ".join(map(shlex.quote, command)))
        try:
            result = subprocess.run(command, cwd=cwd, capture_output=True, check=True)
        except FileNotFoundError:
            raise RenderError(source, f"{command[0]!r} executable not found")
        except subprocess.CalledProcessError as e:
            prefix = "    "
            raise RenderError(
                source,
                f"{indent(str(e), prefix)}\n"
                f"stdout:\n{indent(e.stdout.decode(errors='replace'), prefix)}\n"
                f"stderr:\n{indent(e.stderr.decode(errors='replace'), prefix)}",
            )
        try:
            return result.stdout.decode()
        except UnicodeDecodeError as exc:
            raise RenderError(source, f"{command[0]!r} produced output that is not valid UTF-8: {exc}")

    def helm(
        self,
        source: str,
        chart: str,
        release_name: str,
        namespace: str | None = None,
        repository: str | None = None,
        version: str | None = None,
        values: dict[str, Any] | None = None,
        value_files: list[str] | None = None,
        include_tests: bool = False,
        cwd: Path | None = None,
    ) -> str:
        """
        Render a chart with `helm template`. Deterministic for identical inputs as long as the chart is.
        """

        with TemporaryDirectory() as tmp:
            values_file = Path(tmp) / "values.yaml"
            values_file.write_text(yaml.safe_dump(values or {}))

            command = [self.helm_bin, "template", "--include-crds"]
            if not include_tests:
                command.append("--skip-tests")
            if self.kube_version:
                command.extend(["--kube-version", self.kube_version])
            if repository:
                command.extend(["--repo", repository])
            if version:
                command.extend(["--version", version, "--devel"])
            for file in value_files or []:
                command.extend(["--values", file])
            command.extend(["--values", str(values_file)])
            if namespace:
                command.extend(["--namespace", namespace])
            command.extend([release_name, chart])

            return self.run(source, command, cwd=cwd)

    def jsonnet(
        self,
        source: str,
        filename: str | None = None,
        code: str | None = None,
        jsonnet_path: list[str] | None = None,
        ext_vars: dict[str, str] | None = None,
        ext_code: dict[str, str] | None = None,
        top_level_args: dict[str, str] | None = None,
        cwd: Path | None = None,
    ) -> str:
        """
        Evaluate a Jsonnet file or snippet and return the resulting JSON text.
        """

        if (filename is None) == (code is None):
            raise RenderError(source, "exactly one of `filename` or `code` must be set")

        command = [self.jsonnet_bin]
        for path in jsonnet_path or []:
            command.extend(["--jpath", path])
        for key, value in (ext_vars or {}).items():
            command.extend(["--ext-str", f"{key}={value}"])
        for key, value in (ext_code or {}).items():
            command.extend(["--ext-code", f"{key}={value}"])
        for key, value in (top_level_args or {}).items():
            command.extend(["--tla-str", f"{key}={value}"])
        if code is not None:
            command.extend(["--exec", code])
        else:
            assert filename is not None
            command.append(filename)

        return self.run(source, command, cwd=cwd)

    def kustomize(self, source: str, root: str, cwd: Path | None = None) -> str:
        """
        Build a Kustomize overlay and return the resulting YAML text.
        """

        return self.run(source, [self.kustomize_bin, "build", root], cwd=cwd)
