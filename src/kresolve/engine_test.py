from io import StringIO
from pathlib import Path
import time
from unittest.mock import MagicMock

import pytest

from kresolve.engine import ExpansionEngine
from kresolve.errors import DepthExceededError, ParseError, ReadError, RenderError, ResolutionError
from kresolve.generator.dispatch import DispatchingGenerator
from kresolve.resources import ANNOTATION_DEPTH, ANNOTATION_FORMAT, ANNOTATION_ORIGIN
from kresolve.resources.file import File
from kresolve.resources.kustomize import Kustomize
from kresolve.resources.resource import Resource
from kresolve.resources.stdin import Stdin
from kresolve.tools.nodes import load_manifests


def _configmap(name: str, value: str = "1") -> str:
    return f"apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: {name}\ndata:\n  value: '{value}'\n"


def _new_engine(tmp_path: Path, **kwargs) -> ExpansionEngine:
    renderer = kwargs.pop("renderer", MagicMock())
    return ExpansionEngine(DispatchingGenerator.default(renderer=renderer), working_dir=tmp_path, **kwargs)


def test__ExpansionEngine__expand__stdin(tmp_path: Path) -> None:
    stdin = StringIO(
        "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: apps\n---\n"
        "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: web\n  namespace: apps\n"
    )
    engine = _new_engine(tmp_path, max_depth=1, stdin=stdin)

    manifests = engine.expand([Resource(resources=["-"])])

    assert [m["kind"] for m in manifests] == ["Namespace", "Deployment"]
    for manifest in manifests:
        annotations = manifest["metadata"]["annotations"]
        assert annotations[ANNOTATION_ORIGIN] == "stdin"
        assert annotations[ANNOTATION_FORMAT] == "yaml"
        assert annotations[ANNOTATION_DEPTH] == "1"


def test__ExpansionEngine__expand__stdin_unavailable(tmp_path: Path) -> None:
    with pytest.raises(ResolutionError) as excinfo:
        _new_engine(tmp_path).expand([Stdin()])
    assert isinstance(excinfo.value.cause, ReadError)


def test__ExpansionEngine__expand__depth_exceeded(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text("apiVersion: kresolve.io/v1\nkind: File\npath: b.yaml\n")
    (tmp_path / "b.yaml").write_text("apiVersion: kresolve.io/v1\nkind: File\npath: c.yaml\n")
    (tmp_path / "c.yaml").write_text(_configmap("a"))

    with pytest.raises(DepthExceededError) as excinfo:
        _new_engine(tmp_path, max_depth=1).expand([File(path="a.yaml")])
    assert excinfo.value.origin == "c.yaml"
    assert excinfo.value.depth == 2
    assert excinfo.value.max_depth == 1

    manifests = _new_engine(tmp_path, max_depth=2).expand([File(path="a.yaml")])
    assert len(manifests) == 1
    assert manifests[0]["metadata"]["annotations"][ANNOTATION_ORIGIN] == "c.yaml"
    assert manifests[0]["metadata"]["annotations"][ANNOTATION_DEPTH] == "2"


def test__ExpansionEngine__expand__last_write_wins_in_first_position(tmp_path: Path) -> None:
    (tmp_path / "one.yaml").write_text(_configmap("a", "1") + "---\n" + _configmap("b"))
    (tmp_path / "two.yaml").write_text(_configmap("a", "2"))

    manifests = _new_engine(tmp_path).expand([File(path="one.yaml"), File(path="two.yaml")])

    assert [m["metadata"]["name"] for m in manifests] == ["a", "b"]
    assert manifests[0]["data"]["value"] == "2"
    assert manifests[0]["metadata"]["annotations"][ANNOTATION_ORIGIN] == "two.yaml"


def test__ExpansionEngine__expand__documents_without_name_are_not_merged(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text(
        "apiVersion: batch/v1\nkind: Job\nmetadata:\n  generateName: migrate-\n---\n"
        "apiVersion: batch/v1\nkind: Job\nmetadata:\n  generateName: migrate-\n"
    )
    assert len(_new_engine(tmp_path).expand([File(path="a.yaml")])) == 2


def test__ExpansionEngine__expand__is_idempotent(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text(_configmap("a") + "---\n" + _configmap("b"))
    engine = _new_engine(tmp_path)

    first = engine.expand([File(path="a.yaml")])
    assert len(first) == 2
    assert engine.expand(first) == first

    plain = load_manifests(_configmap("c"), "c.yaml")
    assert engine.expand(plain) == plain
    assert "annotations" not in plain[0]["metadata"]


def test__ExpansionEngine__expand__inline_locators_are_expanded(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text(
        _configmap("a") + "---\napiVersion: kresolve.io/v1\nkind: Secret\nsecretName: token\nliterals: [token=abc]\n"
    )

    manifests = _new_engine(tmp_path).expand([File(path="a.yaml")])

    assert [(m["kind"], m["metadata"]["name"]) for m in manifests] == [("ConfigMap", "a"), ("Secret", "token")]
    annotations = manifests[1]["metadata"]["annotations"]
    assert annotations[ANNOTATION_ORIGIN] == "secret/token"
    assert annotations[ANNOTATION_FORMAT] == "secret"
    assert annotations[ANNOTATION_DEPTH] == "1"


def test__ExpansionEngine__expand__rendered_output_is_terminal(tmp_path: Path) -> None:
    renderer = MagicMock()
    renderer.kustomize.return_value = "apiVersion: kresolve.io/v1\nkind: File\npath: a.yaml\n"

    manifests = _new_engine(tmp_path, renderer=renderer).expand([Kustomize(root="overlay")])

    assert [m["kind"] for m in manifests] == ["File"]
    assert manifests[0]["metadata"]["annotations"][ANNOTATION_FORMAT] == "kustomize"


def test__ExpansionEngine__expand__keeps_submission_order(tmp_path: Path) -> None:
    delays = {"a": 0.3, "b": 0.1, "c": 0.0}

    def kustomize(source: str, root: str, cwd: Path | None = None) -> str:
        time.sleep(delays[root])
        return _configmap(root)

    renderer = MagicMock()
    renderer.kustomize.side_effect = kustomize

    manifests = _new_engine(tmp_path, renderer=renderer, workers=3).expand(
        [Kustomize(root="a"), Kustomize(root="b"), Kustomize(root="c")]
    )
    assert [m["metadata"]["name"] for m in manifests] == ["a", "b", "c"]


def test__ExpansionEngine__expand__directory_without_recurse(tmp_path: Path) -> None:
    (tmp_path / "manifests").mkdir()
    (tmp_path / "manifests" / "a.yaml").write_text(_configmap("a"))
    (tmp_path / "manifests" / "b.yaml").write_text(_configmap("b"))

    with pytest.raises(ResolutionError) as excinfo:
        _new_engine(tmp_path).expand([File(path="manifests")])
    assert isinstance(excinfo.value.cause, ReadError)
    assert excinfo.value.origin == "manifests"
    assert excinfo.value.depth == 0

    manifests = _new_engine(tmp_path).expand([File(path="manifests", recurse=True)])
    assert [m["metadata"]["name"] for m in manifests] == ["a", "b"]


def test__ExpansionEngine__expand__malformed_renderer_output(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text(_configmap("a"))
    renderer = MagicMock()
    renderer.kustomize.return_value = "apiVersion: v1\nkind: [unterminated\n"

    with pytest.raises(ResolutionError) as excinfo:
        _new_engine(tmp_path, renderer=renderer).expand([File(path="a.yaml"), Kustomize(root="overlay")])
    assert isinstance(excinfo.value.cause, RenderError)
    assert excinfo.value.origin == "overlay"


def test__ExpansionEngine__expand__first_error_in_submission_order(tmp_path: Path) -> None:
    renderer = MagicMock()
    renderer.kustomize.side_effect = lambda source, root, cwd=None: "not: [valid"

    with pytest.raises(ResolutionError) as excinfo:
        _new_engine(tmp_path, renderer=renderer).expand([File(path="missing.yaml"), Kustomize(root="overlay")])
    assert isinstance(excinfo.value.cause, ReadError)
    assert excinfo.value.origin == "missing.yaml"


def test__ExpansionEngine__expand__undecodable_file(tmp_path: Path) -> None:
    (tmp_path / "bad.yaml").write_bytes(b"\xff\xfe")

    with pytest.raises(ResolutionError) as excinfo:
        _new_engine(tmp_path).expand([File(path="bad.yaml")])
    assert isinstance(excinfo.value.cause, ParseError)
    assert excinfo.value.origin == "bad.yaml"
    assert excinfo.value.depth == 0
