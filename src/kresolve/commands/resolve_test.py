import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from kresolve.commands import app
from kresolve.tools.nodes import load_manifests

runner = CliRunner()

STDIN = """\
apiVersion: v1
kind: Namespace
metadata:
  name: apps
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: apps
  labels:
    app: web
status:
  replicas: 1
"""


@pytest.fixture(autouse=True)
def _chdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


def test__resolve__stdin() -> None:
    result = runner.invoke(app, ["resolve", "-"], input=STDIN)
    assert result.exit_code == 0, result.output

    manifests = load_manifests(result.stdout, "stdout")
    assert [m["kind"] for m in manifests] == ["Namespace", "Deployment"]
    assert "status" not in manifests[1]
    assert "kresolve.io/origin" not in result.stdout


def test__resolve__keep_annotations_and_json_output() -> None:
    result = runner.invoke(
        app,
        ["resolve", "-", "--keep-annotations", "--keep-status", "-o", "json", "-l", "app=web"],
        input=STDIN,
    )
    assert result.exit_code == 0, result.output

    data = json.loads(result.stdout)
    assert data["kind"] == "Deployment"
    assert data["status"] == {"replicas": 1}
    assert data["metadata"]["annotations"] == {
        "kresolve.io/origin": "stdin",
        "kresolve.io/format": "yaml",
        "kresolve.io/depth": "1",
    }


def test__resolve__directory(tmp_path: Path) -> None:
    (tmp_path / "manifests").mkdir()
    (tmp_path / "manifests" / "b.yaml").write_text("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: b\n")
    (tmp_path / "manifests" / "a.yaml").write_text("apiVersion: v1\nkind: Namespace\nmetadata:\n  name: a\n")

    result = runner.invoke(app, ["resolve", "manifests"])
    assert result.exit_code == 1

    result = runner.invoke(app, ["resolve", "-r", "manifests", "--kind", "ConfigMap"])
    assert result.exit_code == 0, result.output
    assert [m["metadata"]["name"] for m in load_manifests(result.stdout, "stdout")] == ["b"]


def test__resolve__depth_exceeded() -> None:
    result = runner.invoke(app, ["resolve", "-d", "0", "-"], input=STDIN)
    assert result.exit_code == 1


def test__resolve__malformed_selector() -> None:
    result = runner.invoke(app, ["resolve", "-", "-l", "app in (web"], input=STDIN)
    assert result.exit_code == 1


def test__secret() -> None:
    result = runner.invoke(app, ["secret", "token", "--from-literal", "token=abc"])
    assert result.exit_code == 0, result.output
    manifests = load_manifests(result.stdout, "stdout")
    assert manifests[0]["kind"] == "Secret"
    assert manifests[0]["data"] == {"token": "YWJj"}
    assert "annotations" not in manifests[0]["metadata"]
    assert "kresolve.io/" not in result.stdout

    result = runner.invoke(app, ["secret", "token", "--from-literal", "token=abc", "--keep-annotations"])
    assert result.exit_code == 0, result.output
    assert load_manifests(result.stdout, "stdout")[0]["metadata"]["annotations"]["kresolve.io/format"] == "secret"


DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  template:
    spec:
      containers:
        - name: web
          image: example/web
          env:
            - name: API_KEY
              value: {reference}
"""


def test__berglas__secrets_dir(tmp_path: Path) -> None:
    (tmp_path / "deployment.yaml").write_text(
        DEPLOYMENT.format(reference="berglas://my-bucket/api-key?destination=/secrets/api-key")
    )
    (tmp_path / "secrets" / "my-bucket").mkdir(parents=True)
    (tmp_path / "secrets" / "my-bucket" / "api-key").write_text("abc")

    result = runner.invoke(app, ["--log-level", "warning", "berglas", "--secrets-dir", "secrets", "deployment.yaml"])
    assert result.exit_code == 0, result.output

    manifests = load_manifests(result.stdout, "stdout")
    assert [m["kind"] for m in manifests] == ["Deployment", "Secret"]
    assert manifests[0]["spec"]["template"]["spec"]["containers"][0]["env"][0]["value"] == "/secrets/api-key"
    assert manifests[1]["data"] == {"api-key": "YWJj"}
    assert "kresolve.io/" not in result.stdout


def test__berglas__malformed_reference(tmp_path: Path) -> None:
    (tmp_path / "deployment.yaml").write_text(DEPLOYMENT.format(reference="berglas://my-bucket"))
    result = runner.invoke(app, ["berglas", "--secrets-dir", "secrets", "deployment.yaml"])
    assert result.exit_code == 1
    assert "berglas://<bucket>/<object>" in result.output
