from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kresolve.errors import RenderError
from kresolve.generator import ResolutionContext
from kresolve.generator.jsonnet import JsonnetGenerator
from kresolve.resources.jsonnet import Jsonnet

CTX = ResolutionContext(depth=0, max_depth=10, working_dir=Path("/work"))


@pytest.mark.parametrize(
    "output",
    [
        '{"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}}',
        '[{"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}}]',
        '{"apiVersion": "v1", "kind": "List", "items": '
        '[{"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}}]}',
        '{"config": {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}}}',
    ],
)
def test__JsonnetGenerator__accepted_output_shapes(output: str) -> None:
    renderer = MagicMock()
    renderer.jsonnet.return_value = output
    outputs = JsonnetGenerator(renderer).generate(Jsonnet(filename="main.jsonnet"), CTX)
    assert [o["metadata"]["name"] for o in outputs] == ["a"]


def test__JsonnetGenerator__passes_variables() -> None:
    renderer = MagicMock()
    renderer.jsonnet.return_value = "[]"
    locator = Jsonnet(code="[]", jsonnetPath=["lib"], extVars={"env": "prod"}, topLevelArgs={"name": "app"})
    assert JsonnetGenerator(renderer).generate(locator, CTX) == []
    renderer.jsonnet.assert_called_once_with(
        "<snippet>",
        filename=None,
        code="[]",
        jsonnet_path=["lib"],
        ext_vars={"env": "prod"},
        ext_code={},
        top_level_args={"name": "app"},
        cwd=Path("/work"),
    )


@pytest.mark.parametrize("output", ["not json", '["a string"]', '{"metadata": {"name": "a"}}'])
def test__JsonnetGenerator__malformed_output(output: str) -> None:
    renderer = MagicMock()
    renderer.jsonnet.return_value = output
    with pytest.raises(RenderError):
        JsonnetGenerator(renderer).generate(Jsonnet(filename="main.jsonnet"), CTX)
