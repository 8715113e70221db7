from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kresolve.errors import FetchError, ParseError, UnsupportedInContextError
from kresolve.generator import ResolutionContext
from kresolve.generator.http import HTTPGenerator
from kresolve.resources.http import HTTP

URL = "https://example.com/manifests.yaml"
CTX = ResolutionContext(depth=0, max_depth=10, working_dir=Path("/tmp"))


def test__HTTPGenerator__parses_response_body() -> None:
    fetcher = MagicMock()
    fetcher.fetch_url.return_value = b"apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: a\n"
    outputs = HTTPGenerator(fetcher).generate(HTTP(url=URL, headers={"Accept": "application/yaml"}), CTX)
    assert outputs == [{"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "a"}}]
    fetcher.fetch_url.assert_called_once_with(URL, {"Accept": "application/yaml"})


def test__HTTPGenerator__fetch_error() -> None:
    fetcher = MagicMock()
    fetcher.fetch_url.side_effect = FetchError(URL, "HTTP 500 Internal Server Error")
    with pytest.raises(FetchError):
        HTTPGenerator(fetcher).generate(HTTP(url=URL), CTX)


def test__HTTPGenerator__binary_body() -> None:
    fetcher = MagicMock()
    fetcher.fetch_url.return_value = b"\xff\xfe\x00"
    with pytest.raises(ParseError):
        HTTPGenerator(fetcher).generate(HTTP(url=URL), CTX)


def test__HTTPGenerator__without_fetcher() -> None:
    with pytest.raises(UnsupportedInContextError):
        HTTPGenerator(None).generate(HTTP(url=URL), CTX)
