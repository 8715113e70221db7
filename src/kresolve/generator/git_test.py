from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kresolve.errors import ReadError, UnsupportedInContextError
from kresolve.generator import ResolutionContext
from kresolve.generator.git import GitGenerator
from kresolve.resources.file import File
from kresolve.resources.git import Git
from kresolve.resources.kustomize import Kustomize


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    checkout = tmp_path / "checkout"
    (checkout / "deploy" / "base").mkdir(parents=True)
    (checkout / "deploy" / "base" / "kustomization.yaml").write_text("resources: []\n")
    (checkout / "manifests").mkdir()
    return checkout


def test__GitGenerator__expands_to_checkout_path(checkout: Path, tmp_path: Path) -> None:
    fetcher = MagicMock()
    fetcher.fetch_git.return_value = checkout
    ctx = ResolutionContext(depth=0, max_depth=10, working_dir=tmp_path)
    generator = GitGenerator(fetcher)

    assert generator.generate(Git(repo="https://example.com/repo.git", path="manifests"), ctx) == [
        File(path=str(checkout / "manifests"), recurse=True)
    ]
    assert generator.generate(Git(repo="https://example.com/repo.git", ref="v1", path="deploy/base"), ctx) == [
        Kustomize(root=str(checkout / "deploy" / "base"))
    ]
    fetcher.fetch_git.assert_called_with("https://example.com/repo.git", "v1")


def test__GitGenerator__path_outside_of_checkout(checkout: Path, tmp_path: Path) -> None:
    fetcher = MagicMock()
    fetcher.fetch_git.return_value = checkout
    ctx = ResolutionContext(depth=0, max_depth=10, working_dir=tmp_path)
    with pytest.raises(ReadError):
        GitGenerator(fetcher).generate(Git(repo="https://example.com/repo.git", path="../"), ctx)
    with pytest.raises(ReadError):
        GitGenerator(fetcher).generate(Git(repo="https://example.com/repo.git", path="missing"), ctx)


def test__GitGenerator__without_fetcher(tmp_path: Path) -> None:
    ctx = ResolutionContext(depth=0, max_depth=10, working_dir=tmp_path)
    with pytest.raises(UnsupportedInContextError):
        GitGenerator(None).generate(Git(repo="https://example.com/repo.git"), ctx)
