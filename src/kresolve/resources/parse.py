"""
Parsing of locator strings, as given on the command line or in a `Resource` locator, into locators.
"""

from pathlib import Path
from urllib.parse import parse_qs

from kresolve.resources import KResource
from kresolve.resources.file import File
from kresolve.resources.git import Git
from kresolve.resources.http import HTTP
from kresolve.resources.kustomize import Kustomize
from kresolve.resources.stdin import Stdin

KUSTOMIZATION_FILES = ("kustomization.yaml", "kustomization.yml", "Kustomization")

GIT_HOSTS = {"github.com", "gitlab.com", "bitbucket.org"}
""" Hosts on which a URL of the form `https://<host>/<org>/<repo>` refers to a Git repository. """


def is_kustomization_dir(path: Path) -> bool:
    """
    Check if *path* is a directory containing a Kustomization file.
    """

    return path.is_dir() and any((path / name).is_file() for name in KUSTOMIZATION_FILES)


def parse_git(value: str) -> Git | None:
    """
    Parse a Git locator string. Supports the `git::` prefix, `git@host:org/repo` style addresses, URLs ending in `.git`
    and `https://<host>/<org>/<repo>` URLs for well known hosts. A subpath may be appended with `//` and the ref may be
    given with a `?ref=` query parameter. Returns `None` if the string does not look like a Git repository.
    """

    explicit = value.startswith("git::")
    raw = value[len("git::") :] if explicit else value

    base, _, query = raw.partition("?")
    refs = parse_qs(query).get("ref")

    scheme, sep, rest = base.partition("://")
    if not sep:
        scheme, rest = "", base
    repo_part, _, subpath = rest.partition("//")
    repo = f"{scheme}://{repo_part}" if scheme else repo_part

    segments = repo_part.strip("/").split("/")
    is_git = (
        explicit
        or repo_part.endswith(".git")
        or repo_part.startswith("git@")
        or scheme in ("git", "ssh")
        or (scheme in ("http", "https") and segments[0] in GIT_HOSTS and len(segments) == 3)
    )
    if not is_git:
        return None

    return Git(repo=repo, ref=refs[0] if refs else None, path=subpath.strip("/") or None)


def parse_locator(value: str, working_dir: Path | None = None, recurse: bool = False) -> KResource:
    """
    Parse a locator string into a locator:

    * `-` reads from standard input.
    * Git repositories (see `parse_git()`) are checked out.
    * Other `http://` and `https://` URLs are downloaded.
    * Directories containing a Kustomization are built with Kustomize.
    * Anything else is treated as a file or directory path.
    """

    if value == "-":
        return Stdin()

    if (git := parse_git(value)) is not None:
        return git

    if value.startswith(("http://", "https://")):
        return HTTP(url=value)

    path = Path(value)
    if not path.is_absolute() and working_dir is not None:
        path = working_dir / path
    if is_kustomization_dir(path):
        return Kustomize(root=value)

    return File(path=value, recurse=recurse)
