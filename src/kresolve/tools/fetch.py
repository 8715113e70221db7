"""
Remote fetch collaborator: downloads URLs and checks out Git repositories.
"""

import hashlib
import os
from pathlib import Path, PosixPath
import shlex
import subprocess
from urllib.parse import urlparse

from filelock import FileLock
from loguru import logger
import requests
import requests.adapters

from kresolve.errors import FetchError


def _new_session() -> requests.Session:
    # Only connection level failures are retried, error responses are returned to the caller as-is.
    adapter = requests.adapters.HTTPAdapter(
        max_retries=requests.adapters.Retry(total=3, backoff_factor=0.2, backoff_max=2, status_forcelist=())
    )
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class Fetcher:
    """
    Fetches manifests from remote locations.

    Git repositories are checked out shallowly into *cache_dir*. Every checkout is guarded by a file lock so that
    concurrent resolutions of the same repository and ref do not interfere with each other.
    """

    def __init__(self, cache_dir: Path, session: requests.Session | None = None, timeout: float = 30) -> None:
        self.cache_dir = cache_dir
        self.session = session or _new_session()
        self.timeout = timeout

    def fetch_url(self, url: str, headers: dict[str, str] | None = None) -> bytes:
        """
        Download the content at *url*.

        Raises:
            FetchError: If the request fails or the response status is not 2xx.
        """

        logger.debug("Downloading {}", url)
        try:
            response = self.session.get(url, headers=headers or {}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(url, str(exc))

        if not 200 <= response.status_code < 300:
            raise FetchError(url, f"HTTP {response.status_code} {response.reason}")

        return response.content

    def get_checkout_dir(self, repo: str, ref: str | None) -> Path:
        """
        Return the directory that *repo* at *ref* is checked out into.
        """

        parsed = urlparse(repo)
        hashed = hashlib.md5(f"{repo}#{ref or ''}".encode()).hexdigest()
        name = PosixPath(parsed.path or repo).name.removesuffix(".git")
        return self.cache_dir / f"{hashed}-{name}"

    def fetch_git(self, repo: str, ref: str | None = None) -> Path:
        """
        Check out *ref* (or the remote `HEAD`) of the Git repository *repo* with a history depth of one and return
        the checkout directory. Existing checkouts are updated in place.

        Raises:
            FetchError: If any Git command fails, e.g. due to authentication or network errors.
        """

        checkout_dir = self.get_checkout_dir(repo, ref)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        with FileLock(str(checkout_dir) + ".lock"):
            if (checkout_dir / ".git").is_dir():
                logger.debug("Updating cached checkout of {} at {}", repo, checkout_dir)
            else:
                logger.debug("Checking out {} to {}", repo, checkout_dir)
                self._git(repo, ["git", "init", "--quiet", str(checkout_dir)])

            self._git(repo, ["git", "fetch", "--quiet", "--depth", "1", repo, ref or "HEAD"], cwd=checkout_dir)
            self._git(repo, ["git", "checkout", "--quiet", "--force", "FETCH_HEAD"], cwd=checkout_dir)

        return checkout_dir

    def _git(self, repo: str, command: list[str], cwd: Path | None = None) -> None:
        logger.debug("Running $ {}", " ".join(map(shlex.quote, command)))
        # Never prompt for credentials, authentication failures must surface as errors.
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            subprocess.run(command, cwd=cwd, env=env, capture_output=True, text=True, check=True)
        except FileNotFoundError:
            raise FetchError(repo, "git executable not found")
        except subprocess.CalledProcessError as exc:
            raise FetchError(repo, exc.stderr.strip() or str(exc))
