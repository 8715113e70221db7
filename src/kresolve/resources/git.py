from dataclasses import dataclass

from kresolve.resources import KResource


@dataclass
class Git(KResource):
    """
    A path in a Git repository.
    """

    repo: str
    """ URL of the repository. """

    ref: str | None = None
    """ Branch, tag or commit to check out. Defaults to the remote `HEAD`. """

    path: str | None = None
    """ Path inside the repository to read manifests from. Defaults to the repository root. """

    def origin(self) -> str:
        origin = self.repo
        if self.path:
            origin += "//" + self.path.strip("/")
        if self.ref:
            origin += f"?ref={self.ref}"
        return origin
