from dataclasses import dataclass

from kresolve.errors import ReadError, UnsupportedInContextError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.file import File
from kresolve.resources.git import Git
from kresolve.resources.kustomize import Kustomize
from kresolve.resources.parse import is_kustomization_dir
from kresolve.tools.fetch import Fetcher


@dataclass
class GitGenerator(Generator[Git], resource_type=Git):
    """
    Checks out a Git repository and expands to a single locator for the requested path in the checkout.
    """

    fetcher: Fetcher | None
    """ The remote fetch collaborator. Git locators cannot be resolved without one. """

    def generate(self, /, res: Git, ctx: ResolutionContext) -> Outputs:
        if self.fetcher is None:
            raise UnsupportedInContextError(res.origin(), "no remote fetch collaborator is available")

        checkout_dir = self.fetcher.fetch_git(res.repo, res.ref)
        target = checkout_dir / res.path if res.path else checkout_dir
        if not target.resolve().is_relative_to(checkout_dir.resolve()):
            raise ReadError(res.origin(), f"path {res.path!r} points outside of the repository")
        if not target.exists():
            raise ReadError(res.origin(), f"path {res.path!r} does not exist in the repository")

        if is_kustomization_dir(target):
            return [Kustomize(root=str(target))]
        return [File(path=str(target), recurse=True)]
