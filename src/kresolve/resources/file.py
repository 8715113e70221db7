from dataclasses import dataclass

from kresolve.resources import KResource


@dataclass
class File(KResource):
    """
    A manifest file, or a directory of manifest files.
    """

    path: str
    """ Path to the file or directory. Relative paths are resolved against the working directory. """

    recurse: bool = False
    """ Whether a directory may be expanded into its entries. """

    def origin(self) -> str:
        return self.path

    def format(self) -> str:
        return "json" if self.path.lower().endswith(".json") else "yaml"
