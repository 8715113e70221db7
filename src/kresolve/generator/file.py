from dataclasses import dataclass

from loguru import logger

from kresolve.errors import ParseError, ReadError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.file import File
from kresolve.resources.kustomize import Kustomize
from kresolve.resources.parse import is_kustomization_dir
from kresolve.tools.nodes import load_manifests

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")


@dataclass
class FileGenerator(Generator[File], resource_type=File):
    """
    Reads manifests from a file. Directories are expanded into one locator per entry, sorted by name: manifest files
    become `File` locators, subdirectories become `Kustomize` locators if they contain a Kustomization and recursive
    `File` locators otherwise. Hidden entries are skipped.
    """

    def generate(self, /, res: File, ctx: ResolutionContext) -> Outputs:
        path = ctx.resolve_path(res.path)

        if path.is_dir():
            if not res.recurse:
                raise ReadError(res.path, "is a directory and recursion is disabled")

            outputs: Outputs = []
            for entry in sorted(path.iterdir(), key=lambda p: p.name):
                if entry.name.startswith("."):
                    continue
                if entry.is_dir():
                    if is_kustomization_dir(entry):
                        outputs.append(Kustomize(root=str(entry)))
                    else:
                        outputs.append(File(path=str(entry), recurse=True))
                elif entry.suffix.lower() in MANIFEST_SUFFIXES:
                    outputs.append(File(path=str(entry)))
                else:
                    logger.trace("Skipping non-manifest file {}", entry)
            return outputs

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(res.path, f"file is not valid UTF-8: {exc}")
        except OSError as exc:
            raise ReadError(res.path, exc.strerror or str(exc))

        return list(load_manifests(text, res.path))
