from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kresolve.tools.fs import find_config_file


@dataclass
class Project:
    """
    Configuration for a kresolve project that is stored in a `kresolve-project.yaml` file.
    """

    max_depth: int = 100
    """ The maximum number of times locators are expanded. """

    workers: int = 4
    """ The number of locators at the same depth that are resolved concurrently. """

    cache_dir: Path = Path(".kresolve/git-cache")
    """ The directory Git repositories are checked out into. Relative to the project directory. """

    kube_version: str | None = None
    """ The Kubernetes version to render Helm charts for. """

    search_path: list[Path] = field(default_factory=list)
    """
    Search path for Helm charts referenced with a `chart.path` that is not explicitly absolute or relative.
    """


@dataclass
class ProjectConfig:
    """
    Wrapper for the project configuration file.
    """

    FILENAME = "kresolve-project.yaml"

    file: Path | None
    config: Project

    @property
    def directory(self) -> Path:
        return self.file.parent if self.file else Path.cwd()

    @staticmethod
    def load(file: Path | None = None, /, cwd: Path | None = None) -> "ProjectConfig":
        """
        Load the project configuration from the given or the default configuration file. If the configuration file does
        not exist, a default project configuration is returned.
        """

        from pydantic import TypeAdapter, ValidationError
        from yaml import YAMLError, safe_load

        if file is None:
            file = find_config_file(ProjectConfig.FILENAME, cwd, required=False)
        if file is None:
            return ProjectConfig(None, Project())

        logger.debug("Loading project configuration from '{}'", file)
        try:
            project = TypeAdapter(Project).validate_python(safe_load(file.read_text()) or {})
        except (YAMLError, ValidationError) as exc:
            raise ValueError(f"Invalid project configuration '{file}': {exc}")

        if not project.cache_dir.is_absolute():
            project.cache_dir = file.parent / project.cache_dir

        for idx, path in enumerate(project.search_path):
            if not path.is_absolute():
                path = file.parent / path
                project.search_path[idx] = path
            if not path.exists():
                logger.warning("Search path '{}' does not exist", path)

        return ProjectConfig(file, project)
