"""
kresolve resolves locators (files, directories, Git repositories, URLs, Helm charts, Jsonnet programs, Kustomize
overlays and secret definitions) into a single stream of plain Kubernetes manifests.
"""

from enum import Enum
import sys

from loguru import logger
from typer import Option

from kresolve.tools.typer import new_typer

app = new_typer(help=__doc__)


from . import berglas  # noqa: F401,E402
from . import helm  # noqa: F401,E402
from . import jsonnet  # noqa: F401,E402
from . import resolve  # noqa: F401,E402
from . import secret  # noqa: F401,E402


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@app.callback()
def _callback(
    log_level: LogLevel = Option(LogLevel.INFO, "--log-level", help="The log level to use."),
) -> None:
    logger.remove()
    logger.add(sys.stderr, level=log_level.name)
