import base64
from dataclasses import dataclass
from pathlib import Path

from kresolve.errors import ParseError, ReadError
from kresolve.generator import Generator, Outputs, ResolutionContext
from kresolve.resources.secret import Secret
from kresolve.tools.nodes import to_node
from kresolve.tools.types import Manifest


@dataclass
class SecretGenerator(Generator[Secret], resource_type=Secret):
    """
    Synthesizes a `v1/Secret`. Values are base64 encoded into `data`, in the order literals, files, env files.
    """

    def generate(self, /, res: Secret, ctx: ResolutionContext) -> Outputs:
        origin = res.origin()
        data: dict[str, str] = {}

        def add(key: str, value: bytes) -> None:
            if key in data:
                raise ParseError(origin, f"duplicate key {key!r}")
            data[key] = base64.b64encode(value).decode("ascii")

        for literal in res.literals:
            key, sep, value = literal.partition("=")
            if not sep or not key:
                raise ParseError(origin, f"invalid literal {literal!r}, expected `key=value`")
            add(key, value.encode())

        for source in res.files:
            key, sep, path = source.partition("=")
            if not sep:
                key, path = Path(source).name, source
            add(key, _read_bytes(ctx.resolve_path(path), origin))

        for env_file in res.envs:
            try:
                text = _read_bytes(ctx.resolve_path(env_file), origin).decode()
            except UnicodeDecodeError as exc:
                raise ParseError(env_file, f"env file is not valid UTF-8: {exc}")
            for lineno, line in enumerate(text.splitlines(), 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                key, sep, value = line.partition("=")
                if not sep or not key:
                    raise ParseError(f"{env_file}:{lineno}", f"invalid line {line!r}, expected `KEY=VALUE`")
                add(key.strip(), value.encode())

        manifest = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": res.secretName},
            "type": res.type,
            "data": data,
        }
        return [Manifest(to_node(manifest))]


def _read_bytes(path: Path, origin: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ReadError(origin, f"{path}: {exc.strerror or exc}")
