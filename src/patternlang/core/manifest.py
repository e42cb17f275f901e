import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

MANIFEST_NAME = "pattern.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RenderConfig:
    """Defaults for rendering and for generators that need a canvas size."""

    width: int = 256
    height: int = 256
    output: str = "out.png"
    seed: int = 0  # default seed for the noise generator

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class PatternManifest:
    """Parsed pattern.toml.

    Example:

        [render]
        width = 512
        height = 512
        output = "out.png"
        seed = 7

        [logging]
        level = "INFO"
    """

    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    path: Path | None = None


def parse_size(text: str) -> tuple[int, int]:
    """Parse a ``WIDTHxHEIGHT`` string such as ``512x512``."""
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise ConfigError(f"Invalid size {text!r}: expected WIDTHxHEIGHT")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise ConfigError(f"Invalid size {text!r}: width and height must be integers") from None
    return _check_size(width, height)


def _check_size(width: object, height: object) -> tuple[int, int]:
    for name, value in (("width", width), ("height", height)):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ConfigError(f"render.{name} must be a positive integer, got {value!r}")
    return width, height  # type: ignore[return-value]


def load_manifest(path: Path) -> PatternManifest:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    render_data = data.get("render", {})
    logging_data = data.get("logging", {})

    width, height = _check_size(render_data.get("width", 256), render_data.get("height", 256))

    seed = render_data.get("seed", 0)
    if not isinstance(seed, int) or isinstance(seed, bool):
        raise ConfigError(f"render.seed must be an integer, got {seed!r}")

    output = render_data.get("output", "out.png")
    if not isinstance(output, str) or not output:
        raise ConfigError(f"render.output must be a file name, got {output!r}")

    level = str(logging_data.get("level", "WARNING")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")

    return PatternManifest(
        render=RenderConfig(width=width, height=height, output=output, seed=seed),
        logging=LoggingConfig(level=level),
        path=path,
    )


def find_manifest(start: Path | None = None) -> Path | None:
    """Return ``pattern.toml`` in ``start`` (default: cwd) if it exists."""
    candidate = (start or Path.cwd()) / MANIFEST_NAME
    return candidate if candidate.is_file() else None


def resolve_manifest(path: Path | None = None) -> PatternManifest:
    """
    Load configuration for a CLI run.

    An explicit path must exist; otherwise ``./pattern.toml`` is used when
    present, and built-in defaults when it is not.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return load_manifest(path)

    found = find_manifest()
    if found is not None:
        return load_manifest(found)
    return PatternManifest()
