"""Sink commands: write the input somewhere and pass it through unchanged."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from PIL import Image

from patternlang.core.errors import BadArgumentError
from patternlang.core.expression_lang.registry import CommandRegistry
from patternlang.core.manifest import RenderConfig
from patternlang.ops.common import require_args, require_input

logger = logging.getLogger(__name__)

SAVE_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".gif": "GIF",
}


def save_image(image: Image.Image, path: Path) -> Path:
    """Write ``image`` in the format implied by the file suffix."""
    fmt = SAVE_FORMATS.get(path.suffix.lower())
    if fmt is None:
        supported = ", ".join(SAVE_FORMATS)
        raise BadArgumentError(f"unsupported file type {path.suffix or '(none)'!r} (use {supported})")

    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)

    # JPEG has no alpha channel
    out = image.convert("RGB") if fmt == "JPEG" else image
    out.save(path, format=fmt)
    logger.info("Saved to %s", path)
    return path


def register(registry: CommandRegistry, config: RenderConfig) -> None:
    @registry.command("save")
    def save(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        src = require_input(image)
        require_args(args, 1, "save PATH")
        save_image(src, Path(args[0]))
        return src
