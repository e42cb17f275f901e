"""
Argument and pixel helpers shared by the built-in commands.

Handlers receive plain strings. These helpers turn them into numbers,
colours and images, raising BadArgumentError / UnknownHandleError /
MissingInputError with a readable message when they cannot.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from PIL import Image, ImageColor

from patternlang.core.errors import BadArgumentError, MissingInputError
from patternlang.core.expression_lang.evaluator import current_context
from patternlang.core.ir.expressions import is_identifier

RGBA = tuple[int, int, int, int]


def require_input(image: Image.Image | None) -> Image.Image:
    if image is None:
        raise MissingInputError("requires an input image")
    return image


def require_args(args: Sequence[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise BadArgumentError(f"usage: {usage}")


def split_keywords(args: Sequence[str]) -> tuple[list[str], dict[str, str]]:
    """Separate ``key=value`` arguments from positional ones (split on the first ``=``)."""
    positional: list[str] = []
    keywords: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and is_identifier(key):
            keywords[key] = value
        else:
            positional.append(arg)
    return positional, keywords


def parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise BadArgumentError(f"invalid {what}: {text!r} is not an integer") from None


def parse_float(text: str, what: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise BadArgumentError(f"invalid {what}: {text!r} is not a number") from None


def parse_color(text: str) -> RGBA:
    """Parse a colour name or ``#rrggbb`` / ``#rrggbbaa`` string."""
    try:
        return ImageColor.getcolor(text, "RGBA")  # type: ignore[return-value]
    except ValueError:
        raise BadArgumentError(f"unknown color: {text}") from None


def resolve_handle(arg: str) -> Image.Image:
    """Resolve ``@img:N`` (or ``key=@img:N``) against the running evaluation."""
    return current_context().resolve_image(arg)


def canvas_size(image: Image.Image | None, default: tuple[int, int]) -> tuple[int, int]:
    """Generators take the input's size when there is one."""
    return image.size if image is not None else default


def to_rgba(image: Image.Image) -> Image.Image:
    return image if image.mode == "RGBA" else image.convert("RGBA")


def match_size(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    if image.size == size:
        return image
    return image.resize(size, Image.Resampling.NEAREST)


def to_unit(image: Image.Image) -> np.ndarray:
    """RGBA pixels as float64 in 0..1, shape (h, w, 4)."""
    return np.asarray(to_rgba(image), dtype=np.float64) / 255.0


def from_unit(pixels: np.ndarray) -> Image.Image:
    """Inverse of to_unit; values are clamped to 0..1."""
    return Image.fromarray(np.round(np.clip(pixels, 0.0, 1.0) * 255.0).astype(np.uint8))


def luminance(pixels: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of a (h, w, 4) unit array."""
    return pixels[..., 0] * 0.299 + pixels[..., 1] * 0.587 + pixels[..., 2] * 0.114


def grey(values: np.ndarray) -> Image.Image:
    """Opaque grey RGBA image from a (h, w) unit array."""
    v = np.clip(values, 0.0, 1.0)
    return from_unit(np.stack([v, v, v, np.ones_like(v)], axis=-1))
