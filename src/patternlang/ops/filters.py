"""
Filter commands: transform the incoming image.

Every filter needs an input image and raises MissingInputError without one,
except ``sin`` and ``cos`` which read their source from a handle argument.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
from PIL import Image, ImageOps

from patternlang.core.errors import BadArgumentError
from patternlang.core.expression_lang.registry import CommandHandler, CommandRegistry
from patternlang.core.manifest import RenderConfig
from patternlang.ops.common import (
    from_unit,
    grey,
    luminance,
    parse_color,
    parse_float,
    parse_int,
    require_args,
    require_input,
    resolve_handle,
    to_rgba,
    to_unit,
)

MIRROR_MODES = ("horizontal", "vertical", "both")

_ROTATIONS = {
    90: Image.Transpose.ROTATE_270,  # PIL rotates counter-clockwise
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def sobel_magnitude(grey_values: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude of a (h, w) array, edges replicated."""
    p = np.pad(grey_values, 1, mode="edge")
    gx = (
        (p[:-2, 2:] + 2 * p[1:-1, 2:] + p[2:, 2:])
        - (p[:-2, :-2] + 2 * p[1:-1, :-2] + p[2:, :-2])
    )
    gy = (
        (p[2:, :-2] + 2 * p[2:, 1:-1] + p[2:, 2:])
        - (p[:-2, :-2] + 2 * p[:-2, 1:-1] + p[:-2, 2:])
    )
    return np.hypot(gx, gy)


def register(registry: CommandRegistry, config: RenderConfig) -> None:
    @registry.command("zoom")
    def zoom(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        src = require_input(image)
        require_args(args, 1, "zoom FACTOR")
        factor = parse_int(args[0], "zoom factor")
        if factor < 1:
            raise BadArgumentError(f"zoom factor must be at least 1, got {factor}")
        width, height = src.size
        return src.resize((width * factor, height * factor), Image.Resampling.NEAREST)

    @registry.command("transposed")
    def transposed(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        # out(x, y) = in(y + dy, x + dx), offsets wrap around the source edges
        src = to_unit(require_input(image))
        dx = parse_int(args[0], "x offset") if len(args) > 0 else 0
        dy = parse_int(args[1], "y offset") if len(args) > 1 else 0
        swapped = np.transpose(src, (1, 0, 2))
        return from_unit(np.roll(swapped, shift=(-dy, -dx), axis=(0, 1)))

    @registry.command("mirror")
    def mirror(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        src = require_input(image)
        mode = args[0].lower() if args else "horizontal"
        if mode not in MIRROR_MODES:
            raise BadArgumentError(f"mirror mode must be one of {', '.join(MIRROR_MODES)}")
        if mode in ("horizontal", "both"):
            src = ImageOps.mirror(src)
        if mode in ("vertical", "both"):
            src = ImageOps.flip(src)
        return src

    @registry.command("rotate")
    def rotate(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        """Rotate clockwise by a multiple of 90 degrees."""
        src = require_input(image)
        require_args(args, 1, "rotate DEGREES")
        degrees = parse_int(args[0], "angle") % 360
        if degrees == 0:
            return src.copy()
        if degrees not in _ROTATIONS:
            raise BadArgumentError(f"rotate supports multiples of 90 degrees, got {args[0]}")
        return src.transpose(_ROTATIONS[degrees])

    @registry.command("edgedetect")
    def edgedetect(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        pixels = to_unit(require_input(image))
        return grey(sobel_magnitude(luminance(pixels)) / 4.0)

    @registry.command("quantize")
    def quantize(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        pixels = to_unit(require_input(image))
        require_args(args, 1, "quantize LEVELS")
        levels = max(parse_int(args[0], "level count"), 2)
        steps = levels - 1
        out = pixels.copy()
        out[..., :3] = np.round(pixels[..., :3] * steps) / steps
        return from_unit(out)

    @registry.command("colorize")
    def colorize(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        """Map luminance onto a two-colour gradient, keeping alpha."""
        src = to_rgba(require_input(image))
        require_args(args, 2, "colorize DARK LIGHT")
        dark, light = parse_color(args[0]), parse_color(args[1])
        out = ImageOps.colorize(src.convert("L"), dark[:3], light[:3]).convert("RGBA")
        out.putalpha(src.getchannel("A"))
        return out

    @registry.command("threshold")
    def threshold(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        pixels = to_unit(require_input(image))
        require_args(args, 1, "threshold LEVEL")
        level = parse_float(args[0], "threshold")
        return grey((luminance(pixels) >= level).astype(np.float64))

    def unary(fn: Callable[[np.ndarray], np.ndarray], name: str) -> CommandHandler:
        def handler(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            require_args(args, 1, f"{name} HANDLE")
            pixels = to_unit(resolve_handle(args[0]))
            return grey(fn(pixels[..., 0]))

        return handler

    registry.register("sin", unary(np.sin, "sin"))
    registry.register("cos", unary(np.cos, "cos"))
