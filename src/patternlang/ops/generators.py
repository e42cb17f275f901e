"""
Generator commands: produce a new image, sized from the input when there is one.

    null                      transparent canvas
    const VALUE               uniform grey level (0..1) or colour
    checkers C1 C2 [size=N]   checkerboard, N-pixel cells (default 10)
    circle LINE SPACE [width=N]
    x / y                     coordinate ramps, value = coordinate mod 256
    noise [seed=N]            uniform grey noise
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from PIL import Image, ImageDraw

from patternlang.core.errors import BadArgumentError
from patternlang.core.expression_lang.registry import CommandRegistry
from patternlang.core.manifest import RenderConfig
from patternlang.ops.common import (
    canvas_size,
    grey,
    parse_color,
    parse_int,
    require_args,
    split_keywords,
)

DEFAULT_CHECKER_SIZE = 10


def register(registry: CommandRegistry, config: RenderConfig) -> None:
    default_size = config.size

    @registry.command("null")
    def null(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        return Image.new("RGBA", canvas_size(image, default_size), (0, 0, 0, 0))

    @registry.command("const")
    def const(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        require_args(args, 1, "const VALUE")
        try:
            level = min(max(float(args[0]), 0.0), 1.0)
        except ValueError:
            fill = parse_color(args[0])
        else:
            v = round(level * 255)
            fill = (v, v, v, 255)
        return Image.new("RGBA", canvas_size(image, default_size), fill)

    @registry.command("checkers")
    def checkers(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        positional, keywords = split_keywords(args)
        require_args(positional, 2, "checkers COLOR1 COLOR2 [size=N]")
        first, second = parse_color(positional[0]), parse_color(positional[1])
        cell = parse_int(keywords.get("size", str(DEFAULT_CHECKER_SIZE)), "cell size")
        if cell <= 0:
            raise BadArgumentError(f"cell size must be positive, got {cell}")

        width, height = canvas_size(image, default_size)
        rows, cols = np.indices((height, width))
        even = ((rows // cell + cols // cell) % 2 == 0)[..., None]
        pixels = np.where(even, np.array(first, np.uint8), np.array(second, np.uint8))
        return Image.fromarray(pixels.astype(np.uint8))

    @registry.command("circle")
    def circle(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        positional, keywords = split_keywords(args)
        require_args(positional, 2, "circle LINE SPACE [width=N]")
        line, space = parse_color(positional[0]), parse_color(positional[1])

        width, height = canvas_size(image, default_size)
        diameter = min(width, height)
        left, top = (width - diameter) // 2, (height - diameter) // 2
        box = (left, top, left + diameter - 1, top + diameter - 1)

        out = Image.new("RGBA", (width, height), space)
        draw = ImageDraw.Draw(out)
        if "width" in keywords:
            ring = parse_int(keywords["width"], "line width")
            draw.ellipse(box, outline=line, width=max(ring, 1))
        else:
            draw.ellipse(box, fill=line)
        return out

    @registry.command("x")
    def x_ramp(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        width, height = canvas_size(image, default_size)
        ramp = (np.arange(width) % 256) / 255.0
        return grey(np.broadcast_to(ramp, (height, width)))

    @registry.command("y")
    def y_ramp(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        width, height = canvas_size(image, default_size)
        ramp = (np.arange(height) % 256) / 255.0
        return grey(np.broadcast_to(ramp[:, None], (height, width)))

    @registry.command("noise")
    def noise(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        _, keywords = split_keywords(args)
        seed = parse_int(keywords.get("seed", str(config.seed)), "seed")
        width, height = canvas_size(image, default_size)
        rng = np.random.default_rng(seed)
        return grey(rng.integers(0, 256, size=(height, width)) / 255.0)
