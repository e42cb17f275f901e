"""
Compositing commands: ``join`` and the infix operator commands.

Operators receive the left operand as the input image and the right operand
as a single ``@img:N`` handle argument. The right image is resized to the
left's size when they differ. Channel math happens in floats 0..1 and is
clamped on the way out; alpha is the larger of the two operands' alpha.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
from PIL import Image

from patternlang.core.errors import BadArgumentError
from patternlang.core.expression_lang.registry import CommandHandler, CommandRegistry
from patternlang.core.manifest import RenderConfig
from patternlang.ops.common import (
    from_unit,
    match_size,
    require_args,
    require_input,
    resolve_handle,
    split_keywords,
    to_rgba,
    to_unit,
)

BlendFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _overlay(base: np.ndarray, top: np.ndarray) -> np.ndarray:
    return np.where(base < 0.5, 2 * base * top, 1 - 2 * (1 - base) * (1 - top))


BLEND_MODES: dict[str, BlendFn] = {
    "add": lambda a, b: a + b,
    "multiply": lambda a, b: a * b,
    "average": lambda a, b: (a + b) / 2,
    "screen": lambda a, b: 1 - (1 - a) * (1 - b),
    "overlay": _overlay,
}


def _safe_divide(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    out = np.zeros_like(a)
    np.divide(a, b, out=out, where=b != 0)
    return out


def _safe_mod(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    out = np.zeros_like(a)
    np.fmod(a, b, out=out, where=b != 0)
    return out


OPERATORS: dict[str, BlendFn] = {
    "op_add": np.add,
    "op_sub": np.subtract,
    "op_mul": np.multiply,
    "op_div": _safe_divide,
    "op_mod": _safe_mod,
}


def _operands(args: Sequence[str], image: Image.Image | None, usage: str) -> tuple[Image.Image, Image.Image]:
    left = to_rgba(require_input(image))
    require_args(args, 1, usage)
    right = match_size(to_rgba(resolve_handle(args[0])), left.size)
    return left, right


def blend(base: Image.Image, top: Image.Image, mode: str) -> Image.Image:
    """Blend ``top`` onto ``base`` (same size) with one of the join modes."""
    if mode == "normal":
        return Image.alpha_composite(base, top)

    fn = BLEND_MODES.get(mode)
    if fn is None:
        modes = ", ".join(["normal", *BLEND_MODES])
        raise BadArgumentError(f"unknown blend mode {mode!r} (expected one of {modes})")

    a, b = to_unit(base), to_unit(top)
    out = np.empty_like(a)
    out[..., :3] = fn(a[..., :3], b[..., :3])
    out[..., 3] = (a[..., 3] + b[..., 3]) / 2
    return from_unit(out)


def register(registry: CommandRegistry, config: RenderConfig) -> None:
    @registry.command("join")
    def join(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        """join MODE HANDLE [mask=HANDLE]"""
        positional, keywords = split_keywords(args)
        require_args(positional, 2, "join MODE HANDLE [mask=HANDLE]")
        base = to_rgba(require_input(image))
        source = match_size(to_rgba(resolve_handle(positional[1])), base.size)
        blended = blend(base, source, positional[0].lower())

        if "mask" not in keywords:
            return blended

        mask = match_size(resolve_handle(keywords["mask"]), base.size)
        weight = to_unit(mask)[..., :3].mean(axis=-1, keepdims=True)
        return from_unit(to_unit(base) * (1 - weight) + to_unit(blended) * weight)

    @registry.command("op_xor")
    def op_xor(args: Sequence[str], image: Image.Image | None) -> Image.Image:
        left, right = _operands(args, image, "op_xor HANDLE")
        a = np.asarray(left, dtype=np.uint8)
        b = np.asarray(right, dtype=np.uint8)
        out = np.bitwise_xor(a, b)
        out[..., 3] = np.maximum(a[..., 3], b[..., 3])
        return Image.fromarray(out)

    def arithmetic(name: str, fn: BlendFn) -> CommandHandler:
        def handler(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            left, right = _operands(args, image, f"{name} HANDLE")
            a, b = to_unit(left), to_unit(right)
            out = np.empty_like(a)
            out[..., :3] = fn(a[..., :3], b[..., :3])
            out[..., 3] = np.maximum(a[..., 3], b[..., 3])
            return from_unit(out)

        return handler

    for name, fn in OPERATORS.items():
        registry.register(name, arithmetic(name, fn))
