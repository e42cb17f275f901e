"""Shared pytest fixtures for patternlang tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest
from PIL import Image

from patternlang.core.expression_lang import CommandRegistry, EvalContext
from patternlang.core.manifest import RenderConfig
from patternlang.ops import build_default_registry


def solid(size: tuple[int, int], color: tuple[int, int, int, int]) -> Image.Image:
    """Return a solid RGBA image."""
    return Image.new("RGBA", size, color)


@pytest.fixture
def render_config() -> RenderConfig:
    """Small canvas so pixel-level tests stay fast."""
    return RenderConfig(width=16, height=16)


@pytest.fixture
def registry(render_config: RenderConfig) -> CommandRegistry:
    """Registry with every built-in command."""
    return build_default_registry(render_config)


@pytest.fixture
def context(registry: CommandRegistry) -> EvalContext:
    return EvalContext(registry)


@pytest.fixture
def make_image() -> Callable[..., Image.Image]:
    """Factory for solid test images."""

    def _make(
        color: tuple[int, int, int, int] = (0, 0, 0, 255), size: tuple[int, int] = (4, 4)
    ) -> Image.Image:
        return solid(size, color)

    return _make


class CallLog:
    """Records handler invocations in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], Image.Image | None]] = []

    @property
    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def args_of(self, name: str) -> list[str]:
        for call_name, args, _ in self.calls:
            if call_name == name:
                return args
        raise AssertionError(f"{name} was never called")

    def input_of(self, name: str) -> Image.Image | None:
        for call_name, _, image in self.calls:
            if call_name == name:
                return image
        raise AssertionError(f"{name} was never called")


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def recording_registry(call_log: CallLog) -> CommandRegistry:
    """
    Registry of stub commands that record their calls.

    ``src_a`` / ``src_b`` / ``source`` return distinct solid images; every
    other command returns its input (or a fresh image when it has none).
    """
    registry = CommandRegistry()

    outputs = {
        "src_a": solid((5, 5), (255, 0, 0, 255)),
        "src_b": solid((5, 5), (0, 0, 255, 255)),
        "source": solid((5, 5), (0, 255, 0, 255)),
    }

    def recorder(name: str) -> Callable[[Sequence[str], Image.Image | None], Image.Image]:
        def handler(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            call_log.calls.append((name, list(args), image))
            if name in outputs:
                return outputs[name]
            return image if image is not None else solid((5, 5), (0, 0, 0, 255))

        return handler

    for name in (
        "src_a",
        "src_b",
        "source",
        "consumer",
        "join",
        "checkers",
        "circle",
        "zoom",
        "save",
        "null",
        "const",
        "op_xor",
        "op_add",
        "op_mul",
    ):
        registry.register(name, recorder(name))
    return registry
