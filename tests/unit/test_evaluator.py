"""Tests for the tree-walking evaluator.

Covers:
- Pipelines thread images left to right
- Sub-expressions become @img:N handles
- Binary operators dispatch to op_* commands in order
- Error propagation and command attribution
- Registry locking and the flat step executor
"""

from __future__ import annotations

import re
from collections.abc import Sequence

import pytest
from PIL import Image

from patternlang.core.errors import (
    CommandFailedError,
    EmptyExpressionError,
    EmptyResultError,
    ErrorKind,
    EvalError,
    InvalidOperatorError,
    OperatorNotImplementedError,
    RegistryError,
    UnknownCommandError,
    UnknownHandleError,
)
from patternlang.core.expression_lang import (
    CommandRegistry,
    EvalContext,
    current_context,
    evaluate,
    execute_steps,
    parse,
    run,
)
from patternlang.core.ir import Binary, BinaryOp, Command, Group

HANDLE_RE = re.compile(r"^@img:\d+$")


class TestPipelines:
    def test_scenario_pipeline(self, recording_registry, call_log, make_image) -> None:
        seed = make_image()
        tree = parse("checkers black white | zoom 10 | save out.png")
        result = evaluate(tree, EvalContext(recording_registry), seed)

        assert call_log.names == ["checkers", "zoom", "save"]
        assert call_log.args_of("checkers") == ["black", "white"]
        assert call_log.args_of("zoom") == ["10"]
        assert call_log.args_of("save") == ["out.png"]
        assert call_log.input_of("checkers") is seed
        assert result is seed

    def test_stage_output_feeds_next_stage(self, recording_registry, call_log) -> None:
        run("src_a | zoom 2", recording_registry)
        src_a_output = recording_registry.get("src_a")([], None)
        assert call_log.input_of("zoom").getpixel((0, 0)) == src_a_output.getpixel((0, 0))

    def test_group_evaluates_like_inner(self, registry) -> None:
        plain = run("checkers red blue size=2", registry)
        grouped = run("(checkers red blue size=2)", registry)
        assert list(plain.getdata()) == list(grouped.getdata())


class TestHandles:
    def test_sub_expression_resolves(self) -> None:
        registry = CommandRegistry()
        seen: dict[str, Image.Image] = {}

        def source(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            return Image.new("RGBA", (5, 5), (1, 2, 3, 255))

        def consumer(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            seen["arg"] = current_context().resolve_image(args[0])
            return seen["arg"]

        registry.register("source", source)
        registry.register("consumer", consumer)

        result = run("consumer (source)", registry)
        assert seen["arg"].size == (5, 5)
        assert result.size == (5, 5)

    def test_handle_shapes(self, recording_registry, call_log) -> None:
        run("join overlay (checkers red blue) mask=(circle red blue)", recording_registry)
        assert call_log.args_of("join") == ["overlay", "@img:0", "mask=@img:1"]

    def test_sub_expression_args_are_handles(self, recording_registry, call_log) -> None:
        run("consumer (source) 3 (src_a | zoom 2) key=(src_b)", recording_registry)
        args = call_log.args_of("consumer")
        assert HANDLE_RE.match(args[0])
        assert args[1] == "3"
        assert HANDLE_RE.match(args[2])
        assert re.match(r"^key=@img:\d+$", args[3])

    def test_counter_is_monotonic(self, recording_registry) -> None:
        ctx = EvalContext(recording_registry)
        evaluate(parse("consumer (source) (source) (source)"), ctx)
        assert ctx.counter == 3
        assert list(ctx.handles) == ["@img:0", "@img:1", "@img:2"]

    def test_handles_map_to_distinct_images(self, recording_registry) -> None:
        ctx = EvalContext(recording_registry)
        evaluate(parse("consumer (src_a) (src_b)"), ctx)
        assert ctx.lookup_image("@img:0") is not ctx.lookup_image("@img:1")

    def test_register_and_lookup(self, make_image) -> None:
        ctx = EvalContext(CommandRegistry())
        first = make_image()
        second = make_image((255, 255, 255, 255))
        assert ctx.register_image(first) == "@img:0"
        assert ctx.register_image(second) == "@img:1"
        assert ctx.lookup_image("@img:0") is first
        assert ctx.lookup_image("@img:1") is second
        assert ctx.lookup_image("@img:2") is None
        assert ctx.lookup_image("img:0") is None

    def test_resolve_keyword_handle(self, make_image) -> None:
        ctx = EvalContext(CommandRegistry())
        image = make_image()
        handle = ctx.register_image(image)
        assert ctx.resolve_image(f"mask={handle}") is image

    def test_resolve_unknown_handle(self) -> None:
        ctx = EvalContext(CommandRegistry())
        with pytest.raises(UnknownHandleError) as exc:
            ctx.resolve_image("@img:7")
        assert exc.value.kind == ErrorKind.UNKNOWN_HANDLE

    def test_clear_keeps_counter(self, make_image) -> None:
        ctx = EvalContext(CommandRegistry())
        ctx.register_image(make_image())
        ctx.clear()
        assert ctx.lookup_image("@img:0") is None
        assert ctx.register_image(make_image()) == "@img:1"

    def test_current_context_outside_evaluation(self) -> None:
        with pytest.raises(EvalError):
            current_context()


class TestBinary:
    def test_xor_scenario(self, recording_registry, call_log) -> None:
        ctx = EvalContext(recording_registry)
        evaluate(parse("(src_a) ^ (src_b)"), ctx)

        assert call_log.names == ["src_a", "src_b", "op_xor"]
        args = call_log.args_of("op_xor")
        assert len(args) == 1
        assert HANDLE_RE.match(args[0])

        src_a = recording_registry.get("src_a")([], None)
        src_b = recording_registry.get("src_b")([], None)
        assert call_log.input_of("op_xor") is src_a
        assert ctx.lookup_image(args[0]) is src_b

    def test_evaluation_order(self, recording_registry, call_log) -> None:
        run("src_a + src_b * source", recording_registry)
        assert call_log.names == ["src_a", "src_b", "source", "op_mul", "op_add"]

    def test_operands_receive_incoming_image(self, recording_registry, call_log, make_image) -> None:
        seed = make_image()
        evaluate(parse("zoom 1 ^ null"), EvalContext(recording_registry), seed)
        assert call_log.input_of("zoom") is seed
        assert call_log.input_of("null") is seed

    def test_literal_operand_uses_const(self, recording_registry, call_log) -> None:
        run("src_a * 0.5", recording_registry)
        assert call_log.names == ["src_a", "const", "op_mul"]
        assert call_log.args_of("const") == ["0.5"]

    def test_missing_operator_command(self, recording_registry) -> None:
        with pytest.raises(OperatorNotImplementedError) as exc:
            run("src_a / src_b", recording_registry)
        assert exc.value.command == "op_div"
        assert exc.value.kind == ErrorKind.OPERATOR_NOT_IMPLEMENTED

    def test_invalid_operator(self, recording_registry) -> None:
        tree = Binary.model_construct(
            left=Command(name="src_a"), op="@", right=Command(name="src_b")
        )
        with pytest.raises(InvalidOperatorError):
            evaluate(tree, EvalContext(recording_registry))

    def test_group_operands(self, recording_registry, call_log) -> None:
        tree = Binary(
            left=Group(inner=Command(name="src_a")),
            op=BinaryOp.ADD,
            right=Command(name="src_b"),
        )
        evaluate(tree, EvalContext(recording_registry))
        assert call_log.names == ["src_a", "src_b", "op_add"]


class TestErrors:
    def test_unknown_command(self, recording_registry) -> None:
        with pytest.raises(UnknownCommandError) as exc:
            run("unknown_cmd 1 2", recording_registry)
        assert exc.value.command == "unknown_cmd"
        assert exc.value.kind == ErrorKind.UNKNOWN_COMMAND
        assert "unknown_cmd" in str(exc.value)

    def test_unknown_command_aborts_before_arguments(self, recording_registry, call_log) -> None:
        with pytest.raises(UnknownCommandError):
            run("missing (source)", recording_registry)
        assert call_log.names == []

    def test_handler_error_gets_command_name(self) -> None:
        registry = CommandRegistry()

        def broken(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            raise EvalError("bad thing")

        registry.register("broken", broken)
        with pytest.raises(EvalError) as exc:
            run("broken", registry)
        assert exc.value.command == "broken"
        assert str(exc.value) == "broken: bad thing"

    def test_foreign_exception_is_wrapped(self) -> None:
        registry = CommandRegistry()

        def crash(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            raise ZeroDivisionError("division by zero")

        registry.register("crash", crash)
        with pytest.raises(CommandFailedError) as exc:
            run("crash", registry)
        assert exc.value.command == "crash"
        assert isinstance(exc.value.__cause__, ZeroDivisionError)

    def test_none_result(self) -> None:
        registry = CommandRegistry()
        registry.register("nothing", lambda args, image: None)
        with pytest.raises(EmptyResultError) as exc:
            run("nothing", registry)
        assert exc.value.command == "nothing"

    def test_error_in_sub_expression_aborts(self, recording_registry, call_log) -> None:
        with pytest.raises(UnknownCommandError) as exc:
            run("consumer (source) (nope)", recording_registry)
        assert exc.value.command == "nope"
        assert "consumer" not in call_log.names

    def test_error_stops_pipeline(self, recording_registry, call_log) -> None:
        with pytest.raises(UnknownCommandError):
            run("src_a | nope | zoom 2", recording_registry)
        assert call_log.names == ["src_a"]


class TestRegistryLock:
    def test_locked_during_evaluation(self) -> None:
        registry = CommandRegistry()
        observed: list[bool] = []

        def peek(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            observed.append(registry.is_locked)
            return Image.new("RGBA", (1, 1))

        registry.register("peek", peek)
        run("peek", registry)
        assert observed == [True]
        assert not registry.is_locked

    def test_register_during_evaluation_fails(self) -> None:
        registry = CommandRegistry()

        def sneaky(args: Sequence[str], image: Image.Image | None) -> Image.Image:
            registry.register("late", sneaky)
            return Image.new("RGBA", (1, 1))

        registry.register("sneaky", sneaky)
        with pytest.raises(RegistryError):
            run("sneaky", registry)
        assert "late" not in registry
        assert not registry.is_locked


class TestExecuteSteps:
    def test_runs_stages_in_order(self, recording_registry, call_log, make_image) -> None:
        seed = make_image()
        result = execute_steps(
            [("checkers", ["black", "white"]), ("zoom", ["10"])],
            EvalContext(recording_registry),
            seed,
        )
        assert call_log.names == ["checkers", "zoom"]
        assert call_log.args_of("zoom") == ["10"]
        assert result is seed

    def test_single_step(self, recording_registry, call_log) -> None:
        execute_steps([("null", [])], EvalContext(recording_registry))
        assert call_log.names == ["null"]

    def test_empty_steps(self, recording_registry) -> None:
        with pytest.raises(EmptyExpressionError):
            execute_steps([], EvalContext(recording_registry))
