"""Tests for CLI commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from patternlang.cli import app


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run CLI commands from an empty directory (no pattern.toml)."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestGlobalOptions:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "patternlang version" in result.output

    def test_missing_config_file(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["--config", "nope.toml", "commands"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_config(self, cli_runner: CliRunner, workdir: Path) -> None:
        (workdir / "pattern.toml").write_text("[render]\nwidth = -1\n")
        result = cli_runner.invoke(app, ["commands"])
        assert result.exit_code == 1
        assert "render.width" in result.output

    def test_invalid_log_level(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["--log-level", "chatty", "commands"])
        assert result.exit_code == 2


class TestRun:
    def test_run_pipeline(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["run", "checkers black white | zoom 2 | save out.png"])
        assert result.exit_code == 0, result.output
        assert "512x512" in result.output
        assert (workdir / "out.png").exists()

    def test_run_uses_config_size(self, cli_runner: CliRunner, workdir: Path) -> None:
        (workdir / "pattern.toml").write_text("[render]\nwidth = 8\nheight = 4\n")
        result = cli_runner.invoke(app, ["run", "checkers black white"])
        assert result.exit_code == 0, result.output
        assert "8x4" in result.output

    def test_run_parse_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["run", "a | | b"])
        assert result.exit_code == 1
        assert "Parse error" in result.output

    def test_run_unknown_command(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["run", "unknown_cmd 1 2"])
        assert result.exit_code == 1
        assert "unknown_cmd: unknown command" in result.output


class TestRender:
    def test_render_to_output(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(
            app,
            ["render", "-e", "checkers red blue size=4", "-o", "tiles.png", "--size", "32x16"],
        )
        assert result.exit_code == 0, result.output
        with Image.open(workdir / "tiles.png") as image:
            assert image.size == (32, 16)

    def test_render_default_output_from_config(self, cli_runner: CliRunner, workdir: Path) -> None:
        (workdir / "pattern.toml").write_text('[render]\nwidth = 8\nheight = 8\noutput = "cfg.png"\n')
        result = cli_runner.invoke(app, ["render", "-e", "circle red blue"])
        assert result.exit_code == 0, result.output
        with Image.open(workdir / "cfg.png") as image:
            assert image.size == (8, 8)

    def test_render_seeds_blank_canvas(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["render", "-e", "zoom 2", "--size", "4x4", "-o", "z.png"])
        assert result.exit_code == 0, result.output
        with Image.open(workdir / "z.png") as image:
            assert image.size == (8, 8)

    def test_render_seed_option(self, cli_runner: CliRunner, workdir: Path) -> None:
        for name in ("a.png", "b.png"):
            result = cli_runner.invoke(
                app, ["render", "-e", "noise", "--seed", "5", "--size", "8x8", "-o", name]
            )
            assert result.exit_code == 0, result.output
        with Image.open(workdir / "a.png") as a, Image.open(workdir / "b.png") as b:
            assert list(a.getdata()) == list(b.getdata())

    def test_render_bad_size(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["render", "-e", "null", "--size", "big"])
        assert result.exit_code == 1
        assert "Invalid size" in result.output

    def test_render_eval_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["render", "-e", "rotate 45"])
        assert result.exit_code == 1
        assert "rotate:" in result.output
        assert not (workdir / "out.png").exists()

    def test_render_unsupported_output(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["render", "-e", "null", "-o", "out.tiff"])
        assert result.exit_code == 1
        assert "unsupported file type" in result.output


class TestRepl:
    def test_repl_continues_after_errors(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["repl"], input="nope\ncheckers red blue\nquit\nnull\n")
        assert result.exit_code == 0, result.output
        assert "nope: unknown command" in result.output
        assert "256x256" in result.output

    def test_repl_exits_on_eof(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["repl"], input="null\n")
        assert result.exit_code == 0, result.output
        assert "256x256" in result.output

    def test_repl_fresh_context_per_line(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(
            app, ["repl"], input='join add (null)\nnull | join add "@img:0"\nexit\n'
        )
        assert result.exit_code == 0, result.output
        assert "handle not found: @img:0" in result.output


class TestInspect:
    def test_parse_prints_canonical_form(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["parse", "  checkers   red blue|zoom 5 "])
        assert result.exit_code == 0, result.output
        assert "checkers red blue | zoom 5" in result.output

    def test_parse_tokens(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["parse", "--tokens", "zoom 2"])
        assert result.exit_code == 0, result.output
        assert "IDENT" in result.output
        assert "NUMBER" in result.output

    def test_parse_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["parse", "(a"])
        assert result.exit_code == 1
        assert "unclosed" in result.output

    def test_commands_lists_builtins(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["commands"])
        assert result.exit_code == 0, result.output
        for name in ("checkers", "zoom", "save", "op_xor", "join"):
            assert name in result.output
