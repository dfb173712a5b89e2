"""Unit tests for slash command registry."""

from __future__ import annotations

from pathlib import Path

from quotesync.configuration import ConfigurationBundle
from quotesync.slash_commands import (
    CommandRouter,
    SlashCommand,
    SlashCommandContext,
    render_help_table,
    render_rich,
)


def test_router_handles_registered_command(tmp_path: Path):
    config = ConfigurationBundle(data_dir=tmp_path, status="ready")
    router = CommandRouter(config, session=object())
    captured = {}

    def handler(context: SlashCommandContext, args: list) -> str:
        captured["context"] = context
        return f"echo:{' '.join(args)}"

    router.register(SlashCommand(name="echo", description="Echo args", handler=handler))
    result = router.handle("echo", ["hello", "world"])

    assert result == "echo:hello world"
    assert captured["context"].config is config
    assert "echo" in router.command_names


def test_dispatch_splits_command_line(tmp_path: Path):
    config = ConfigurationBundle(data_dir=tmp_path, status="ready")
    router = CommandRouter(config)
    router.register(
        SlashCommand(
            name="echo",
            description="Echo args",
            handler=lambda _ctx, args: "|".join(args),
            requires_session=False,
        )
    )

    assert router.dispatch("ECHO don't  panic") == "don't|panic"
    assert router.dispatch("   ") == ""


def test_unknown_command_points_to_help(tmp_path: Path):
    router = CommandRouter(ConfigurationBundle(data_dir=tmp_path, status="ready"))

    result = router.handle("nope", [])

    assert "Unknown command '/nope'" in result
    assert "/help" in result


def test_render_help_table_lists_commands(tmp_path: Path):
    config = ConfigurationBundle(data_dir=tmp_path, status="ready")
    router = CommandRouter(config)
    router.register(SlashCommand(name="status", description="Show status", handler=lambda *_: ""))
    router.register(SlashCommand(name="help", description="Show help", handler=lambda *_: ""))

    output = render_help_table(router.commands())

    assert "/status" in output
    assert "Show status" in output


def test_render_rich_produces_ansi():
    def _render(console):
        console.print("hello", style="bold red")

    ansi = render_rich(_render)

    assert "\x1b[" in ansi  # contains ANSI escape sequence


def test_session_guard(tmp_path: Path):
    config = ConfigurationBundle(data_dir=tmp_path, status="ready")
    router = CommandRouter(config)
    router.register(SlashCommand(name="quote", description="Show a quote", handler=lambda *_: "ok"))

    result = router.handle("quote", [])

    assert "needs a loaded quote session" in result


def test_requires_ready_guard(tmp_path: Path):
    config = ConfigurationBundle(data_dir=tmp_path, status="invalid")
    router = CommandRouter(config)
    router.register(
        SlashCommand(
            name="needs_ready",
            description="Needs ready config",
            handler=lambda *_: "ok",
            requires_session=False,
            requires_ready=True,
        )
    )

    result = router.handle("needs_ready", [])

    assert "requires a ready configuration" in result
