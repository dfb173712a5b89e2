from pathlib import Path
from typing import Tuple

import yaml

from quotesync.commands.config import COMMAND
from quotesync.configuration import load_runtime_configuration
from quotesync.slash_commands import CommandRouter, SlashCommandContext


def _build_context(tmp_path: Path) -> Tuple[SlashCommandContext, Path]:
    data_dir = tmp_path / "data"
    (data_dir / "config").mkdir(parents=True)
    bundle = load_runtime_configuration(data_dir)
    router = CommandRouter(bundle)
    context = SlashCommandContext(config=bundle, router=router)
    return context, data_dir


def test_config_set_updates_override_file_and_reload(tmp_path: Path):
    context, data_dir = _build_context(tmp_path)

    output = COMMAND.handler(context, ["logging.level", "DEBUG"])

    override = data_dir / "config" / "99-cli-overrides.yml"
    assert override.exists()
    data = yaml.safe_load(override.read_text(encoding="utf-8"))
    assert data["logging"]["level"] == "DEBUG"
    assert context.router.config.merged["logging"]["level"] == "DEBUG"
    assert "logging.level" in output
    assert "restart" not in output


def test_config_get_returns_value(tmp_path: Path):
    context, _ = _build_context(tmp_path)
    COMMAND.handler(context, ["logging.level", "DEBUG"])

    output = COMMAND.handler(context, ["logging.level"])

    assert 'logging.level = "DEBUG"' in output


def test_config_set_sync_section_asks_for_restart(tmp_path: Path):
    context, _ = _build_context(tmp_path)

    output = COMMAND.handler(context, ["sync.interval_seconds", "45"])

    assert "updated to 45" in output
    assert "restart quotesync" in output


def test_config_set_accepts_scalar_lists(tmp_path: Path):
    context, _ = _build_context(tmp_path)

    COMMAND.handler(context, ["remote.categories", "[Wisdom, Humor]"])

    assert context.router.config.merged["remote"]["categories"] == ["Wisdom", "Humor"]


def test_config_set_rejects_mappings(tmp_path: Path):
    context, _ = _build_context(tmp_path)

    output = COMMAND.handler(context, ["sync", "{enabled: false}"])

    assert "nested mappings is not supported" in output


def test_config_validate_reports_diagnostics(tmp_path: Path):
    context, _ = _build_context(tmp_path)
    broken = context.config.data_dir / "config" / "broken.yml"
    broken.write_text("runtime: [\n", encoding="utf-8")

    output = COMMAND.handler(context, ["validate"])

    assert "Diagnostics" in output
    assert "broken.yml" in output
