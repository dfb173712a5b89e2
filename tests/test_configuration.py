"""Tests for the layered configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from quotesync import configuration


def _prepare_repo_defaults(tmp_path: Path, content: str = "runtime:\n  name: test\n") -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "10-default.yml").write_text(content, encoding="utf-8")
    return config_dir


def test_resolve_data_dir_uses_env_expansion(tmp_path: Path):
    env = {"QUOTESYNC_DATA_DIR": str(tmp_path / "data")}
    path = configuration.resolve_data_dir(env=env)
    assert path == tmp_path / "data"


def test_load_runtime_configuration_merges_repo_and_user(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(
        tmp_path,
        content="sync:\n  interval_seconds: 30\n  on_pending: block\n",
    )
    data_dir = tmp_path / "data"
    overrides_dir = data_dir / "config"
    overrides_dir.mkdir(parents=True)
    (overrides_dir / "20-overrides.yml").write_text(
        "sync:\n  interval_seconds: 5\n",
        encoding="utf-8",
    )

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(data_dir)

    assert bundle.status == "ready"
    assert bundle.merged["sync"]["interval_seconds"] == 5
    assert bundle.merged["sync"]["on_pending"] == "block"
    assert len(bundle.files_loaded) == 2


def test_schema_fills_defaults_for_missing_sections(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(data_dir)

    assert bundle.merged["sync"]["interval_seconds"] == 30
    assert bundle.merged["sync"]["conflict_strategy"] == "manual"
    assert bundle.merged["import"]["validate"] is False
    assert bundle.section("remote")["limit"] == 5


def test_load_runtime_configuration_reports_missing_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(tmp_path / "missing")

    assert bundle.status == "missing"
    assert any(diag.level == "error" for diag in bundle.diagnostics)


def test_load_runtime_configuration_handles_bad_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    overrides_dir = tmp_path / "data" / "config"
    overrides_dir.mkdir(parents=True)
    (overrides_dir / "broken.yml").write_text("sync: [\n", encoding="utf-8")

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(tmp_path / "data")

    assert bundle.status == "invalid"
    assert any("Failed to parse" in diag.message for diag in bundle.diagnostics)


def test_repository_defaults_file_is_valid(tmp_path: Path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()

    bundle = configuration.load_runtime_configuration(data_dir)

    assert bundle.status == "ready"
    assert not [diag for diag in bundle.diagnostics if diag.level == "error"]
    assert bundle.merged["remote"]["url"].startswith("https://")
