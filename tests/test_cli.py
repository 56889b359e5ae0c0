from __future__ import annotations

import tomllib

from typer.testing import CliRunner

from sparkbytes import cli, config

runner = CliRunner()


def test_config_writes_to_current_settings_path(tmp_path, monkeypatch):
    monkeypatch.setenv("SPARKBYTES_BASE_DIR", str(tmp_path))
    monkeypatch.delenv("SPARKBYTES_CONFIG", raising=False)
    monkeypatch.delenv("SPARKBYTES_FACULTY_CODE", raising=False)
    target = tmp_path / "custom.toml"
    monkeypatch.setattr(config, "settings", config.load_settings(target))

    result = runner.invoke(cli.app, ["config", "--faculty-code", "999"])

    assert result.exit_code == 0, result.output
    assert f"Updated configuration in {target}" in result.output
    with target.open("rb") as handle:
        assert tomllib.load(handle)["faculty_code"] == "999"
    assert config.settings.faculty_code == "999"


def test_config_show_reads_reloaded_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("SPARKBYTES_BASE_DIR", str(tmp_path))
    monkeypatch.delenv("SPARKBYTES_CONFIG", raising=False)
    monkeypatch.delenv("SPARKBYTES_FACULTY_CODE", raising=False)
    target = tmp_path / "custom.toml"
    monkeypatch.setattr(config, "settings", config.load_settings(target))

    runner.invoke(cli.app, ["config", "--faculty-code", "456"])
    result = runner.invoke(cli.app, ["config", "--show"])

    assert result.exit_code == 0, result.output
    assert '"faculty_code": "456"' in result.output
