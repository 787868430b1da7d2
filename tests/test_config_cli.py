"""Tests for buildconst.config_cli: CLI commands for configuration."""

from __future__ import annotations

import pathlib

import pytest

import buildconst.config
import buildconst.config_cli


class TestCmdList:
    def test_lists_sections(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert buildconst.config_cli.cmd_list() == 0
        out = capsys.readouterr().out
        assert "[secrets]" in out
        assert "[jwt]" in out
        assert "[constants]" in out

    def test_shows_factory_defaults(self, capsys: pytest.CaptureFixture[str]) -> None:
        buildconst.config_cli.cmd_list()
        out = capsys.readouterr().out
        assert "algorithms = ['HS256']  # list[str]" in out
        assert "MISSING" not in out


class TestCmdGet:
    def test_get_existing_key(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rc = buildconst.config_cli.cmd_get("jwt.clock_tolerance_seconds", tmp_path)
        assert rc == 0
        assert "60" in capsys.readouterr().out

    def test_get_invalid_format(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert buildconst.config_cli.cmd_get("no_dot", tmp_path) == 1
        assert "Invalid key format" in capsys.readouterr().err

    def test_get_unknown_key(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert buildconst.config_cli.cmd_get("jwt.token", tmp_path) == 1


class TestCmdSet:
    def test_set_and_get(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rc = buildconst.config_cli.cmd_set(
            "jwt.issuer", "astro", global_flag=False, root=tmp_path
        )
        assert rc == 0
        assert "Set jwt.issuer = astro (local: " in capsys.readouterr().out

        buildconst.config_cli.cmd_get("jwt.issuer", tmp_path)
        assert "astro" in capsys.readouterr().out

    def test_set_list(self, tmp_path: pathlib.Path) -> None:
        buildconst.config_cli.cmd_set(
            "secrets.allow_list", "custom.apiSecret,custom.x", global_flag=False, root=tmp_path
        )
        assert buildconst.config.get_effective("secrets", "allow_list", tmp_path) == [
            "custom.apiSecret",
            "custom.x",
        ]

    def test_secret_values_cannot_be_persisted(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rc = buildconst.config_cli.cmd_set(
            "jwt.secret", "hunter2", global_flag=False, root=tmp_path
        )
        assert rc == 1
        assert "Unknown key" in capsys.readouterr().err
        assert not (tmp_path / ".buildconst" / "config.toml").exists()


class TestCmdReset:
    def test_reset(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        buildconst.config.set_value("jwt", "required", True, root=tmp_path)
        rc = buildconst.config_cli.cmd_reset("jwt.required", global_flag=False, root=tmp_path)
        assert rc == 0
        assert "Reset jwt.required (local)" in capsys.readouterr().out
        assert buildconst.config.get_effective("jwt", "required", tmp_path) is False

    def test_reset_without_override(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rc = buildconst.config_cli.cmd_reset("jwt.issuer", global_flag=True, root=tmp_path)
        assert rc == 0
        assert "No global override for jwt.issuer" in capsys.readouterr().out


class TestCmdShow:
    def test_show(self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert buildconst.config_cli.cmd_show(tmp_path) == 0
        out = capsys.readouterr().out
        assert "[jwt]" in out
        assert 'token_env_name = "ASTRO_BUILD_TIME_TOKEN"' in out
        assert 'mode = "error"' in out


class TestCmdCheck:
    def test_defaults_ok(self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert buildconst.config_cli.cmd_check(tmp_path) == 0
        assert "OK" in capsys.readouterr().out

    def test_unsupported_algorithm(
        self, tmp_path: pathlib.Path, local_config, capsys: pytest.CaptureFixture[str]
    ) -> None:
        local_config('[jwt]\nalgorithms = ["HS256", "RS256"]\n')
        assert buildconst.config_cli.cmd_check(tmp_path) == 1
        assert "'RS256'" in capsys.readouterr().err

    def test_empty_algorithms(
        self, tmp_path: pathlib.Path, local_config, capsys: pytest.CaptureFixture[str]
    ) -> None:
        local_config("[jwt]\nalgorithms = []\n")
        assert buildconst.config_cli.cmd_check(tmp_path) == 1
        assert "empty" in capsys.readouterr().err

    def test_invalid_mode(
        self, tmp_path: pathlib.Path, local_config, capsys: pytest.CaptureFixture[str]
    ) -> None:
        local_config('[secrets]\nmode = "maybe"\n')
        assert buildconst.config_cli.cmd_check(tmp_path) == 1
        assert "secrets.mode" in capsys.readouterr().err


class TestMain:
    def test_no_subcommand(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert buildconst.config_cli.main([]) == 1

    def test_dispatch_get(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rc = buildconst.config_cli.main(["get", "constants.output_file", "--path", str(tmp_path)])
        assert rc == 0
        assert "build_time_constants.py" in capsys.readouterr().out

    def test_dispatch_set_global(
        self, tmp_path: pathlib.Path, isolated_global_config
    ) -> None:
        rc = buildconst.config_cli.main(
            ["set", "--global", "jwt.subject", "ci", "--path", str(tmp_path)]
        )
        assert rc == 0
        assert "subject" in isolated_global_config.read_text()

    def test_edit_creates_file(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls = []
        monkeypatch.setenv("EDITOR", "true")
        monkeypatch.setattr(
            buildconst.config_cli.subprocess, "call", lambda cmd: calls.append(cmd) or 0
        )
        assert buildconst.config_cli.cmd_edit(global_flag=False, root=tmp_path) == 0
        local = tmp_path / ".buildconst" / "config.toml"
        assert local.is_file()
        assert calls == [["true", str(local)]]
