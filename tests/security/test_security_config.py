"""Tests for buildconst.security.config: TOML sections to SecurityOptions."""

from __future__ import annotations

import pathlib

import pytest

import buildconst.config
import buildconst.security.config
import buildconst.security.types


class TestSections:
    def test_registered(self) -> None:
        sections = buildconst.config.list_sections()
        assert sections["secrets"] is buildconst.security.config.SecretsConfig
        assert sections["jwt"] is buildconst.security.config.JwtConfig

    def test_defaults(self, tmp_path: pathlib.Path) -> None:
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.secrets.blocklist == ()
        assert options.secrets.mode is buildconst.security.types.SecretValidationMode.ERROR
        assert options.jwt.token is None
        assert options.jwt.secret is None
        assert options.jwt.token_env_name == "ASTRO_BUILD_TIME_TOKEN"
        assert options.jwt.issuer is None
        assert options.jwt.audience is None
        assert options.jwt.algorithms == ("HS256",)
        assert options.jwt.clock_tolerance_seconds == 60
        assert options.jwt.required is False


class TestLoadSecurityOptions:
    def test_from_local_toml(self, tmp_path: pathlib.Path, local_config) -> None:
        local_config(
            "[secrets]\n"
            'mode = "warn"\n'
            'allow_list = ["custom.apiSecret"]\n'
            'blocklist = ["bearer"]\n'
            "[jwt]\n"
            'issuer = "astro"\n'
            'audience = "builder"\n'
            "required = true\n"
            'algorithms = ["HS256", "HS512"]\n'
        )
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.secrets.mode is buildconst.security.types.SecretValidationMode.WARN
        assert options.secrets.allow_list == ("custom.apiSecret",)
        assert options.secrets.blocklist == ("bearer",)
        assert options.jwt.issuer == "astro"
        assert options.jwt.audience == ("builder",)
        assert options.jwt.required is True
        assert options.jwt.algorithms == ("HS256", "HS512")

    def test_global_then_local(
        self, tmp_path: pathlib.Path, local_config, isolated_global_config
    ) -> None:
        isolated_global_config.parent.mkdir(parents=True)
        isolated_global_config.write_text('[jwt]\nissuer = "global"\nsubject = "ci"\n')
        local_config('[jwt]\nissuer = "local"\n')
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.jwt.issuer == "local"
        assert options.jwt.subject == "ci"

    def test_overrides(self, tmp_path: pathlib.Path, local_config) -> None:
        local_config('[jwt]\nissuer = "astro"\n')
        options = buildconst.security.config.load_security_options(
            tmp_path, issuer="override", token="t", secret="s", mode=None
        )
        assert options.jwt.issuer == "override"
        assert options.jwt.token == "t"
        assert options.jwt.secret == "s"

    def test_token_in_toml_is_ignored(self, tmp_path: pathlib.Path, local_config) -> None:
        local_config('[jwt]\ntoken = "from-file"\nsecret = "from-file"\n')
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.jwt.token is None
        assert options.jwt.secret is None

    def test_invalid_mode(self, tmp_path: pathlib.Path, local_config) -> None:
        local_config('[secrets]\nmode = "loud"\n')
        with pytest.raises(ValueError, match="secrets.mode"):
            buildconst.security.config.load_security_options(tmp_path)

    def test_mode_case_insensitive(self, tmp_path: pathlib.Path, local_config) -> None:
        local_config('[secrets]\nmode = "WARN"\n')
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.secrets.mode is buildconst.security.types.SecretValidationMode.WARN

    def test_set_list_value_via_registry(self, tmp_path: pathlib.Path) -> None:
        buildconst.config.set_value(
            "secrets", "allow_list", "custom.apiSecret, custom.dbPassword", root=tmp_path
        )
        options = buildconst.security.config.load_security_options(tmp_path)
        assert options.secrets.allow_list == ("custom.apiSecret", "custom.dbPassword")
