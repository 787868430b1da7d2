"""Configuration for the security gate.

Token and secret values are never read from TOML; they come from the
environment (or the API) only.
"""

from __future__ import annotations

import dataclasses
import pathlib
import typing

import buildconst.config
import buildconst.security.types


@buildconst.config.configurable("secrets")
@dataclasses.dataclass
class SecretsConfig:
    # Extra keywords, unioned with the built-in blocklist
    blocklist: list[str] = dataclasses.field(default_factory=list)
    # Full lowercase paths, e.g. "custom.apisecret"
    allow_list: list[str] = dataclasses.field(default_factory=list)
    # "error" or "warn"
    mode: str = "error"


@buildconst.config.configurable("jwt")
@dataclasses.dataclass
class JwtConfig:
    token_env_name: str = buildconst.security.types.JWT_TOKEN_ENV
    secret_env_name: str = buildconst.security.types.JWT_SECRET_ENV
    issuer: str = ""
    subject: str = ""
    audience: list[str] = dataclasses.field(default_factory=list)
    required: bool = False
    algorithms: list[str] = dataclasses.field(default_factory=lambda: ["HS256"])
    clock_tolerance_seconds: int = buildconst.security.types.DEFAULT_CLOCK_TOLERANCE


def _as_tuple(value: typing.Any) -> tuple[str, ...]:
    # TOML allows `audience = "builder"` as well as a list
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(value)


def _parse_mode(
    mode: str | buildconst.security.types.SecretValidationMode,
) -> buildconst.security.types.SecretValidationMode:
    if isinstance(mode, buildconst.security.types.SecretValidationMode):
        return mode
    try:
        return buildconst.security.types.SecretValidationMode(mode.lower())
    except ValueError:
        raise ValueError(
            f"Invalid secrets.mode {mode!r} (expected 'error' or 'warn')"
        ) from None


def load_security_options(
    root: pathlib.Path | None = None,
    **overrides: typing.Any,
) -> buildconst.security.types.SecurityOptions:
    """Build ``SecurityOptions`` from TOML, then apply keyword overrides.

    Overrides are matched by field name against both sections;
    ``None`` values are ignored. ``token`` and ``secret`` may be passed
    as overrides but are never persisted.
    """
    secrets_cfg = buildconst.config.load("secrets", root, **overrides)
    jwt_cfg = buildconst.config.load("jwt", root, **overrides)

    secrets = buildconst.security.types.SecretValidationOptions(
        blocklist=_as_tuple(secrets_cfg.blocklist),
        allow_list=_as_tuple(secrets_cfg.allow_list),
        mode=_parse_mode(secrets_cfg.mode),
    )
    jwt = buildconst.security.types.JwtSecurityOptions(
        token=overrides.get("token"),
        token_env_name=jwt_cfg.token_env_name,
        secret=overrides.get("secret"),
        secret_env_name=jwt_cfg.secret_env_name,
        issuer=jwt_cfg.issuer or None,
        subject=jwt_cfg.subject or None,
        audience=_as_tuple(jwt_cfg.audience) or None,
        required=jwt_cfg.required,
        algorithms=_as_tuple(jwt_cfg.algorithms),
        clock_tolerance_seconds=jwt_cfg.clock_tolerance_seconds,
    )
    return buildconst.security.types.SecurityOptions(secrets=secrets, jwt=jwt)
