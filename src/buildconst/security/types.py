"""Data model for the security gate.

Header and payload carry the registered fields as typed attributes and keep
everything else in an ``extra`` mapping, so unknown claims survive a
``from_dict()``/``to_dict()`` pass unchanged.
"""

from __future__ import annotations

import dataclasses
import enum
import types
from collections.abc import Mapping, Sequence
from typing import Any

DEFAULT_SECRET_BLOCKLIST: tuple[str, ...] = (
    "secret",
    "password",
    "token",
    "credential",
    "passphrase",
    "privatekey",
    "apikey",
)

SUPPORTED_ALGORITHMS: tuple[str, ...] = ("HS256", "HS384", "HS512")

JWT_TOKEN_ENV = "ASTRO_BUILD_TIME_TOKEN"
JWT_SECRET_ENV = "ASTRO_BUILD_TIME_SECRET"

DEFAULT_CLOCK_TOLERANCE = 60

_EMPTY: Mapping[str, Any] = types.MappingProxyType({})


class SecretValidationMode(enum.Enum):
    ERROR = "error"
    WARN = "warn"


# ---------------------------------------------------------------------------
# Caller-facing options
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class SecretValidationOptions:
    """Secret scanning options as supplied by the caller."""

    blocklist: Sequence[str] = ()
    allow_list: Sequence[str] = ()
    mode: SecretValidationMode = SecretValidationMode.ERROR


@dataclasses.dataclass(frozen=True)
class JwtSecurityOptions:
    """Token verification options.

    ``token`` and ``secret`` win over the environment variables named by
    ``token_env_name`` and ``secret_env_name``.
    """

    token: str | None = None
    token_env_name: str = JWT_TOKEN_ENV
    secret: str | None = dataclasses.field(default=None, repr=False)
    secret_env_name: str = JWT_SECRET_ENV
    issuer: str | None = None
    subject: str | None = None
    audience: str | Sequence[str] | None = None
    required: bool = False
    algorithms: Sequence[str] = ("HS256",)
    clock_tolerance_seconds: int = DEFAULT_CLOCK_TOLERANCE


@dataclasses.dataclass(frozen=True)
class SecurityOptions:
    secrets: SecretValidationOptions | None = None
    jwt: JwtSecurityOptions | None = None


# ---------------------------------------------------------------------------
# Normalized scanner options
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class SecretScanOptions:
    """Effective scanner options: lowercase keywords and paths."""

    blocklist: tuple[str, ...] = DEFAULT_SECRET_BLOCKLIST
    allow_list: frozenset[str] = frozenset()
    mode: SecretValidationMode = SecretValidationMode.ERROR


# ---------------------------------------------------------------------------
# Token model
# ---------------------------------------------------------------------------

_HEADER_FIELDS = ("alg", "typ", "kid")
_PAYLOAD_FIELDS = ("iss", "sub", "aud", "exp", "nbf", "iat")


def _empty() -> Mapping[str, Any]:
    return _EMPTY


def _split(data: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    fields = {k: data[k] for k in known if k in data}
    extra = {k: v for k, v in data.items() if k not in known}
    fields["extra"] = types.MappingProxyType(extra) if extra else _EMPTY
    # Known keys seen in the source, so explicit nulls survive to_dict()
    fields["present"] = frozenset(k for k in known if k in data)
    return fields


def _known_items(obj: Any, known: tuple[str, ...]):
    for name in known:
        value = getattr(obj, name)
        if value is not None or name in obj.present:
            yield name, value


@dataclasses.dataclass(frozen=True)
class JwtHeader:
    alg: Any = None
    typ: str | None = None
    kid: str | None = None
    extra: Mapping[str, Any] = dataclasses.field(default_factory=_empty)
    present: frozenset[str] = dataclasses.field(default=frozenset(), repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JwtHeader:
        return cls(**_split(data, _HEADER_FIELDS))

    def to_dict(self) -> dict[str, Any]:
        out = dict(_known_items(self, _HEADER_FIELDS))
        out.update(self.extra)
        return out


@dataclasses.dataclass(frozen=True)
class JwtPayload:
    iss: str | None = None
    sub: str | None = None
    aud: str | tuple[str, ...] | None = None
    exp: float | None = None
    nbf: float | None = None
    iat: float | None = None
    extra: Mapping[str, Any] = dataclasses.field(default_factory=_empty)
    present: frozenset[str] = dataclasses.field(default=frozenset(), repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JwtPayload:
        fields = _split(data, _PAYLOAD_FIELDS)
        if isinstance(fields.get("aud"), list):
            fields["aud"] = tuple(fields["aud"])
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, value in _known_items(self, _PAYLOAD_FIELDS):
            out[name] = list(value) if isinstance(value, tuple) else value
        out.update(self.extra)
        return out


@dataclasses.dataclass(frozen=True)
class JwtVerificationResult:
    header: JwtHeader
    payload: JwtPayload
