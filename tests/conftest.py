"""Shared test fixtures for buildconst tests."""

from __future__ import annotations

import base64
import datetime
import hashlib
import hmac
import json
import pathlib

import pytest

import buildconst.config
import buildconst.security.types

BASE_DATE = datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)
BASE_EPOCH = int(BASE_DATE.timestamp())

_DIGESTS = {"HS256": hashlib.sha256, "HS384": hashlib.sha384, "HS512": hashlib.sha512}


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def sign_token(
    payload: dict,
    secret: str,
    *,
    alg: str = "HS256",
    header: dict | None = None,
) -> str:
    """Sign *payload* the way an HS* issuer would (tests only)."""
    head = {"alg": alg, "typ": "JWT"} if header is None else header
    header_segment = b64url(json.dumps(head).encode())
    payload_segment = b64url(json.dumps(payload).encode())
    signing_input = f"{header_segment}.{payload_segment}"
    digest = hmac.new(
        secret.encode(), signing_input.encode(), _DIGESTS.get(alg, hashlib.sha256)
    ).digest()
    return f"{signing_input}.{b64url(digest)}"


@pytest.fixture(autouse=True)
def isolated_global_config(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> pathlib.Path:
    """Keep the user's ~/.config/buildconst out of every test."""
    global_toml = tmp_path / "global_config" / "config.toml"
    monkeypatch.setattr(buildconst.config, "_global_path", lambda: global_toml)
    return global_toml


@pytest.fixture(autouse=True)
def clean_token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset the default token/secret environment variables."""
    monkeypatch.delenv(buildconst.security.types.JWT_TOKEN_ENV, raising=False)
    monkeypatch.delenv(buildconst.security.types.JWT_SECRET_ENV, raising=False)


@pytest.fixture
def make_token():
    """Factory for signed tokens."""
    return sign_token


@pytest.fixture
def local_config(tmp_path: pathlib.Path):
    """Factory for writing .buildconst/config.toml under tmp_path."""

    def _create(content: str) -> pathlib.Path:
        path = tmp_path / ".buildconst" / "config.toml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _create
