"""HMAC-signed JWT verification (HS256, HS384, HS512), standard library only.

Only verification lives here; issuing tokens is somebody else's job.
The token and secret are resolved per call and never stored.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import datetime
import hashlib
import hmac
import json
import logging
import math
import os
import types
from collections.abc import Mapping
from typing import Any

import buildconst.security.errors
import buildconst.security.types

logger = logging.getLogger("buildconst.security.jwt")

HASH_BY_ALGORITHM: Mapping[str, Any] = types.MappingProxyType({
    "HS256": hashlib.sha256,
    "HS384": hashlib.sha384,
    "HS512": hashlib.sha512,
})


@dataclasses.dataclass(frozen=True)
class ResolvedJwtInputs:
    token: str | None
    secret: str | None = dataclasses.field(repr=False)
    token_env_name: str
    secret_env_name: str


def resolve_jwt_inputs(
    options: buildconst.security.types.JwtSecurityOptions,
    environ: Mapping[str, str] | None = None,
) -> ResolvedJwtInputs:
    """Resolve token and secret: explicit option first, then environment."""
    if environ is None:
        environ = os.environ

    token_env_name = options.token_env_name
    secret_env_name = options.secret_env_name

    token = options.token
    if token is None and token_env_name:
        token = environ.get(token_env_name)
    secret = options.secret
    if secret is None and secret_env_name:
        secret = environ.get(secret_env_name)

    return ResolvedJwtInputs(token, secret, token_env_name, secret_env_name)


def _now_seconds(now: datetime.datetime | float | None) -> int:
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    if isinstance(now, datetime.datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=datetime.timezone.utc)
        return math.floor(now.timestamp())
    return math.floor(now)


def base64url_decode(value: str) -> bytes:
    """Decode unpadded base64url, as used in compact JWS segments.

    Only the canonical encoding is accepted; anything else (stray
    characters or non-zero trailing bits included) raises ``binascii.Error``
    so every byte string has exactly one accepted segment.
    """
    padded = value + "=" * (-len(value) % 4)
    decoded = base64.b64decode(padded, altchars=b"-_", validate=True)
    if base64.urlsafe_b64encode(decoded).rstrip(b"=").decode("ascii") != value:
        raise binascii.Error("Non-canonical base64url segment")
    return decoded


def _parse_segment(segment: str, name: str) -> dict[str, Any]:
    try:
        data = json.loads(base64url_decode(segment).decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as exc:
        raise buildconst.security.errors.TokenFormatError(
            f"Unable to parse JWT {name}. {exc}"
        ) from exc
    if not isinstance(data, dict):
        raise buildconst.security.errors.TokenFormatError(
            f"Unable to parse JWT {name}. Expected a JSON object."
        )
    return data


def _sign(signing_input: str, secret: str, algorithm: str) -> bytes:
    digestmod = HASH_BY_ALGORITHM[algorithm]
    return hmac.new(
        secret.encode("utf-8"), signing_input.encode("utf-8"), digestmod
    ).digest()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def validate_claims(
    payload: buildconst.security.types.JwtPayload,
    options: buildconst.security.types.JwtSecurityOptions,
    now: datetime.datetime | float | None = None,
) -> None:
    """Check time-based and identity claims; raise on the first failure."""
    errors = buildconst.security.errors
    tolerance = options.clock_tolerance_seconds
    now_seconds = _now_seconds(now)

    if _is_number(payload.exp) and now_seconds >= payload.exp + tolerance:
        raise errors.TokenExpiredError("JWT token has expired.")

    if _is_number(payload.nbf) and now_seconds < payload.nbf - tolerance:
        raise errors.TokenNotYetValidError(
            "JWT token is not valid yet (nbf check failed)."
        )

    if _is_number(payload.iat) and payload.iat - tolerance > now_seconds:
        raise errors.TokenIssuedInFutureError(
            "JWT token issued-at (iat) claim is in the future."
        )

    if options.issuer and payload.iss != options.issuer:
        raise errors.IssuerMismatchError("JWT issuer claim mismatch.")

    if options.subject and payload.sub != options.subject:
        raise errors.SubjectMismatchError("JWT subject claim mismatch.")

    if options.audience:
        expected = _as_list(options.audience)
        actual = _as_list(payload.aud)
        if not any(aud in actual for aud in expected):
            raise errors.AudienceMismatchError("JWT audience claim mismatch.")


def verify_token(
    options: buildconst.security.types.JwtSecurityOptions | None = None,
    now: datetime.datetime | float | None = None,
    environ: Mapping[str, str] | None = None,
) -> buildconst.security.types.JwtVerificationResult:
    """Verify a compact HMAC-signed token and its claims.

    *now* may be a datetime (naive means UTC) or epoch seconds; it defaults
    to the current time. *environ* defaults to ``os.environ``.
    """
    errors = buildconst.security.errors
    if options is None:
        options = buildconst.security.types.JwtSecurityOptions()

    inputs = resolve_jwt_inputs(options, environ)
    if not inputs.token:
        raise errors.MissingTokenError(
            "JWT token is required. Provide security.jwt.token or set the "
            f"{inputs.token_env_name} environment variable."
        )
    if not inputs.secret:
        raise errors.MissingSecretError(
            "JWT secret is required. Provide security.jwt.secret or set the "
            f"{inputs.secret_env_name} environment variable."
        )

    allowed = tuple(options.algorithms)
    for alg in allowed:
        if alg not in HASH_BY_ALGORITHM:
            raise errors.UnsupportedAlgorithmError(
                f'Unsupported JWT algorithm "{alg}". Supported algorithms: '
                f"{', '.join(buildconst.security.types.SUPPORTED_ALGORITHMS)}"
            )

    segments = inputs.token.split(".")
    if len(segments) != 3 or not all(segments):
        raise errors.TokenFormatError(
            "Invalid JWT format. Expected header.payload.signature"
        )
    encoded_header, encoded_payload, encoded_signature = segments

    header_data = _parse_segment(encoded_header, "header")
    alg = header_data.get("alg")
    if not isinstance(alg, str) or alg not in allowed:
        raise errors.AlgorithmNotAllowedError(f'JWT algorithm "{alg}" is not allowed.')

    expected = _sign(f"{encoded_header}.{encoded_payload}", inputs.secret, alg)
    try:
        provided = base64url_decode(encoded_signature)
    except (binascii.Error, ValueError):
        provided = b""

    if len(expected) != len(provided) or not hmac.compare_digest(expected, provided):
        raise errors.SignatureError("JWT signature verification failed")

    payload_data = _parse_segment(encoded_payload, "payload")
    header = buildconst.security.types.JwtHeader.from_dict(header_data)
    payload = buildconst.security.types.JwtPayload.from_dict(payload_data)
    validate_claims(payload, options, now)

    logger.debug("Verified %s token (kid=%s)", alg, header.kid)
    return buildconst.security.types.JwtVerificationResult(header, payload)
