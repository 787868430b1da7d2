"""Security gate run before build-time constants are generated.

The secret scan always runs. Token verification runs when it is required
or when a token is available anyway (explicitly or via the environment).
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from typing import Any

import buildconst.security.jwt
import buildconst.security.scanner
import buildconst.security.types

logger = logging.getLogger("buildconst.security.gate")

CUSTOM_ROOT = "custom"


def requires_verification(
    jwt_options: buildconst.security.types.JwtSecurityOptions | None,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Return True if a token check must run for these options."""
    options = jwt_options or buildconst.security.types.JwtSecurityOptions()
    if options.required:
        return True
    inputs = buildconst.security.jwt.resolve_jwt_inputs(options, environ)
    return bool(inputs.token)


def enforce_security(
    config_tree: Any,
    security_options: buildconst.security.types.SecurityOptions | None = None,
    now: datetime.datetime | float | None = None,
    environ: Mapping[str, str] | None = None,
) -> buildconst.security.types.JwtVerificationResult | None:
    """Scan *config_tree* and, when needed, verify the build token.

    Returns the verification result, or ``None`` if no token check ran.
    Any failure propagates and must abort generation.
    """
    if security_options is None:
        security_options = buildconst.security.types.SecurityOptions()

    scan_options = buildconst.security.scanner.normalize_secret_options(
        security_options.secrets
    )
    buildconst.security.scanner.scan(config_tree, scan_options, CUSTOM_ROOT)

    jwt_options = security_options.jwt
    if not requires_verification(jwt_options, environ):
        logger.debug("No build token supplied and none required; skipping verification")
        return None

    result = buildconst.security.jwt.verify_token(
        jwt_options or buildconst.security.types.JwtSecurityOptions(),
        now,
        environ,
    )
    logger.info(
        "Build token verified (iss=%s, sub=%s)",
        result.payload.iss,
        result.payload.sub,
    )
    return result
