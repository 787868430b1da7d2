"""Exception hierarchy for the security gate.

Every failure raised by the scanner, the token verifier or the gate derives
from ``BuildConstSecurityError``. Callers that generate output must treat any
of them as fatal.
"""

from __future__ import annotations


class BuildConstSecurityError(Exception):
    """Base class for all guardrail failures."""


# ---------------------------------------------------------------------------
# Configuration safety
# ---------------------------------------------------------------------------

class ConfigSafetyError(BuildConstSecurityError):
    """The configuration tree is unsafe to embed."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class SecretKeyError(ConfigSafetyError):
    def __init__(self, message: str, path: str, keyword: str) -> None:
        super().__init__(message, path)
        self.keyword = keyword


class UnsafePropertyError(ConfigSafetyError):
    pass


class UnsupportedValueError(ConfigSafetyError):
    pass


# ---------------------------------------------------------------------------
# Token configuration
# ---------------------------------------------------------------------------

class TokenConfigError(BuildConstSecurityError):
    """Token verification was requested but cannot be set up."""


class MissingTokenError(TokenConfigError):
    pass


class MissingSecretError(TokenConfigError):
    pass


class UnsupportedAlgorithmError(TokenConfigError):
    pass


# ---------------------------------------------------------------------------
# Token structure and signature
# ---------------------------------------------------------------------------

class TokenFormatError(BuildConstSecurityError):
    """The token is not a well-formed header.payload.signature triple."""


class TokenCryptoError(BuildConstSecurityError):
    """The token's algorithm or signature was rejected."""


class AlgorithmNotAllowedError(TokenCryptoError):
    pass


class SignatureError(TokenCryptoError):
    pass


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------

class ClaimValidationError(BuildConstSecurityError):
    """A registered claim failed validation."""

    claim = ""


class TokenExpiredError(ClaimValidationError):
    claim = "exp"


class TokenNotYetValidError(ClaimValidationError):
    claim = "nbf"


class TokenIssuedInFutureError(ClaimValidationError):
    claim = "iat"


class IssuerMismatchError(ClaimValidationError):
    claim = "iss"


class SubjectMismatchError(ClaimValidationError):
    claim = "sub"


class AudienceMismatchError(ClaimValidationError):
    claim = "aud"
