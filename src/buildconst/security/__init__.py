"""Security guardrails for build-time constants generation.

A secret scanner rejects configuration trees that carry secret-like keys
or unsafe property names, and an HMAC token verifier (HS256/HS384/HS512)
gates generation on a valid, claims-compliant token. The gate composes both.
"""
