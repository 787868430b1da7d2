"""CLI for guarded constants generation.

Usage:
    buildconst generate [--constants F] [--output F] [--now ISO]
                                        Scan, verify token, write module
    buildconst scan [--constants F]     Run the secret scanner only
    buildconst verify [--now ISO]       Verify the build token from env
"""

from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path

import buildconst.config
import buildconst.constants
import buildconst.security.config
import buildconst.security.errors
import buildconst.security.gate
import buildconst.security.jwt
import buildconst.security.scanner


def _constants_cfg(root: Path) -> buildconst.constants.ConstantsConfig:
    return buildconst.config.load("constants", root)


def _load_custom(constants: Path | None, root: Path) -> dict | None:
    path = constants if constants is not None else root / _constants_cfg(root).constants_file
    try:
        return buildconst.constants.load_constants_file(path)
    except (OSError, ValueError) as exc:
        print(f"Cannot read constants from {path}: {exc}", file=sys.stderr)
        return None


def _parse_now(value: str | None) -> datetime.datetime | None:
    if value is None:
        return None
    return datetime.datetime.fromisoformat(value)


def cmd_generate(
    constants: Path | None,
    output: Path | None,
    *,
    root: Path,
    now: datetime.datetime | None = None,
) -> int:
    """Run the security gate and write the constants module."""
    custom = _load_custom(constants, root)
    if custom is None:
        return 1
    if output is None:
        output = root / _constants_cfg(root).output_file

    try:
        security = buildconst.security.config.load_security_options(root)
        result = buildconst.constants.generate(
            custom, output, now=now, security=security
        )
    except buildconst.security.errors.BuildConstSecurityError as exc:
        print(f"Security check failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Wrote {result.path}")
    if result.verification is not None:
        payload = result.verification.payload
        print(f"Build token verified (iss={payload.iss}, sub={payload.sub})")
    return 0


def cmd_scan(constants: Path | None, *, root: Path) -> int:
    """Scan the constants file without generating anything."""
    custom = _load_custom(constants, root)
    if custom is None:
        return 1

    try:
        security = buildconst.security.config.load_security_options(root)
        options = buildconst.security.scanner.normalize_secret_options(
            security.secrets
        )
        warnings = buildconst.security.scanner.scan(
            custom, options, buildconst.security.gate.CUSTOM_ROOT
        )
    except buildconst.security.errors.BuildConstSecurityError as exc:
        print(f"Security check failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if warnings:
        print(f"Scan passed with {len(warnings)} warning(s)")
    else:
        print("Scan passed")
    return 0


def cmd_verify(*, root: Path, now: datetime.datetime | None = None) -> int:
    """Verify the build token against the configured claims."""
    try:
        security = buildconst.security.config.load_security_options(root)
        result = buildconst.security.jwt.verify_token(security.jwt, now)
    except buildconst.security.errors.BuildConstSecurityError as exc:
        print(f"Token verification failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    payload = result.payload
    print(f"alg: {result.header.alg}")
    for claim in ("iss", "sub", "aud", "exp"):
        value = getattr(payload, claim)
        if value is not None:
            print(f"{claim}: {value}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``buildconst generate|scan|verify``."""
    parser = argparse.ArgumentParser(
        prog="buildconst",
        description="Guarded build-time constants generation.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="subcmd")

    p_gen = sub.add_parser(
        "generate", parents=[common], help="Scan, verify and write the module"
    )
    p_gen.add_argument("--constants", type=Path, default=None)
    p_gen.add_argument("--output", type=Path, default=None)
    p_gen.add_argument("--now", default=None, help="ISO timestamp to embed")
    p_gen.add_argument("--path", type=Path, default=Path.cwd())

    p_scan = sub.add_parser(
        "scan", parents=[common], help="Run the secret scanner only"
    )
    p_scan.add_argument("--constants", type=Path, default=None)
    p_scan.add_argument("--path", type=Path, default=Path.cwd())

    p_verify = sub.add_parser(
        "verify", parents=[common], help="Verify the build token"
    )
    p_verify.add_argument("--now", default=None, help="ISO timestamp to check against")
    p_verify.add_argument("--path", type=Path, default=Path.cwd())

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(message)s",
    )

    if args.subcmd is None:
        parser.print_help()
        return 1

    try:
        now = _parse_now(getattr(args, "now", None))
    except ValueError:
        print(f"Invalid --now timestamp: {args.now!r}", file=sys.stderr)
        return 1

    if args.subcmd == "generate":
        return cmd_generate(args.constants, args.output, root=args.path, now=now)
    elif args.subcmd == "scan":
        return cmd_scan(args.constants, root=args.path)
    elif args.subcmd == "verify":
        return cmd_verify(root=args.path, now=now)
    else:
        parser.print_help()
        return 1
