"""buildconst CLI: guarded build-time constants generation.

Usage:
    buildconst generate [opts]  Scan constants, verify token, write module
    buildconst scan [opts]      Run the secret scanner only
    buildconst verify [opts]    Verify the build token from the environment
    buildconst config <cmd>     Configuration (list/get/set/reset/show/check/edit)

Environment:
    ASTRO_BUILD_TIME_TOKEN      Build token (name set via jwt.token_env_name)
    ASTRO_BUILD_TIME_SECRET     HMAC secret (name set via jwt.secret_env_name)
"""

from __future__ import annotations

import sys


def _cmd_guarded(cmd: str, args: list[str]) -> int:
    """Scan, verify and generate."""
    import buildconst.cli

    return buildconst.cli.main([cmd, *args])


def _cmd_config(args: list[str]) -> int:
    """Configuration."""
    import buildconst.config_cli

    return buildconst.config_cli.main(args)


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd in ("generate", "scan", "verify"):
        sys.exit(_cmd_guarded(cmd, rest))
    elif cmd == "config":
        sys.exit(_cmd_config(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
