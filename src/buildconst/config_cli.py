"""``buildconst config``: inspect and edit the layered TOML configuration.

Usage:
    buildconst config list                         Sections, fields and defaults
    buildconst config get <section.key>            Print effective value
    buildconst config set [--global] <key> <value> Write an override
    buildconst config reset [--global] <key>       Remove an override
    buildconst config show                         Effective config as TOML
    buildconst config check                        Validate security settings
    buildconst config edit [--global]              Open config.toml in $EDITOR

List values are set comma-separated:
    buildconst config set secrets.allow_list custom.apiSecret,custom.db.password

Token and secret values have no config key; they are read from the
environment only.
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import subprocess
import sys
from pathlib import Path

import buildconst.config


def _ensure_registry() -> None:
    """Import the modules that declare sections."""
    import buildconst.constants
    import buildconst.security.config  # noqa: F401


def _parse_key(key: str) -> tuple[str, str]:
    section, sep, field = key.partition(".")
    if not sep or not section or not field:
        raise ValueError(f"Invalid key format: {key!r} (expected section.key)")
    return section, field


def _scope(global_flag: bool) -> str:
    return "global" if global_flag else "local"


def _fail(exc: Exception) -> int:
    # KeyError wraps its message in quotes
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
    print(message, file=sys.stderr)
    return 1


def _default_of(f: dataclasses.Field) -> object:
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory()
    return f.default


def cmd_list() -> int:
    _ensure_registry()
    for name, cls in sorted(buildconst.config.list_sections().items()):
        print(f"[{name}]")
        for f in dataclasses.fields(cls):
            type_name = f.type if isinstance(f.type, str) else f.type.__name__
            print(f"  {f.name} = {_default_of(f)!r}  # {type_name}")
        print()
    return 0


def cmd_get(key: str, root: Path) -> int:
    _ensure_registry()
    try:
        section, field = _parse_key(key)
        value = buildconst.config.get_effective(section, field, root)
    except (KeyError, ValueError, AttributeError) as exc:
        return _fail(exc)
    print(value)
    return 0


def cmd_set(key: str, value: str, *, global_flag: bool, root: Path) -> int:
    _ensure_registry()
    scope = _scope(global_flag)
    try:
        section, field = _parse_key(key)
        path = buildconst.config.set_value(
            section, field, value, scope=scope, root=root
        )
    except (KeyError, ValueError) as exc:
        return _fail(exc)
    print(f"Set {key} = {value} ({scope}: {path})")
    return 0


def cmd_reset(key: str, *, global_flag: bool, root: Path) -> int:
    _ensure_registry()
    scope = _scope(global_flag)
    try:
        section, field = _parse_key(key)
        removed = buildconst.config.reset_value(section, field, scope=scope, root=root)
    except ValueError as exc:
        return _fail(exc)
    if removed:
        print(f"Reset {key} ({scope})")
    else:
        print(f"No {scope} override for {key}")
    return 0


def cmd_show(root: Path) -> int:
    """Print every section's effective values as a TOML document."""
    import tomli_w

    _ensure_registry()
    effective = {
        name: dataclasses.asdict(buildconst.config.load(name, root))
        for name in sorted(buildconst.config.list_sections())
    }
    print(tomli_w.dumps(effective), end="")
    return 0


def cmd_check(root: Path) -> int:
    """Validate the effective secrets/jwt settings without verifying a token."""
    import buildconst.security.config
    import buildconst.security.jwt

    try:
        options = buildconst.security.config.load_security_options(root)
    except ValueError as exc:
        return _fail(exc)

    problems = [
        f"jwt.algorithms: unsupported algorithm {alg!r}"
        for alg in options.jwt.algorithms
        if alg not in buildconst.security.jwt.HASH_BY_ALGORITHM
    ]
    if not options.jwt.algorithms:
        problems.append("jwt.algorithms: empty, every token would be rejected")
    if options.jwt.clock_tolerance_seconds < 0:
        problems.append("jwt.clock_tolerance_seconds: must not be negative")

    for problem in problems:
        print(problem, file=sys.stderr)
    if problems:
        return 1
    print("Security configuration OK")
    return 0


def cmd_edit(*, global_flag: bool, root: Path) -> int:
    path = buildconst.config.config_path(_scope(global_flag), root)
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("# buildconst configuration (see: buildconst config list)\n")
    return subprocess.call([os.environ.get("EDITOR", "vi"), str(path)])


# name -> (help, positional args, takes --global)
_COMMANDS: dict[str, tuple[str, tuple[str, ...], bool]] = {
    "list": ("Show sections, fields and defaults", (), False),
    "get": ("Print effective value", ("key",), False),
    "set": ("Write an override", ("key", "value"), True),
    "reset": ("Remove an override", ("key",), True),
    "show": ("Effective config as TOML", (), False),
    "check": ("Validate security settings", (), False),
    "edit": ("Open config.toml in $EDITOR", (), True),
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``buildconst config``."""
    parser = argparse.ArgumentParser(
        prog="buildconst config",
        description="Layered buildconst configuration.",
    )
    sub = parser.add_subparsers(dest="subcmd")
    for name, (help_text, positionals, scoped) in _COMMANDS.items():
        p = sub.add_parser(name, help=help_text)
        for positional in positionals:
            p.add_argument(positional)
        if scoped:
            p.add_argument("--global", dest="global_flag", action="store_true")
        p.add_argument("--path", type=Path, default=Path.cwd())

    args = parser.parse_args(argv)

    if args.subcmd == "list":
        return cmd_list()
    elif args.subcmd == "get":
        return cmd_get(args.key, args.path)
    elif args.subcmd == "set":
        return cmd_set(
            args.key, args.value, global_flag=args.global_flag, root=args.path
        )
    elif args.subcmd == "reset":
        return cmd_reset(args.key, global_flag=args.global_flag, root=args.path)
    elif args.subcmd == "show":
        return cmd_show(args.path)
    elif args.subcmd == "check":
        return cmd_check(args.path)
    elif args.subcmd == "edit":
        return cmd_edit(global_flag=args.global_flag, root=args.path)
    else:
        parser.print_help()
        return 1
