"""Secret scanner for build-time constants configuration.

Walks a nested configuration value depth-first and rejects keys that look
like they carry secrets, property names that enable prototype pollution in
the generated output, and leaves that cannot be serialized.

The walk uses an explicit work stack so adversarially deep input cannot
exhaust the interpreter's recursion limit.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from typing import Any

import buildconst.security.errors
import buildconst.security.types

logger = logging.getLogger("buildconst.security.scanner")

PROHIBITED_PROPERTY_NAMES = frozenset(["__proto__", "prototype", "constructor"])

# Work-item tags
_VALUE = 0
_ENTRY = 1
_EXIT = 2


def normalize_secret_options(
    secrets: buildconst.security.types.SecretValidationOptions | None = None,
) -> buildconst.security.types.SecretScanOptions:
    """Merge caller extras into the default blocklist and lowercase everything."""
    if secrets is None:
        return buildconst.security.types.SecretScanOptions()

    blocklist = list(buildconst.security.types.DEFAULT_SECRET_BLOCKLIST)
    for entry in secrets.blocklist:
        keyword = entry.lower()
        if keyword and keyword not in blocklist:
            blocklist.append(keyword)

    return buildconst.security.types.SecretScanOptions(
        blocklist=tuple(blocklist),
        allow_list=frozenset(entry.lower() for entry in secrets.allow_list),
        mode=buildconst.security.types.SecretValidationMode(secrets.mode),
    )


def _is_serializable_leaf(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, datetime.date):
        return True
    return callable(getattr(value, "to_json", None))


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _check_key(
    key: str,
    path: str,
    options: buildconst.security.types.SecretScanOptions,
    warnings: list[str],
) -> None:
    if key in PROHIBITED_PROPERTY_NAMES:
        raise buildconst.security.errors.UnsafePropertyError(
            f'Unsafe configuration property name "{path}" is blocked '
            "to prevent prototype pollution.",
            path,
        )

    normalized = key.lower()
    blocked = next((kw for kw in options.blocklist if kw in normalized), None)
    if blocked is None:
        return
    if path.lower() in options.allow_list:
        return

    message = (
        f'Config property "{path}" matched blocked keyword "{blocked}". '
        "If this property intentionally carries a secret, list it under "
        "security.secrets.allow_list."
    )
    if options.mode is buildconst.security.types.SecretValidationMode.WARN:
        logger.warning("%s", message)
        warnings.append(message)
        return
    raise buildconst.security.errors.SecretKeyError(message, path, blocked)


def scan(
    value: Any,
    options: buildconst.security.types.SecretScanOptions | None = None,
    path_prefix: str = "",
) -> list[str]:
    """Scan *value* for security violations.

    Raises a ``ConfigSafetyError`` subclass on the first violation in
    depth-first order. Secret-keyword matches in warn mode are logged and
    returned instead of raised; the input is never modified.
    """
    if options is None:
        options = buildconst.security.types.SecretScanOptions()

    warnings: list[str] = []
    active: set[int] = set()
    stack: list[tuple[int, str, Any, Any]] = [(_VALUE, path_prefix, None, value)]

    while stack:
        tag, path, key, node = stack.pop()

        if tag == _EXIT:
            active.discard(key)
            continue

        if tag == _ENTRY:
            child_path = _join(path, str(key))
            if not isinstance(key, str):
                raise buildconst.security.errors.UnsupportedValueError(
                    f'Unsupported key {key!r} at "{child_path}". Only string '
                    "keys are allowed in build-time constants configuration.",
                    child_path,
                )
            _check_key(key, child_path, options, warnings)
            stack.append((_VALUE, child_path, None, node))
            continue

        if isinstance(node, Mapping):
            children = [(_ENTRY, path, k, v) for k, v in node.items()]
        elif isinstance(node, (list, tuple)):
            children = [
                (_VALUE, f"{path}[{index}]", None, item)
                for index, item in enumerate(node)
            ]
        else:
            if not _is_serializable_leaf(node):
                raise buildconst.security.errors.UnsupportedValueError(
                    f'Unsupported value at "{path}". Only JSON-serializable '
                    "values are allowed in build-time constants configuration.",
                    path,
                )
            continue

        marker = id(node)
        if marker in active:
            raise buildconst.security.errors.UnsupportedValueError(
                f'Circular reference at "{path}". Only JSON-serializable '
                "values are allowed in build-time constants configuration.",
                path,
            )
        active.add(marker)
        stack.append((_EXIT, path, marker, None))
        # Reversed so the first child is popped first
        stack.extend(reversed(children))

    return warnings
