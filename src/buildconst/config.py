"""Layered configuration for buildconst.

Sections are plain dataclasses registered with ``@configurable``. A loaded
section is built from four layers, later ones winning:

    dataclass defaults
    ~/.config/buildconst/config.toml     global (user-wide)
    <root>/.buildconst/config.toml       local  (project-specific)
    keyword overrides passed to load()

``<root>`` is the enclosing git checkout, or the working directory when
there is none.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
from typing import Any, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger("buildconst.config")

SCOPES = ("local", "global")

_REGISTRY: dict[str, type] = {}


def configurable(section: str):
    """Class decorator: register a dataclass under ``[section]``."""

    def decorator(cls: type[T]) -> type[T]:
        _REGISTRY[section] = cls
        return cls

    return decorator


def _section_class(section: str) -> type:
    try:
        return _REGISTRY[section]
    except KeyError:
        raise KeyError(f"Unknown config section: {section}") from None


def _field_names(cls: type) -> set[str]:
    return {f.name for f in dataclasses.fields(cls)}


# -- locating files ---------------------------------------------------------

def _global_path() -> pathlib.Path:
    return pathlib.Path.home() / ".config" / "buildconst" / "config.toml"


def _local_path(root: pathlib.Path) -> pathlib.Path:
    return root / ".buildconst" / "config.toml"


def find_repo_root(cwd: pathlib.Path) -> pathlib.Path | None:
    """Return the nearest ancestor of *cwd* holding a ``.git`` directory."""
    for candidate in (cwd.resolve(), *cwd.resolve().parents):
        if (candidate / ".git").is_dir():
            return candidate
    return None


def _find_root(root: pathlib.Path | None = None) -> pathlib.Path:
    if root is not None:
        return root
    cwd = pathlib.Path.cwd()
    return find_repo_root(cwd) or cwd


def config_path(scope: str, root: pathlib.Path | None = None) -> pathlib.Path:
    """Return the TOML file backing *scope* (``local`` or ``global``)."""
    if scope not in SCOPES:
        raise ValueError(f"Unknown scope: {scope!r} (expected local or global)")
    if scope == "global":
        return _global_path()
    return _local_path(_find_root(root))


# -- TOML I/O ---------------------------------------------------------------

def _read(path: pathlib.Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _write(path: pathlib.Path, data: dict[str, Any]) -> None:
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data))


# -- CLI string coercion ----------------------------------------------------

def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _as_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


_COERCERS: dict[type, Callable[[str], Any]] = {
    bool: _as_bool,
    int: int,
    float: float,
    list: _as_list,
}

_ANNOTATIONS = {"bool": bool, "int": int, "float": float, "str": str}


def _coerce(value: str, target_type: type) -> Any:
    """Convert a command-line string to *target_type*."""
    convert = _COERCERS.get(target_type)
    return value if convert is None else convert(value)


def _field_type(cls: type, field_name: str) -> type:
    """Resolve a field's annotation (possibly a string) to a runtime type."""
    field = next((f for f in dataclasses.fields(cls) if f.name == field_name), None)
    if field is None:
        raise KeyError(field_name)
    annotation = field.type
    if isinstance(annotation, str):
        # e.g. "list[str]" under postponed evaluation
        if annotation.startswith("list"):
            return list
        return _ANNOTATIONS.get(annotation, str)
    return getattr(annotation, "__origin__", annotation)


# -- public API -------------------------------------------------------------

def list_sections() -> dict[str, type]:
    """Return a copy of the registry."""
    return dict(_REGISTRY)


def load(section: str, root: pathlib.Path | None = None, **overrides: Any) -> Any:
    """Build the effective *section* instance.

    Keys the dataclass does not declare are dropped from every layer, and
    overrides whose value is ``None`` are skipped.
    """
    cls = _section_class(section)
    known = _field_names(cls)
    root = _find_root(root)

    values: dict[str, Any] = {}
    for path in (_global_path(), _local_path(root)):
        layer = _read(path).get(section, {})
        values.update((k, v) for k, v in layer.items() if k in known)
    values.update((k, v) for k, v in overrides.items() if k in known and v is not None)
    return cls(**values)


def get_effective(
    section: str,
    key: str,
    root: pathlib.Path | None = None,
) -> Any:
    """Return one effective value, e.g. ``get_effective("jwt", "issuer")``."""
    return getattr(load(section, root), key)


def set_value(
    section: str,
    key: str,
    value: Any,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> pathlib.Path:
    """Persist ``section.key = value`` and return the file written.

    String values are coerced to the field's declared type first.
    """
    cls = _section_class(section)
    if key not in _field_names(cls):
        raise KeyError(f"Unknown key: {section}.{key}")
    if isinstance(value, str):
        value = _coerce(value, _field_type(cls, key))

    path = config_path(scope, root)
    data = _read(path)
    data.setdefault(section, {})[key] = value
    _write(path, data)
    return path


def reset_value(
    section: str,
    key: str,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> bool:
    """Drop an override from *scope*. Returns False when none was set."""
    path = config_path(scope, root)
    data = _read(path)
    table = data.get(section, {})
    if key not in table:
        return False
    del table[key]
    if not table:
        del data[section]
    _write(path, data)
    return True
