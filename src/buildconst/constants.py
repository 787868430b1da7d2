"""Build-time constants module generation.

Renders the caller's ``custom`` constants together with a snapshot of the
build timestamp into an importable Python module. The security gate runs
first; when it raises, nothing is written.
"""

from __future__ import annotations

import dataclasses
import datetime
import json
import logging
import math
import pathlib
import pprint
import tomllib
from collections.abc import Mapping
from typing import Any

import buildconst.config
import buildconst.security.gate
import buildconst.security.types

logger = logging.getLogger("buildconst.constants")

_MODULE_HEADER = '''\
"""Build-time constants. Generated by buildconst; do not edit."""

'''


@buildconst.config.configurable("constants")
@dataclasses.dataclass
class ConstantsConfig:
    # Where the generated module is written (relative to the project root)
    output_file: str = "build_time_constants.py"
    # TOML or JSON file holding the custom constants
    constants_file: str = "buildconst.toml"


@dataclasses.dataclass
class GenerationResult:
    path: pathlib.Path
    verification: buildconst.security.types.JwtVerificationResult | None = None


def _utc(now: datetime.datetime | None) -> datetime.datetime:
    if now is None:
        return datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=datetime.timezone.utc)
    return now.astimezone(datetime.timezone.utc)


def build_time_snapshot(now: datetime.datetime | None = None) -> dict[str, Any]:
    """Return the timestamp fields embedded under ``build``."""
    now = _utc(now)
    millis = now.microsecond // 1000
    return {
        "epoch": math.floor(now.timestamp() + 0.5),
        "seconds": now.second,
        "minutes": now.minute,
        "hours": now.hour,
        "full_year": now.year,
        "month": now.month,
        "day": now.day,
        "iso": now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{millis:03d}Z",
    }


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime.date):
        return value.isoformat()
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def _plain(value: Any) -> Any:
    """Reduce *value* to JSON types (dates and ``to_json`` objects resolved)."""
    return json.loads(json.dumps(value, default=_json_default, allow_nan=False))


def render_module(
    custom: Mapping[str, Any],
    now: datetime.datetime | None = None,
) -> str:
    """Render the constants module source. Deterministic for a fixed *now*."""
    constants = {
        "build": build_time_snapshot(now),
        "custom": _plain(custom),
    }
    body = pprint.pformat(constants, indent=4, width=88, sort_dicts=False)
    return f"{_MODULE_HEADER}BUILD_TIME_CONSTANTS = {body}\n"


def load_constants_file(path: pathlib.Path) -> dict[str, Any]:
    """Read custom constants from a ``.toml`` or ``.json`` file."""
    suffix = path.suffix.lower()
    if suffix == ".toml":
        return tomllib.loads(path.read_text())
    if suffix == ".json":
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object at the top level")
        return data
    raise ValueError(f"Unsupported constants file type: {path.suffix or path.name}")


def generate(
    custom: Mapping[str, Any],
    output_file: pathlib.Path,
    *,
    now: datetime.datetime | None = None,
    security: buildconst.security.types.SecurityOptions | None = None,
    environ: Mapping[str, str] | None = None,
) -> GenerationResult:
    """Enforce the security gate, then write the constants module.

    Gate failures propagate unchanged and leave *output_file* untouched.
    """
    now = _utc(now)
    verification = buildconst.security.gate.enforce_security(
        custom, security, now, environ
    )

    source = render_module(custom, now)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(source)
    logger.info("Wrote build-time constants to %s", output_file)
    return GenerationResult(path=output_file, verification=verification)
