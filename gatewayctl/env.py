"""Typed lookups of environment variables with fallbacks."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from typing import TypeVar

T = TypeVar("T", str, int, timedelta)

_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,  # micro sign
    "\u03bcs": 1_000,  # greek small letter mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"1.5s"`` or ``"-250ms"``."""
    if not text:
        raise ValueError("invalid duration: empty string")
    negative = text.startswith("-")
    body = text[1:] if text[:1] in ("-", "+") else text
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration: {text!r}")

    total = 0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration: {text!r}")
        if not unit:
            raise ValueError(f"missing unit in duration: {text!r}")
        if unit not in _NANOS_PER_UNIT:
            raise ValueError(f"unknown unit {unit!r} in duration: {text!r}")
        scale = _NANOS_PER_UNIT[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        pos = match.end()

    limit = -_INT64_MIN if negative else _INT64_MAX
    if total > limit:
        raise ValueError(f"invalid duration: {text!r}")
    micros = total // 1000
    return timedelta(microseconds=-micros if negative else micros)


def _parse_int(text: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def lookup(key: str, default: T) -> T:
    """Return the environment value for ``key`` converted to the type of ``default``.

    The default is returned when the variable is unset or cannot be converted.
    """
    if isinstance(default, bool) or not isinstance(default, (str, int, timedelta)):
        raise TypeError(f"unsupported default type: {type(default).__name__}")

    value = os.environ.get(key)
    if value is None:
        return default
    if isinstance(default, str):
        return value
    try:
        if isinstance(default, timedelta):
            return _parse_duration(value)
        return _parse_int(value)
    except ValueError:
        return default