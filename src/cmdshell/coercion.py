"""Conversion of raw argument tokens to primitive parameter types.

Integer widths follow the usual signed two's-complement ranges. Malformed or
out-of-range literals raise :class:`CoercionError`; they never fall back to a
default. Booleans are the one permissive case: anything other than a
case-insensitive ``"true"`` is ``False``.
"""

from __future__ import annotations

import math
import re
import struct
from typing import Any, Callable, Dict, Tuple

from .exceptions import CoercionError, UnsupportedTypeError
from .schemas import PrimitiveType

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?[fFdD]?"
)
_SPECIAL_RE = re.compile(r"([+-]?)(NaN|Infinity)")

INTEGER_RANGES: Dict[PrimitiveType, Tuple[int, int]] = {
    PrimitiveType.BYTE: (-(2 ** 7), 2 ** 7 - 1),
    PrimitiveType.SHORT: (-(2 ** 15), 2 ** 15 - 1),
    PrimitiveType.INT: (-(2 ** 31), 2 ** 31 - 1),
    PrimitiveType.LONG: (-(2 ** 63), 2 ** 63 - 1),
}


def parse_bool(token: str) -> bool:
    return token.lower() == "true"


def parse_integer(token: str, target: PrimitiveType) -> int:
    """Parse a signed decimal integer and range-check it for ``target``."""
    if not _INTEGER_RE.fullmatch(token):
        raise CoercionError("not an integer literal", token=token, expected_type=target)
    value = int(token)
    low, high = INTEGER_RANGES[target]
    if not low <= value <= high:
        raise CoercionError(
            f"value out of range [{low}, {high}]", token=token, expected_type=target
        )
    return value


def parse_decimal(token: str, target: PrimitiveType) -> float:
    """Parse a floating point literal.

    Accepts an optional sign, digits with an optional fraction and exponent,
    an optional ``f``/``d`` suffix, or ``NaN``/``Infinity``. Surrounding
    whitespace is ignored. ``FLOAT`` results are rounded to single precision.
    """
    text = token.strip()
    special = _SPECIAL_RE.fullmatch(text)
    if special:
        sign, word = special.groups()
        if word == "NaN":
            return math.nan
        return -math.inf if sign == "-" else math.inf

    if not _DECIMAL_RE.fullmatch(text):
        raise CoercionError("not a decimal literal", token=token, expected_type=target)

    value = float(text.rstrip("fFdD"))
    if target is PrimitiveType.FLOAT:
        return _to_single(value)
    return value


def _to_single(value: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


_CONVERTERS: Dict[PrimitiveType, Callable[[str, PrimitiveType], Any]] = {
    PrimitiveType.BOOL: lambda token, _: parse_bool(token),
    PrimitiveType.BYTE: parse_integer,
    PrimitiveType.SHORT: parse_integer,
    PrimitiveType.INT: parse_integer,
    PrimitiveType.LONG: parse_integer,
    PrimitiveType.FLOAT: parse_decimal,
    PrimitiveType.DOUBLE: parse_decimal,
    PrimitiveType.STRING: lambda token, _: token,
}


def coerce(target: Any, token: str) -> Any:
    """Convert ``token`` to the value ``target`` describes.

    Args:
        target: A PrimitiveType. Anything else is unsupported.
        token: Raw argument text from the tokenizer.

    Returns:
        The converted value.

    Raises:
        CoercionError: If the token is not a valid literal for the type.
        UnsupportedTypeError: If no conversion exists for ``target``.
    """
    converter = _CONVERTERS.get(target) if isinstance(target, PrimitiveType) else None
    if converter is None:
        raise UnsupportedTypeError("Unsupported argument type.", expected_type=target)
    return converter(token, target)
