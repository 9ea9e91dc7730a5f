"""Resource quantities such as "500m", "2Gi" or "1e3"."""

from __future__ import annotations

import re
from decimal import ROUND_CEILING, Decimal, localcontext
from typing import Union

QuantityLike = Union[str, int, float, Decimal]

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}
_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_NUMBER = re.compile(r"([+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+))(.*)")
_EXPONENT = re.compile(r"[eE]([+-]?[0-9]+)")


def parse_quantity(text: QuantityLike) -> Decimal:
    """Return the exact numeric value of a quantity."""
    if isinstance(text, bool):
        raise TypeError("a boolean is not a quantity")
    if isinstance(text, Decimal):
        return text
    if isinstance(text, int):
        return Decimal(text)
    if isinstance(text, float):
        return Decimal(str(text))
    if not isinstance(text, str):
        raise TypeError(f"cannot read a quantity from {type(text).__name__}")

    match = _NUMBER.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid quantity: {text!r}")
    number, suffix = match.groups()

    with localcontext() as ctx:
        ctx.prec = 80
        base = Decimal(number)
        if suffix in _BINARY_SUFFIXES:
            return base * _BINARY_SUFFIXES[suffix]
        if suffix in _DECIMAL_SUFFIXES:
            return base.scaleb(_DECIMAL_SUFFIXES[suffix])
        exponent = _EXPONENT.fullmatch(suffix)
        if exponent is not None:
            return base.scaleb(int(exponent.group(1)))
    raise ValueError(f"invalid quantity suffix in {text!r}")


def quantity_value(text: QuantityLike) -> int:
    """Return the quantity as an integer, rounded up."""
    return int(parse_quantity(text).to_integral_value(rounding=ROUND_CEILING))


def compare_quantities(first: QuantityLike, second: QuantityLike) -> int:
    """Return -1, 0 or 1 as the first quantity is less than, equal to or greater than the second."""
    a = parse_quantity(first)
    b = parse_quantity(second)
    return (a > b) - (a < b)