"""
Activity Identity Hashing

An activity's identity is a pure function of four business fields: date,
collaborator, description and original amount. Re-importing a row with the
same four values yields the same hash, so imports merge instead of
duplicating.

The token format (act_<base36>) and the 32-bit rolling hash are kept
compatible with existing project documents, including the way numbers
are printed inside the key. Collisions between distinct activities are
not detected; colliding rows are treated as the same record.
"""

import math
import struct
from decimal import Decimal
from typing import Protocol, Union

HASH_PREFIX = "act_"
KEY_DELIMITER = "|"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


class HashSource(Protocol):
    date: str
    collaborator: str
    description: str
    original_amount: float


def format_number(value: Union[int, float]) -> str:
    """
    Stringify a number for the identity key, in its shortest form.

    Integral values print without a fractional part (600.0 -> "600"),
    positional notation is used between 1e-7 and 1e21, exponent form outside.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() gives the shortest round-tripping digits
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = k + exponent

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        exp_sign = "+" if e >= 0 else "-"
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        body = f"{mantissa}e{exp_sign}{abs(e)}"
    return sign + body


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(_BASE36_DIGITS[rem])
    return "".join(reversed(out))


def _wrap_int32(value: int) -> int:
    return (value + 0x80000000) % 0x100000000 - 0x80000000


def hash_key(date: str, collaborator: str, description: str, original_amount: float) -> str:
    """Build the delimited identity key for the four identity fields."""
    return KEY_DELIMITER.join([
        str(date),
        str(collaborator),
        str(description),
        format_number(original_amount),
    ])


def rolling_hash(key: str) -> int:
    """h = h * 31 + unit over the UTF-16 code units of key, wrapped to int32."""
    encoded = key.encode("utf-16-le", "surrogatepass")
    units = struct.unpack(f"<{len(encoded) // 2}H", encoded)
    h = 0
    for unit in units:
        h = _wrap_int32(h * 31 + unit)
    return h


def activity_hash(source: HashSource) -> str:
    """
    Compute the identity hash of an activity or import row.

    Only date, collaborator, description and original_amount are read.
    """
    key = hash_key(
        source.date,
        source.collaborator,
        source.description,
        source.original_amount,
    )
    return HASH_PREFIX + _to_base36(abs(rolling_hash(key)))
