"""
Canonical payload reconstruction for detached Agent Card signatures.

The card's signatures are computed over a deterministic JSON rendering of the
card without its ``signatures`` field. The payload itself is never
transmitted: it is rebuilt here and spliced between the stored protected
header and signature to form a compact JWS.

Signers are commonly JavaScript (``JSON.stringify`` over key-sorted objects),
so numbers are rendered with ECMAScript's Number-to-String rules rather than
Python's float repr.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any, Mapping

from .errors import CanonicalizationError
from .headers import b64url_encode

SIGNATURES_FIELD = "signatures"


def without_signatures(card: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow copy of the card minus its top-level ``signatures`` field."""
    return {key: value for key, value in card.items() if key != SIGNATURES_FIELD}


def reject_non_finite(token: str) -> Any:
    """``parse_constant`` hook for json.loads: NaN and Infinity are not JSON."""
    raise ValueError(f"non-finite number {token} is not valid JSON")


def format_number(value: float) -> str:
    """
    Render a float the way ECMAScript's Number::toString does.

    Raises:
        CanonicalizationError: For NaN and infinities

    Examples:
        >>> format_number(1.0), format_number(1e-7), format_number(1.5e-5), format_number(1e21)
        ('1', '1e-7', '0.000015', '1e+21')
    """
    if not math.isfinite(value):
        raise CanonicalizationError(f"non-finite number {value!r}")
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr gives the shortest round-tripping digits, as ECMAScript requires
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + text


def _serialize(item: Any) -> str:
    if item is None:
        return "null"
    if item is True:
        return "true"
    if item is False:
        return "false"
    if isinstance(item, str):
        return json.dumps(item, ensure_ascii=False)
    if isinstance(item, int):
        return str(item)
    if isinstance(item, float):
        return format_number(item)
    if isinstance(item, Mapping):
        members = sorted(
            ((str(key), value) for key, value in item.items()),
            key=lambda member: member[0],
        )
        return "{" + ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{_serialize(value)}"
            for key, value in members
        ) + "}"
    if isinstance(item, (list, tuple)):
        return "[" + ",".join(_serialize(value) for value in item) + "]"
    raise CanonicalizationError(f"unsupported value of type {type(item).__name__}")


def canonicalize(card: Mapping[str, Any]) -> bytes:
    """
    Serialize a card to its canonical signing payload.

    Object keys are sorted at every nesting level, array order is kept, and
    the output has no insignificant whitespace. Nested fields named
    ``signatures`` are part of the payload; only the top-level one is dropped.

    Args:
        card: Parsed Agent Card

    Returns:
        UTF-8 encoded canonical JSON

    Raises:
        CanonicalizationError: If the card holds NaN, an infinity, or a
            value that is not a JSON type

    Examples:
        >>> canonicalize({"b": 1, "a": {"d": [2, 1], "c": None}, "signatures": []})
        b'{"a":{"c":null,"d":[2,1]},"b":1}'
    """
    text = _serialize(without_signatures(card))
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise CanonicalizationError("string contains an unpaired surrogate") from e


def assemble_compact(protected: str, payload: bytes, signature: str) -> str:
    """
    Rebuild the three-part compact JWS from a detached signature.

    Args:
        protected: base64url protected header, exactly as stored in the card
        payload: Canonical payload bytes
        signature: base64url signature, exactly as stored in the card

    Returns:
        ``<protected>.<base64url(payload)>.<signature>``
    """
    return f"{protected}.{b64url_encode(payload)}.{signature}"
