"""
JWS protected header decoding and algorithm/key URI policy.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from urllib.parse import urlsplit

from .errors import (
    DisallowedAlgorithm,
    InsecureKeyUri,
    InvalidKeyUri,
    MalformedHeader,
    MissingAlgorithm,
    PolicyError,
    UnsupportedAlgorithm,
)
from .models import AgentCardSignature, JWSHeader

logger = logging.getLogger(__name__)


# Asymmetric algorithms only: an HMAC entry here would let a public key be
# used as a shared secret.
SUPPORTED_ALGORITHMS = frozenset({
    "RS256",
    "RS384",
    "RS512",
    "ES256",
    "ES384",
    "ES512",
    "PS256",
    "PS384",
    "PS512",
    "EdDSA",
})

# Header fields this package reads; everything else is ignored.
RECOGNIZED_FIELDS = ("alg", "typ", "kid", "jku", "jwks_uri")

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")


def b64url_decode(value: str) -> bytes:
    """
    Decode base64url, accepting input with or without padding.

    Raises:
        ValueError: If the input contains characters outside the base64url
            alphabet or has an impossible length.
    """
    if not _BASE64URL_RE.match(value):
        raise ValueError("not valid base64url")

    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        raise ValueError("not valid base64url")

    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except binascii.Error as e:
        raise ValueError(f"not valid base64url: {e}") from e


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_protected_header(protected: str) -> JWSHeader:
    """
    Decode a base64url JWS protected header into a JWSHeader.

    Unknown header fields are ignored so that newer signers stay readable.

    Args:
        protected: The ``protected`` value of a signature entry

    Returns:
        The decoded header

    Raises:
        MalformedHeader: If the value is not base64url, not UTF-8, not a
            JSON object, or a recognised field is not a string.

    Examples:
        >>> decode_protected_header("eyJhbGciOiJFUzI1NiJ9").alg
        'ES256'
    """
    try:
        raw = b64url_decode(protected)
    except ValueError as e:
        raise MalformedHeader(str(e)) from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedHeader("not valid UTF-8") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedHeader(f"not valid JSON ({e.msg})") from e

    if not isinstance(data, dict):
        raise MalformedHeader("header must be a JSON object")

    values: dict[str, str | None] = {}
    for name in RECOGNIZED_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise MalformedHeader(f"header field '{name}' must be a string")
        values[name] = value

    return JWSHeader(**values)


def inspect_signature_header(entry: AgentCardSignature | dict) -> JWSHeader | None:
    """
    Decode a signature entry's protected header without verifying anything.

    Returns None instead of raising when the entry or header is malformed.
    """
    protected = entry.protected if isinstance(entry, AgentCardSignature) else None
    if protected is None and isinstance(entry, dict):
        protected = entry.get("protected")
    if not isinstance(protected, str):
        return None

    try:
        return decode_protected_header(protected)
    except MalformedHeader:
        return None


def _check_key_uri(uri: str) -> PolicyError | None:
    try:
        parts = urlsplit(uri)
        # Accessing port validates it
        parts.port
    except ValueError:
        return InvalidKeyUri(uri)

    if not parts.scheme or not parts.hostname:
        return InvalidKeyUri(uri)

    if parts.scheme != "https":
        return InsecureKeyUri(uri)

    return None


def check_header_policy(header: JWSHeader, allow_insecure: bool = False) -> PolicyError | None:
    """
    Check a decoded header against the algorithm and transport policy.

    Returns None if the header is acceptable, or the first violation found.
    ``alg: "none"`` is rejected even when ``allow_insecure`` is set;
    ``allow_insecure`` only relaxes the HTTPS requirement on the key set URI.

    Args:
        header: Decoded protected header
        allow_insecure: Accept non-HTTPS (or unparseable) key set URIs

    Returns:
        None, or a PolicyError describing the violation
    """
    if not header.alg:
        return MissingAlgorithm()

    if header.alg == "none":
        return DisallowedAlgorithm(header.alg)

    if header.alg not in SUPPORTED_ALGORITHMS:
        return UnsupportedAlgorithm(header.alg)

    uri = header.key_set_uri
    if uri and not allow_insecure:
        error = _check_key_uri(uri)
        if error is not None:
            logger.debug("Rejected key set URI %s: %s", uri, error.message)
            return error

    return None
