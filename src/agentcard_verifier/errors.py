"""
Error taxonomy for Agent Card signature verification.

Every error is recovered at the granularity of a single signature entry and
turned into an invalid SignatureResult; none of them escapes the whole-card
verification call.
"""

from __future__ import annotations


class SignatureVerificationError(Exception):
    """Base class for all per-signature verification failures."""

    code = "verification_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedSignatureEntry(SignatureVerificationError):
    """The signature entry is not an object with string protected/signature."""

    code = "malformed_signature_entry"


class MalformedHeader(SignatureVerificationError):
    """The protected header is not base64url(UTF-8 JSON object)."""

    code = "malformed_header"

    def __init__(self, reason: str):
        super().__init__(f"Invalid protected header format: {reason}")
        self.reason = reason


class CanonicalizationError(SignatureVerificationError, ValueError):
    """The card holds a value with no canonical JSON form (NaN, Infinity, ...)."""

    code = "canonicalization_error"

    def __init__(self, reason: str):
        super().__init__(f"Agent Card cannot be canonicalized: {reason}")
        self.reason = reason


class PolicyError(SignatureVerificationError):
    """Base class for algorithm and key URI policy violations."""

    code = "policy_error"


class MissingAlgorithm(PolicyError):
    code = "missing_algorithm"

    def __init__(self) -> None:
        super().__init__("Missing algorithm (alg) in signature header")


class DisallowedAlgorithm(PolicyError):
    code = "disallowed_algorithm"

    def __init__(self, algorithm: str):
        super().__init__(f'Algorithm "{algorithm}" is not allowed for security reasons')
        self.algorithm = algorithm


class UnsupportedAlgorithm(PolicyError):
    code = "unsupported_algorithm"

    def __init__(self, algorithm: str):
        super().__init__(f"Unsupported algorithm: {algorithm}")
        self.algorithm = algorithm


class InsecureKeyUri(PolicyError):
    code = "insecure_key_uri"

    def __init__(self, uri: str):
        super().__init__("JWKS URI must use HTTPS for security")
        self.uri = uri


class InvalidKeyUri(PolicyError):
    code = "invalid_key_uri"

    def __init__(self, uri: str):
        super().__init__("Invalid JWKS URI format")
        self.uri = uri


class MissingKeyUri(SignatureVerificationError):
    code = "missing_key_uri"

    def __init__(self) -> None:
        super().__init__(
            "No JWKS URI found in signature header (jku or jwks_uri required)"
        )


class KeyFetchError(SignatureVerificationError):
    """The remote key set could not be retrieved or parsed."""

    code = "key_fetch_error"

    def __init__(self, uri: str, reason: str):
        super().__init__(f"Failed to fetch JWKS from {uri}: {reason}")
        self.uri = uri
        self.reason = reason


class KeyFetchTimeout(KeyFetchError):
    code = "key_fetch_timeout"

    def __init__(self, uri: str, timeout_s: float):
        SignatureVerificationError.__init__(
            self, f"Timed out after {timeout_s:g}s fetching JWKS from {uri}"
        )
        self.uri = uri
        self.reason = "timeout"
        self.timeout_s = timeout_s


class CryptographicMismatch(SignatureVerificationError):
    """The signature does not verify against any candidate key."""

    code = "cryptographic_mismatch"


class KeyNotFound(CryptographicMismatch):
    """No key in the resolved set matches the header's kid and algorithm."""

    code = "key_not_found"
