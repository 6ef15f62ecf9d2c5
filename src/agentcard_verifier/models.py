"""
Data models for Agent Card signature verification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import MalformedSignatureEntry


@dataclass(frozen=True)
class AgentCardSignature:
    """
    One entry of an Agent Card's ``signatures`` array.

    Attributes:
        protected: base64url-encoded JWS protected header
        signature: base64url-encoded raw signature bytes
        header: Optional unprotected JWS header (informational, never trusted)
    """
    protected: str
    signature: str
    header: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AgentCardSignature:
        """
        Build a signature entry from its parsed JSON form.

        Raises:
            MalformedSignatureEntry: If the entry is not an object or is
                missing a non-empty ``protected`` or ``signature`` string.
        """
        if not isinstance(data, Mapping):
            raise MalformedSignatureEntry("Signature entry must be an object")

        for name in ("protected", "signature"):
            value = data.get(name)
            if not isinstance(value, str) or not value:
                raise MalformedSignatureEntry(
                    f"Signature entry is missing required field '{name}'"
                )

        header = data.get("header")
        return cls(
            protected=data["protected"],
            signature=data["signature"],
            header=dict(header) if isinstance(header, Mapping) else None,
        )


@dataclass(frozen=True)
class JWSHeader:
    """
    Recognised fields of a decoded JWS protected header.

    Attributes:
        alg: Signing algorithm (required for verification)
        typ: Optional media type
        kid: Optional key identifier within the key set
        jku: Optional key set URL (preferred)
        jwks_uri: Optional key set URL (fallback when jku is absent)
    """
    alg: str | None = None
    typ: str | None = None
    kid: str | None = None
    jku: str | None = None
    jwks_uri: str | None = None

    @property
    def key_set_uri(self) -> str | None:
        return self.jku or self.jwks_uri or None


@dataclass
class SignatureResult:
    """
    Verification outcome for a single signature entry.

    Attributes:
        index: Position of the entry in the card's signatures array
        valid: Whether the signature verified
        algorithm: Header algorithm, when the header could be decoded
        key_id: Header kid, when present
        jwks_uri: Key set URI the signature was checked against
        error: Why verification failed
        details: Human-readable note on success
    """
    index: int
    valid: bool
    algorithm: str | None = None
    key_id: str | None = None
    jwks_uri: str | None = None
    error: str | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"index": self.index, "valid": self.valid}
        optional = (
            ("algorithm", self.algorithm),
            ("keyId", self.key_id),
            ("jwksUri", self.jwks_uri),
            ("error", self.error),
            ("details", self.details),
        )
        for key, value in optional:
            if value is not None:
                data[key] = value
        return data


@dataclass
class VerificationSummary:
    total: int = 0
    valid: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "valid": self.valid,
            "failed": self.failed,
            "errors": list(self.errors),
        }


@dataclass
class VerificationResult:
    """
    Card-level verdict.

    Attributes:
        valid: True only if at least one signature is present and all verify
        signatures: Per-signature results in card order
        summary: Counts and error messages
    """
    valid: bool
    signatures: list[SignatureResult] = field(default_factory=list)
    summary: VerificationSummary = field(default_factory=VerificationSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "signatures": [result.to_dict() for result in self.signatures],
            "summary": self.summary.to_dict(),
        }
