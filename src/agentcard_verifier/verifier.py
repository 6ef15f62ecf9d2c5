"""
Agent Card signature verification pipeline.

Each signature entry goes through decoding, policy check, key resolution and
the cryptographic check. Any failure makes that one entry invalid; siblings
are unaffected and the card-level call always returns a VerificationResult.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import jwt

from .canonical import assemble_compact, canonicalize
from .config import VerifierConfig
from .errors import (
    CanonicalizationError,
    CryptographicMismatch,
    KeyNotFound,
    MissingKeyUri,
    SignatureVerificationError,
)
from .headers import SUPPORTED_ALGORITHMS, check_header_policy, decode_protected_header
from .jwks import DEFAULT_TIMEOUT_S, KeySetResolver
from .models import (
    AgentCardSignature,
    JWSHeader,
    SignatureResult,
    VerificationResult,
    VerificationSummary,
)

logger = logging.getLogger(__name__)

NO_SIGNATURES_ERROR = "No signatures present in Agent Card"
VERIFIED_DETAILS = "Signature verified successfully"

# (kty, accepted curves) per algorithm family
_KEY_TYPES: dict[str, tuple[str, frozenset[str] | None]] = {
    "RS256": ("RSA", None),
    "RS384": ("RSA", None),
    "RS512": ("RSA", None),
    "PS256": ("RSA", None),
    "PS384": ("RSA", None),
    "PS512": ("RSA", None),
    "ES256": ("EC", frozenset({"P-256"})),
    "ES384": ("EC", frozenset({"P-384"})),
    "ES512": ("EC", frozenset({"P-521"})),
    "EdDSA": ("OKP", frozenset({"Ed25519", "Ed448"})),
}

_jws = jwt.PyJWS(algorithms=sorted(SUPPORTED_ALGORITHMS))


def select_candidate_keys(keys: Sequence[Any], header: JWSHeader) -> list[dict[str, Any]]:
    """
    Filter a key set down to the keys that may have produced the signature.

    A key qualifies when its ``kid`` matches the header's (if the header names
    one), its ``use`` is ``sig`` (if set), its ``alg`` equals the header
    algorithm (if set) and its key type and curve fit the algorithm.
    """
    kty, curves = _KEY_TYPES[header.alg]
    candidates = []
    for key in keys:
        if not isinstance(key, dict):
            continue
        if header.kid is not None and key.get("kid") != header.kid:
            continue
        if key.get("use", "sig") != "sig":
            continue
        if key.get("alg", header.alg) != header.alg:
            continue
        if key.get("kty") != kty:
            continue
        if curves is not None and key.get("crv") not in curves:
            continue
        candidates.append(key)
    return candidates


def verify_compact(compact: str, header: JWSHeader, jwks: Mapping[str, Any]) -> dict[str, Any]:
    """
    Check a compact JWS against the matching keys of a key set.

    Returns:
        The JWK that verified the signature

    Raises:
        KeyNotFound: If no key in the set fits the header's kid and algorithm
        CryptographicMismatch: If no candidate key verifies the signature
    """
    candidates = select_candidate_keys(jwks.get("keys", []), header)
    if not candidates:
        if header.kid is not None:
            raise KeyNotFound(
                f"No {header.alg} key with kid '{header.kid}' found in JWKS"
            )
        raise KeyNotFound(f"No {header.alg} key found in JWKS")

    reason = "no usable key"
    for jwk_data in candidates:
        try:
            key = jwt.PyJWK(jwk_data, algorithm=header.alg).key
        except (jwt.PyJWTError, ValueError, KeyError) as e:
            reason = f"unusable key {jwk_data.get('kid', '<no kid>')}: {e}"
            logger.debug("Skipping JWK: %s", reason)
            continue

        try:
            _jws.decode_complete(compact, key=key, algorithms=[header.alg])
        except jwt.PyJWTError as e:
            reason = str(e) or type(e).__name__
            continue

        return jwk_data

    raise CryptographicMismatch(f"Signature verification failed: {reason}")


def aggregate_results(results: Sequence[SignatureResult]) -> VerificationResult:
    """
    Combine per-signature outcomes into the card-level verdict.

    The card is valid only when it has at least one signature and every
    signature verified.
    """
    if not results:
        return VerificationResult(
            valid=False,
            signatures=[],
            summary=VerificationSummary(errors=[NO_SIGNATURES_ERROR]),
        )

    valid_count = sum(1 for result in results if result.valid)
    errors = [
        f"Signature {result.index + 1}: {result.error}"
        for result in results
        if not result.valid and result.error
    ]

    return VerificationResult(
        valid=valid_count == len(results),
        signatures=list(results),
        summary=VerificationSummary(
            total=len(results),
            valid=valid_count,
            failed=len(results) - valid_count,
            errors=errors,
        ),
    )


class AgentCardVerifier:
    """
    Verifies the detached JWS signatures of Agent Cards.

    The verifier owns its KeySetResolver, so key sets fetched for one card are
    reused for the next one within the cache lifetime.

    Args:
        resolver: Key set resolver. Default: a new KeySetResolver
        timeout_s: Key set fetch timeout in seconds. Default: 10.0
        allow_insecure: Accept non-HTTPS key set URIs. Default: False

    Example:
        >>> verifier = AgentCardVerifier()
        >>> result = await verifier.verify(card)
        >>> if result.valid:
        ...     print(f"{result.summary.valid} signatures verified")
    """

    def __init__(
        self,
        resolver: KeySetResolver | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        allow_insecure: bool = False,
    ):
        self.resolver = resolver or KeySetResolver()
        self.timeout_s = timeout_s
        self.allow_insecure = allow_insecure

    @classmethod
    def from_config(cls, config: VerifierConfig | None = None) -> AgentCardVerifier:
        """Build a verifier from a VerifierConfig (default: read from env)."""
        config = config or VerifierConfig.from_env()
        return cls(
            resolver=KeySetResolver(
                cache_ttl_s=config.cache_ttl_s,
                cooldown_s=config.cooldown_s,
            ),
            timeout_s=config.timeout_s,
            allow_insecure=config.allow_insecure,
        )

    async def verify(
        self,
        card: Mapping[str, Any],
        timeout_s: float | None = None,
        allow_insecure: bool | None = None,
    ) -> VerificationResult:
        """
        Verify every signature of an Agent Card.

        Signatures are checked concurrently; results keep card order.

        Args:
            card: Parsed Agent Card
            timeout_s: Override the key set fetch timeout
            allow_insecure: Override the HTTPS requirement on key set URIs

        Returns:
            VerificationResult; never raises for malformed card content
        """
        if timeout_s is None:
            timeout_s = self.timeout_s
        if allow_insecure is None:
            allow_insecure = self.allow_insecure

        if not isinstance(card, Mapping):
            return _empty_result("Agent Card must be a JSON object")

        entries = card.get("signatures")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            return _empty_result("Agent Card signatures field must be an array")
        if not entries:
            return aggregate_results([])

        try:
            payload: bytes | None = canonicalize(card)
        except CanonicalizationError as e:
            # Each signature re-raises this and reports it as its own error
            logger.warning("%s", e.message)
            payload = None

        results = await asyncio.gather(*(
            self.verify_signature(
                card,
                entry,
                index,
                payload=payload,
                timeout_s=timeout_s,
                allow_insecure=allow_insecure,
            )
            for index, entry in enumerate(entries)
        ))
        return aggregate_results(results)

    def verify_sync(
        self,
        card: Mapping[str, Any],
        timeout_s: float | None = None,
        allow_insecure: bool | None = None,
    ) -> VerificationResult:
        """
        Verify every signature of an Agent Card synchronously.

        Must not be called from a running event loop; use verify() there.
        """
        return asyncio.run(
            self.verify(card, timeout_s=timeout_s, allow_insecure=allow_insecure)
        )

    async def verify_signature(
        self,
        card: Mapping[str, Any],
        entry: AgentCardSignature | Mapping[str, Any],
        index: int,
        payload: bytes | None = None,
        timeout_s: float | None = None,
        allow_insecure: bool | None = None,
    ) -> SignatureResult:
        """
        Verify one signature entry of a card.

        Never raises: every failure, including unexpected ones, comes back as
        an invalid SignatureResult.
        """
        if timeout_s is None:
            timeout_s = self.timeout_s
        if allow_insecure is None:
            allow_insecure = self.allow_insecure

        try:
            return await self._verify_signature(
                card, entry, index, payload, timeout_s, allow_insecure
            )
        except Exception as e:
            logger.exception("Unexpected error verifying signature %d", index)
            return SignatureResult(
                index=index,
                valid=False,
                error=f"Unexpected verification error: {e}",
            )

    async def _verify_signature(
        self,
        card: Mapping[str, Any],
        entry: AgentCardSignature | Mapping[str, Any],
        index: int,
        payload: bytes | None,
        timeout_s: float,
        allow_insecure: bool,
    ) -> SignatureResult:
        result = SignatureResult(index=index, valid=False)

        try:
            if not isinstance(entry, AgentCardSignature):
                entry = AgentCardSignature.from_dict(entry)

            header = decode_protected_header(entry.protected)
            result.algorithm = header.alg
            result.key_id = header.kid
            logger.debug("Signature %d: decoded header alg=%s kid=%s", index, header.alg, header.kid)

            policy_error = check_header_policy(header, allow_insecure)
            if policy_error is not None:
                raise policy_error

            uri = header.key_set_uri
            if not uri:
                raise MissingKeyUri()
            result.jwks_uri = uri

            if payload is None:
                payload = canonicalize(card)
            compact = assemble_compact(entry.protected, payload, entry.signature)

            logger.debug("Signature %d: resolving key set %s", index, uri)
            jwks = await self.resolver.resolve(uri, timeout_s)

            jwk_data = verify_compact(compact, header, jwks)
        except SignatureVerificationError as e:
            if isinstance(e, CryptographicMismatch):
                logger.warning("JWS verification failed for signature %d: %s", index, e.message)
            else:
                logger.debug("Signature %d invalid: %s", index, e.message)
            result.error = e.message
            return result

        logger.debug("Signature %d verified with key %s", index, jwk_data.get("kid"))
        result.valid = True
        result.details = VERIFIED_DETAILS
        return result


def _empty_result(error: str) -> VerificationResult:
    return VerificationResult(
        valid=False,
        signatures=[],
        summary=VerificationSummary(errors=[error]),
    )


async def verify_agent_card_signatures(
    card: Mapping[str, Any],
    timeout_s: float = DEFAULT_TIMEOUT_S,
    allow_insecure: bool = False,
) -> VerificationResult:
    """Verify an Agent Card with a one-off verifier (no cache reuse)."""
    verifier = AgentCardVerifier(timeout_s=timeout_s, allow_insecure=allow_insecure)
    return await verifier.verify(card)
