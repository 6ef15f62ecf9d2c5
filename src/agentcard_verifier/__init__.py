"""
Agent Card Verifier for Python

Verify detached JWS signatures on A2A Agent Cards against remotely published
JSON Web Key Sets.
"""

from .models import (
    AgentCardSignature,
    JWSHeader,
    SignatureResult,
    VerificationResult,
    VerificationSummary,
)
from .config import VerifierConfig
from .canonical import canonicalize, assemble_compact, without_signatures
from .headers import (
    SUPPORTED_ALGORITHMS,
    check_header_policy,
    decode_protected_header,
    inspect_signature_header,
)
from .jwks import KeySetResolver
from .verifier import AgentCardVerifier, aggregate_results, verify_agent_card_signatures
from .formatting import format_verification_results

__version__ = "0.1.0"

__all__ = [
    "AgentCardSignature",
    "JWSHeader",
    "SignatureResult",
    "VerificationResult",
    "VerificationSummary",
    "VerifierConfig",
    "canonicalize",
    "assemble_compact",
    "without_signatures",
    "SUPPORTED_ALGORITHMS",
    "check_header_policy",
    "decode_protected_header",
    "inspect_signature_header",
    "KeySetResolver",
    "AgentCardVerifier",
    "aggregate_results",
    "verify_agent_card_signatures",
    "format_verification_results",
]

# HTTP service - optional, requires the "service" extra
try:
    from .service import create_app
    __all__.append("create_app")
except ImportError:
    pass
