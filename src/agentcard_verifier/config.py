"""
Verifier configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .jwks import DEFAULT_CACHE_TTL_S, DEFAULT_COOLDOWN_S, DEFAULT_TIMEOUT_S

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass
class VerifierConfig:
    """
    Settings for AgentCardVerifier.

    Attributes:
        timeout_s: Key set fetch timeout in seconds
        allow_insecure: Accept non-HTTPS key set URIs (testing only)
        cache_ttl_s: How long a fetched key set is reused
        cooldown_s: How long a failed key set fetch is replayed
    """
    timeout_s: float = DEFAULT_TIMEOUT_S
    allow_insecure: bool = False
    cache_ttl_s: float = DEFAULT_CACHE_TTL_S
    cooldown_s: float = DEFAULT_COOLDOWN_S

    @classmethod
    def from_env(cls) -> VerifierConfig:
        """
        Read settings from the environment.

        Environment variables:
            AGENTCARD_VERIFY_TIMEOUT - fetch timeout in seconds (default: 10)
            AGENTCARD_ALLOW_INSECURE - "true" to allow http key set URIs
            AGENTCARD_JWKS_CACHE_TTL - key set cache lifetime in seconds (default: 300)
            AGENTCARD_JWKS_COOLDOWN - failure cooldown in seconds (default: 30)

        Raises:
            ValueError: If a numeric variable is not a number
        """
        return cls(
            timeout_s=float(os.getenv("AGENTCARD_VERIFY_TIMEOUT", str(DEFAULT_TIMEOUT_S))),
            allow_insecure=os.getenv("AGENTCARD_ALLOW_INSECURE", "false").lower() in _TRUE_VALUES,
            cache_ttl_s=float(os.getenv("AGENTCARD_JWKS_CACHE_TTL", str(DEFAULT_CACHE_TTL_S))),
            cooldown_s=float(os.getenv("AGENTCARD_JWKS_COOLDOWN", str(DEFAULT_COOLDOWN_S))),
        )
