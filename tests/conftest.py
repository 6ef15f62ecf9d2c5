"""Shared fixtures: signing keys, JWKS documents and signed Agent Cards."""

from __future__ import annotations

import copy
from typing import Any

import jwt
import pytest
import respx
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from jwt.algorithms import ECAlgorithm, OKPAlgorithm, RSAAlgorithm

from agentcard_verifier.canonical import canonicalize

JWKS_URL = "https://keys.example.com/.well-known/jwks.json"


def make_card(**overrides: Any) -> dict[str, Any]:
    card = {
        "protocolVersion": "0.3.0",
        "name": "Test Agent",
        "description": "A test agent for signature verification",
        "url": "https://example.com/agent",
        "preferredTransport": "HTTP+JSON",
        "provider": {
            "organization": "Test Corp",
            "url": "https://testcorp.com",
        },
        "version": "1.0.0",
        "capabilities": {
            "streaming": False,
            "pushNotifications": False,
        },
        "defaultInputModes": ["text/plain"],
        "defaultOutputModes": ["text/plain"],
        "skills": [
            {
                "id": "test-skill",
                "name": "Test Skill",
                "description": "A test skill",
                "tags": ["test"],
            }
        ],
    }
    card.update(overrides)
    return card


def sign_card(
    card: dict[str, Any],
    private_key: Any,
    algorithm: str,
    kid: str | None = "key-1",
    jku: str | None = JWKS_URL,
    **extra_headers: Any,
) -> dict[str, str]:
    """Produce a detached signature entry over the card's canonical payload."""
    headers: dict[str, Any] = dict(extra_headers)
    if kid is not None:
        headers["kid"] = kid
    if jku is not None:
        headers["jku"] = jku

    token = jwt.PyJWS().encode(
        canonicalize(card),
        private_key,
        algorithm=algorithm,
        headers=headers,
    )
    protected, _payload, signature = token.split(".")
    return {"protected": protected, "signature": signature}


def with_signatures(card: dict[str, Any], *entries: dict[str, str]) -> dict[str, Any]:
    signed = copy.deepcopy(card)
    signed["signatures"] = list(entries)
    return signed


def public_jwk(private_key: Any, kid: str = "key-1", **extra: Any) -> dict[str, Any]:
    public_key = private_key.public_key()
    if isinstance(public_key, rsa.RSAPublicKey):
        jwk = RSAAlgorithm.to_jwk(public_key, as_dict=True)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        jwk = ECAlgorithm.to_jwk(public_key, as_dict=True)
    else:
        jwk = OKPAlgorithm.to_jwk(public_key, as_dict=True)
    jwk.update({"kid": kid, "use": "sig"})
    jwk.update(extra)
    return jwk


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ed_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def card():
    return make_card()


@pytest.fixture
def mock_jwks():
    """Create a respx mock for JWKS endpoints."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def clock():
    return FakeClock()
