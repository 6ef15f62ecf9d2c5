"""Tests for VerifierConfig."""

import pytest

from agentcard_verifier import VerifierConfig


class TestVerifierConfig:
    """Tests for VerifierConfig."""

    def test_defaults(self, monkeypatch):
        for name in (
            "AGENTCARD_VERIFY_TIMEOUT",
            "AGENTCARD_ALLOW_INSECURE",
            "AGENTCARD_JWKS_CACHE_TTL",
            "AGENTCARD_JWKS_COOLDOWN",
        ):
            monkeypatch.delenv(name, raising=False)

        assert VerifierConfig.from_env() == VerifierConfig(
            timeout_s=10.0,
            allow_insecure=False,
            cache_ttl_s=300.0,
            cooldown_s=30.0,
        )

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AGENTCARD_VERIFY_TIMEOUT", "2.5")
        monkeypatch.setenv("AGENTCARD_ALLOW_INSECURE", "TRUE")
        monkeypatch.setenv("AGENTCARD_JWKS_CACHE_TTL", "60")
        monkeypatch.setenv("AGENTCARD_JWKS_COOLDOWN", "5")

        config = VerifierConfig.from_env()

        assert config.timeout_s == 2.5
        assert config.allow_insecure is True
        assert config.cache_ttl_s == 60.0
        assert config.cooldown_s == 5.0

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("AGENTCARD_VERIFY_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            VerifierConfig.from_env()
