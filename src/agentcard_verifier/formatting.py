"""
Human-readable rendering of verification results.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from .models import VerificationResult


def _host(uri: str) -> str | None:
    try:
        return urlsplit(uri).hostname
    except ValueError:
        return None


def format_verification_results(result: VerificationResult) -> list[str]:
    """
    Render a VerificationResult as display lines.

    Examples:
        >>> format_verification_results(VerificationResult(valid=False))
        ['⚠️  No signatures present in Agent Card']
    """
    total = result.summary.total
    if total == 0:
        return ["⚠️  No signatures present in Agent Card"]

    status = "✅" if result.valid else "❌"
    lines = [f"{status} Signature verification: {result.summary.valid}/{total} signatures valid"]

    for position, sig in enumerate(result.signatures, start=1):
        line = f"{'✅' if sig.valid else '❌'} Signature {position}/{total}"
        if sig.algorithm:
            line += f": {sig.algorithm}"
        if sig.key_id:
            line += f" (key: {sig.key_id})"
        if sig.jwks_uri:
            host = _host(sig.jwks_uri)
            if host:
                line += f" from {host}"
        lines.append(line)

        if sig.error:
            lines.append(f"   Error: {sig.error}")
        if sig.details and sig.valid:
            lines.append(f"   {sig.details}")

    return lines
