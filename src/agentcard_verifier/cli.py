"""Command line interface for verifying Agent Card signatures."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import typer

from .canonical import reject_non_finite
from .formatting import format_verification_results
from .headers import inspect_signature_header
from .verifier import AgentCardVerifier

app = typer.Typer(help="Verify JWS signatures on A2A Agent Cards")

EXIT_INVALID = 1
EXIT_LOAD_ERROR = 2


class CardLoadError(Exception):
    """The Agent Card could not be read or parsed."""


def load_card(source: str, timeout_s: float = 10.0) -> dict[str, Any]:
    """
    Load an Agent Card from a file path or an http(s) URL.

    Raises:
        CardLoadError: If the card cannot be read or is not a JSON object
    """
    if source.startswith(("http://", "https://")):
        try:
            response = httpx.get(source, timeout=timeout_s, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CardLoadError(f"Failed to fetch {source}: {e}") from e
        text = response.text
    else:
        try:
            text = Path(source).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise CardLoadError(f"Failed to read {source}: {e}") from e

    try:
        card = json.loads(text, parse_constant=reject_non_finite)
    except json.JSONDecodeError as e:
        raise CardLoadError(f"{source} is not valid JSON: {e.msg}") from e
    except ValueError as e:
        raise CardLoadError(f"{source} is not valid JSON: {e}") from e

    if not isinstance(card, dict):
        raise CardLoadError(f"{source} does not contain a JSON object")
    return card


def _load_or_exit(source: str, timeout_s: float) -> dict[str, Any]:
    try:
        return load_card(source, timeout_s=timeout_s)
    except CardLoadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=EXIT_LOAD_ERROR)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """agentcard-verify entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("verify")
def verify(
    card: str = typer.Argument(..., help="Path or URL of the Agent Card"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    allow_insecure: bool = typer.Option(
        False, "--allow-insecure", help="Accept non-HTTPS JWKS URIs (testing only)"
    ),
    timeout: float = typer.Option(10.0, help="JWKS fetch timeout in seconds"),
) -> None:
    """
    Verify every signature of an Agent Card.

    Exits 0 when all signatures verify, 1 when the card is unsigned or any
    signature fails, and 2 when the card cannot be loaded.

    Example:
        agentcard-verify verify ./agent-card.json
        agentcard-verify verify https://agent.example.com/.well-known/agent-card.json --json
    """
    agent_card = _load_or_exit(card, timeout)
    verifier = AgentCardVerifier(timeout_s=timeout, allow_insecure=allow_insecure)
    result = verifier.verify_sync(agent_card)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for line in format_verification_results(result):
            typer.echo(line)

    if not result.valid:
        raise typer.Exit(code=EXIT_INVALID)


@app.command("inspect")
def inspect_card(
    card: str = typer.Argument(..., help="Path or URL of the Agent Card"),
    timeout: float = typer.Option(10.0, help="Card fetch timeout in seconds"),
) -> None:
    """Print the decoded protected header of each signature without verifying."""
    agent_card = _load_or_exit(card, timeout)
    signatures = agent_card.get("signatures")
    if not isinstance(signatures, list) or not signatures:
        typer.echo("No signatures present in Agent Card")
        return

    for position, entry in enumerate(signatures, start=1):
        header = inspect_signature_header(entry) if isinstance(entry, dict) else None
        if header is None:
            typer.echo(f"Signature {position}: <malformed protected header>")
            continue
        fields: dict[str, str | None] = {
            "alg": header.alg,
            "typ": header.typ,
            "kid": header.kid,
            "jku": header.jku,
            "jwks_uri": header.jwks_uri,
        }
        rendered = ", ".join(f"{name}={value}" for name, value in fields.items() if value)
        typer.echo(f"Signature {position}: {rendered}")
