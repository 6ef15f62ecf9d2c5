"""
HTTP verification service (Starlette).

Exposes the verifier over HTTP so non-Python agents can check cards:

    POST /verify   body: Agent Card JSON
    GET  /health

Usage:
    pip install -e ".[service]"
    uvicorn --factory agentcard_verifier.service:create_app --port 8081
"""

from __future__ import annotations

import json
import logging

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .canonical import reject_non_finite
from .verifier import AgentCardVerifier

logger = logging.getLogger(__name__)


def create_app(verifier: AgentCardVerifier | None = None) -> Starlette:
    """
    Create the verification service.

    Args:
        verifier: Verifier shared by all requests, so key sets are cached
            across calls. Default: built from environment configuration.
    """
    verifier = verifier or AgentCardVerifier.from_config()

    async def verify(request: Request) -> JSONResponse:
        try:
            card = json.loads(await request.body(), parse_constant=reject_non_finite)
        except (ValueError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON"})

        if not isinstance(card, dict):
            return JSONResponse(status_code=400, content={"error": "Agent Card must be a JSON object"})

        # Transport policy comes from the verifier configuration only
        result = await verifier.verify(card)
        logger.info(
            "Verified card %r: %d/%d signatures valid",
            card.get("name"),
            result.summary.valid,
            result.summary.total,
        )
        return JSONResponse(result.to_dict())

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return Starlette(
        routes=[
            Route("/verify", verify, methods=["POST"]),
            Route("/health", health, methods=["GET"]),
        ],
    )
