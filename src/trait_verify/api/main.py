# SPDX-License-Identifier: MPL-2.0
"""FastAPI application for the trait verification backend.

The backend builds statements for its own scenarios and checks signed
statements against them before anything reaches the verification authority.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from trait_verify import __version__
from trait_verify.config import Settings, get_settings
from trait_verify.core.exceptions import (
    ConfigurationError,
    StatementError,
    TraitGrammarError,
    VerificationAuthorityError,
)
from trait_verify.core.statement import build_statement
from trait_verify.scenarios import EXAMPLE_SCENARIOS, Scenario, get_scenario
from trait_verify.services.authority import AuthorityOutcome, VerificationAuthorityClient
from trait_verify.services.gate import AuthoritySubmitter, TraitGate

logger = logging.getLogger(__name__)

OUTCOME_STATUS = {
    AuthorityOutcome.VERIFIED: status.HTTP_200_OK,
    AuthorityOutcome.NOT_VERIFIED: status.HTTP_404_NOT_FOUND,
    AuthorityOutcome.REQUIREMENTS_UNMET: status.HTTP_400_BAD_REQUEST,
}


class StatementRequest(BaseModel):
    """Request model for building a statement."""
    address: str = Field(..., min_length=1, description="Wallet address of the signer")
    verification_id: Optional[str] = Field(None, description="Optional correlation id")


class StatementResponse(BaseModel):
    """Response model for a built statement."""
    message: str
    nonce: str
    issued_at: str
    expiration_time: str


class VerifyRequest(BaseModel):
    """Request model for verifying a signed statement."""
    message: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


def _scenario_or_404(scenario_id: str) -> Scenario:
    try:
        return get_scenario(scenario_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown scenario: {scenario_id}",
        ) from None


def _default_authority(settings: Settings) -> Optional[VerificationAuthorityClient]:
    if not settings.publisher_key:
        logger.warning("No publisher key configured; verified statements cannot be forwarded")
        return None
    return VerificationAuthorityClient.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle handler; closes the authority client session."""
    yield
    close = getattr(app.state.authority, "close", None)
    if close is not None:
        await close()
        logger.info("Verification authority client closed")


def create_app(
    settings: Optional[Settings] = None,
    authority: Optional[AuthoritySubmitter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the environment)
        authority: Verification authority client; built from settings if omitted
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"])

    app = FastAPI(
        title="Trait Verify API",
        description="Checks signed trait requirements before they reach the verification authority",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.authority = authority if authority is not None else _default_authority(settings)

    # Add rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Add security headers to all responses."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.get("/health", summary="Health Check", tags=["Health"])
    @limiter.limit("500/minute")
    async def health_check(request: Request) -> Dict[str, Any]:
        """Health check endpoint for monitoring and load balancers."""
        return {
            "status": "healthy",
            "service": "trait-verify-api",
            "version": __version__,
            "authority_configured": app.state.authority is not None,
        }

    @app.get("/api/v1/scenarios", summary="List scenarios", tags=["Scenarios"])
    @limiter.limit("200/minute")
    async def list_scenarios(request: Request) -> List[Dict[str, Any]]:
        """List the eligibility scenarios this backend enforces."""
        return [scenario.to_dict() for scenario in EXAMPLE_SCENARIOS]

    @app.post(
        "/api/v1/scenarios/{scenario_id}/statement",
        response_model=StatementResponse,
        summary="Build a statement",
        tags=["Scenarios"],
    )
    @limiter.limit("60/minute")
    async def create_statement(request: Request, scenario_id: str, payload: StatementRequest) -> Dict[str, Any]:
        """Build the statement a wallet has to sign for a scenario."""
        scenario = _scenario_or_404(scenario_id)
        try:
            built = build_statement(
                payload.address,
                scenario.provider,
                scenario.traits,
                scenario.action,
                payload.verification_id,
                settings=settings,
            )
        except (StatementError, TraitGrammarError) as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
        return {
            "message": built.message,
            "nonce": built.nonce,
            "issued_at": built.issued_at,
            "expiration_time": built.expiration_time,
        }

    @app.post("/api/v1/scenarios/{scenario_id}/verify", summary="Verify a signed statement", tags=["Scenarios"])
    @limiter.limit("60/minute")
    async def verify_statement(request: Request, scenario_id: str, payload: VerifyRequest) -> JSONResponse:
        """Validate a signed statement locally and forward it if it is strict enough."""
        scenario = _scenario_or_404(scenario_id)
        gate = TraitGate.from_scenario(scenario, authority=app.state.authority)

        try:
            decision = await gate.verify(payload.message, payload.signature)
        except StatementError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
        except ConfigurationError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message) from e
        except VerificationAuthorityError as e:
            logger.error("Verification authority error for scenario %s: %s", scenario_id, e.message)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e

        if not decision.forwarded:
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=decision.validation.to_dict())

        return JSONResponse(status_code=OUTCOME_STATUS[decision.authority.outcome], content=decision.to_dict())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("trait_verify.api.main:app", host="0.0.0.0", port=8000, reload=True)
