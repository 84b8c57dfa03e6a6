"""
FastAPI routes for the Safety Triage API.

This module provides the HTTP endpoints for the questionnaire, the
moderated assistant chat, crisis resources, audit statistics and
health checks.
"""

import os
import secrets
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictBool

from safety_triage.api.rate_limit import RateLimiter
from safety_triage.config import RouterConfig
from safety_triage.exceptions import RateLimitExceeded, TriageValidationError
from safety_triage.safety.models import ChatMessage, MAX_MESSAGE_CHARS
from safety_triage.safety.templates import EMERGENCY_DIRECTIVE
from safety_triage.triage.models import TriageAnswers
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("api_routes")

REGION_PATTERN = r"^[A-Za-z]{2}$"


# Pydantic models

class TriageRequest(BaseModel):
    """Questionnaire submission. Every answer is required and strictly boolean."""
    model_config = ConfigDict(populate_by_name=True)

    immediate_danger: StrictBool = Field(..., alias="immediateDanger")
    harm_self: StrictBool = Field(..., alias="harmSelf")
    harm_others: StrictBool = Field(..., alias="harmOthers")
    need_help_soon: StrictBool = Field(..., alias="needHelpSoon")
    need_help_today: StrictBool = Field(..., alias="needHelpToday")
    region_code: Optional[str] = Field(None, alias="regionCode", pattern=REGION_PATTERN)


class TriageResponse(BaseModel):
    """Triage routing decision."""
    riskLevel: str
    crisisMode: bool
    nextAction: Optional[str] = None
    message: str


class ChatRequest(BaseModel):
    """Chat request model."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS, description="User message")
    region_code: Optional[str] = Field(None, alias="regionCode", pattern=REGION_PATTERN)


class ChatResponse(BaseModel):
    """Chat response model."""
    content: str
    blocked: bool
    crisisMode: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    mode: str


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_api_routes(crisis_router, config: Optional[RouterConfig] = None) -> APIRouter:
    """
    Create FastAPI router with routing endpoints.

    Args:
        crisis_router: CrisisRouter instance
        config: Service configuration (rate limits, admin token)

    Returns:
        FastAPI router
    """
    config = config or crisis_router.config

    triage_limiter = RateLimiter(
        config.rate_limit.triage_max_requests,
        config.rate_limit.triage_window_seconds
    )
    chat_limiter = RateLimiter(
        config.rate_limit.chat_max_requests,
        config.rate_limit.chat_window_seconds
    )

    def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
        expected = config.server.admin_token
        if not expected:
            raise HTTPException(status_code=403, detail="Admin access is not configured")
        if not x_admin_token or not secrets.compare_digest(x_admin_token.encode(), expected.encode()):
            raise HTTPException(status_code=401, detail="Invalid admin token")

    router = APIRouter(prefix="/api/v1", tags=["triage"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": "1.0.0",
            "mode": "MOCK" if os.getenv("LLM_TYPE", "MOCK").upper() == "MOCK" else "PRODUCTION"
        }

    @router.get("/triage/questions")
    async def get_questions():
        """Questionnaire items in display order."""
        return {"questions": crisis_router.get_questions()}

    @router.post("/triage/submit", response_model=TriageResponse)
    async def submit_triage(payload: TriageRequest, request: Request):
        """
        Classify a questionnaire submission.

        The response carries only the category and routing hints; the
        individual answers are not echoed or stored.
        """
        triage_limiter.check(f"triage:{_client_key(request)}")

        answers = TriageAnswers(
            immediate_danger=payload.immediate_danger,
            harm_self=payload.harm_self,
            harm_others=payload.harm_others,
            need_help_soon=payload.need_help_soon,
            need_help_today=payload.need_help_today,
            region_code=payload.region_code
        )
        result = await crisis_router.route_triage(answers)
        return result.to_dict()

    @router.post("/chat", response_model=ChatResponse)
    async def chat(payload: ChatRequest, request: Request):
        """Screen a message and, when safe, answer it."""
        chat_limiter.check(f"chat:{_client_key(request)}")

        message = ChatMessage(
            role="user",
            content=payload.message,
            region_code=payload.region_code
        )
        reply = await crisis_router.route_chat(message)
        return reply.to_dict()

    @router.get("/crisis/resources")
    async def get_crisis_resources(
        region_code: Optional[str] = Query(None, pattern=REGION_PATTERN)
    ):
        """Get crisis resources for a region."""
        resources = await crisis_router.get_crisis_resources(region_code)
        return {
            "regionCode": region_code.upper() if region_code else None,
            "resources": [r.to_dict() for r in resources]
        }

    @router.get("/admin/audit/stats", dependencies=[Depends(require_admin)])
    async def audit_stats():
        """Aggregate audit counts."""
        stats = await crisis_router.audit_stats()
        return stats.to_dict()

    return router


def _install_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(TriageValidationError)
    async def validation_error_handler(request: Request, exc: TriageValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded on {request.url.path}")
        return JSONResponse(
            status_code=429,
            content={"detail": str(exc)},
            headers={"Retry-After": str(max(1, int(exc.retry_after)))}
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        # Final fallback: never a bare 500
        logger.error(f"Unhandled error on {request.url.path}: {type(exc).__name__}")
        return JSONResponse(
            status_code=200,
            content={"content": EMERGENCY_DIRECTIVE, "blocked": True, "crisisMode": False}
        )


def create_app(crisis_router=None, config: Optional[RouterConfig] = None) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        crisis_router: Optional CrisisRouter instance
        config: Optional configuration; read from ROUTER_CONFIG (YAML) or
            the environment when omitted

    Returns:
        FastAPI application
    """
    if config is None:
        config_path = os.getenv("ROUTER_CONFIG")
        config = RouterConfig.from_yaml(config_path) if config_path else RouterConfig.from_env()

    # Import here to avoid circular imports
    if crisis_router is None:
        from safety_triage.main import CrisisRouter
        crisis_router = CrisisRouter(config=config)

    @asynccontextmanager
    async def lifespan(app):
        # Startup
        await crisis_router.start()
        yield
        # Shutdown
        await crisis_router.shutdown()

    app = FastAPI(
        title="Safety Triage API",
        description="Deterministic safety triage and crisis routing",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_api_routes(crisis_router, config))
    app.state.crisis_router = crisis_router

    return app


if __name__ == "__main__":
    import uvicorn

    server_config = RouterConfig.from_env()
    uvicorn.run(
        create_app(config=server_config),
        host=server_config.server.host,
        port=server_config.server.port
    )
