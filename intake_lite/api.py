"""
Intake Service API
==================

Thin FastAPI surface over IntakeService.

Endpoints:
- GET  /health                                     - Health check
- POST /api/v1/intake/messages                     - Process one conversational turn
- POST /api/v1/intake/tools/{tool_name}            - Run an agent tool call
- GET  /api/v1/intake/context/{session_id}/{team_id} - Stored conversation context

Run with:
    uvicorn intake_lite.api:app --host 0.0.0.0 --port 8000
"""

import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .context_store import RedisContextStore
from .errors import ContextStoreError
from .schemas import (
    ConversationContext,
    ErrorResponse,
    HealthResponse,
    IntakeMessageRequest,
    IntakeMessageResponse,
    ToolCallRequest,
    ToolResponse,
)
from .service import IntakeService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="Intake Service",
    description="Conversation pipeline for legal intake chat: content policy, jurisdiction, "
                "contact collection, case drafts, document analysis and PDF summaries",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


def _parse_cors_origins(raw: str) -> List[str]:
    origins: List[str] = []
    for item in raw.split(","):
        origin = item.strip().strip('"').strip("'").rstrip("/")
        if origin:
            origins.append(origin)
    return origins


_cors_raw = os.environ.get(
    "CORS_ALLOW_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8000,http://127.0.0.1:8000"
)
CORS_ALLOW_ORIGINS = _parse_cors_origins(_cors_raw)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


_service: Optional[IntakeService] = None


def get_intake_service() -> IntakeService:
    """Shared IntakeService (overridable in tests via dependency_overrides)"""
    global _service
    if _service is None:
        _service = IntakeService()
    return _service


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(service: IntakeService = Depends(get_intake_service)):
    """Health check endpoint"""
    settings = get_settings()
    warnings = settings.validate_config()
    status = "ok"

    if isinstance(service.store, RedisContextStore) and not service.store.ping():
        status = "degraded"
        warnings.append("Context store is unreachable")

    return HealthResponse(
        status=status,
        version=settings.service_version,
        context_store=service.store.name,
        warnings=warnings,
    )


@app.post(
    "/api/v1/intake/messages",
    response_model=IntakeMessageResponse,
    tags=["Intake"],
    summary="Process one conversational turn",
    responses={
        200: {"description": "Turn processed"},
        503: {"model": ErrorResponse, "description": "Context store unavailable"},
    },
)
async def process_message(
    request: IntakeMessageRequest,
    service: IntakeService = Depends(get_intake_service),
):
    """
    Run the intake pipeline for one turn.

    When needs_agent is true the caller should hand the turn to the LLM
    agent; otherwise response is the final reply for the user.
    """
    result = await service.process_turn(
        session_id=request.session_id,
        team_id=request.team_id,
        messages=request.messages,
        team_config=request.team_config,
        attachments=request.attachments,
    )

    context = result.context
    return IntakeMessageResponse(
        response=None if result.needs_agent else result.response,
        needs_agent=result.needs_agent,
        middleware_used=result.middleware_used,
        conversation_phase=context.conversation_phase,
        user_intent=context.user_intent,
        safety_flags=context.safety_flags,
    )


@app.post(
    "/api/v1/intake/tools/{tool_name}",
    response_model=ToolResponse,
    tags=["Tools"],
    summary="Run an agent tool call",
)
async def run_tool(
    tool_name: str,
    request: ToolCallRequest,
    service: IntakeService = Depends(get_intake_service),
):
    return await service.apply_tool_call(
        session_id=request.session_id,
        team_id=request.team_id,
        tool_name=tool_name,
        arguments=request.arguments,
        team_config=request.team_config,
    )


@app.get(
    "/api/v1/intake/context/{session_id}/{team_id}",
    response_model=ConversationContext,
    tags=["Intake"],
    summary="Get stored conversation context",
)
async def get_context(
    session_id: str,
    team_id: str,
    service: IntakeService = Depends(get_intake_service),
):
    return await service.get_context(session_id, team_id)


# =============================================================================
# Lifecycle & errors
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Log configuration on startup"""
    settings = get_settings()
    logger.info(f"Starting Intake Service v{settings.service_version}")
    logger.info(f"Context store: {settings.context_store}, LLM mode: {settings.llm_mode.value}")
    logger.info(f"CORS allow origins: {CORS_ALLOW_ORIGINS}")
    for warning in settings.validate_config():
        logger.warning(f"Config: {warning}")


@app.exception_handler(ContextStoreError)
async def context_store_exception_handler(request: Request, exc: ContextStoreError):
    logger.error(f"Context store failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            error="context_store_unavailable",
            detail="Conversation state is temporarily unavailable. Please retry.",
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON"""
    logger.error("Unhandled exception on %s: %s", request.url.path, exc.__class__.__name__)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="internal_error", detail=exc.__class__.__name__).model_dump(),
    )


# =============================================================================
# Main (for direct execution)
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
