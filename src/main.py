"""Application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import get_container
from src.api.dependencies import default_rate_limit, limiter
from src.api.routes.chat import router as chat_router
from src.api.routes.conversations import router as conversations_router
from src.api.routes.guardrails import router as guardrails_router
from src.api.routes.workflow import router as workflow_router
from src.shared.logging import setup_logging

log = structlog.get_logger()


def _apply_logging_config(container):
    """Apply logging from container config (stdout + optional file)."""
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: setup logging and report model availability."""
    container = get_container()
    _apply_logging_config(container)
    guardrails = container.config.guardrails
    log.info(
        "startup_begin",
        default_model=container.model_router.default_model,
        router_model=container.model_router.router_model,
        fast_correction=guardrails.enable_fast_correction,
        realtime_monitoring=guardrails.enable_realtime_monitoring,
    )
    if not await container.llm.is_available():
        # Requests will fail with an error event until the host is reachable
        log.warning("llm_unavailable", host=container.config.ollama.host)
    log.info("startup_complete")
    yield
    log.info("shutdown_complete")


# Create app
app = FastAPI(
    title="Tag Stream",
    version="0.1.0",
    description="Streaming tag-protocol engine with real-time guardrails",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
container = get_container()
app.add_middleware(
    CORSMiddleware,
    allow_origins=container.config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(chat_router)
app.include_router(conversations_router)
app.include_router(guardrails_router)
app.include_router(workflow_router)


@app.get("/health")
@limiter.limit(default_rate_limit)
async def health(request: Request) -> dict:
    """Health check with LLM availability."""
    container = get_container()
    llm_available = await container.llm.is_available()
    return {
        "status": "ok",
        "service": "tag-stream",
        "default_model": container.model_router.default_model,
        "llm_available": llm_available,
    }
