"""
FastAPI application for the pocket agent.

Exposes conversations over HTTP: create a conversation, post a user
message and wait for the outcome, cancel an in-flight message, inspect or
delete the conversation.

Usage:
    # Development server with auto-reload
    uvicorn pocket_agent.api.main:app --reload --host 0.0.0.0 --port 8000

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn pocket_agent.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..runtime import AgentRuntime, build_runtime
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import conversations, health


def configure_logging():
    """Configure logging from the configured log level."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("pocket_agent").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


def _log_configuration(runtime: AgentRuntime) -> None:
    profile = runtime.profile
    logger.info("=" * 60)
    logger.info("MODEL")
    logger.info(f"  Engine model: {getattr(runtime.engine, 'model', 'unknown')}")
    logger.info(f"  Base URL: {runtime.config.inference.base_url}")
    logger.info(f"  Family: {profile.family.display_name}")
    logger.info(f"  Prompt format: {profile.prompt_format.value}")
    logger.info(
        f"  Context: {profile.context_length:,} tokens "
        f"({profile.reserved_output_tokens:,} reserved for output)"
    )

    agent = runtime.config.agent
    logger.info("-" * 60)
    logger.info("CONVERSATION LOOP")
    logger.info(f"  Max iterations: {agent.max_iterations}")
    logger.info(f"  Concurrent dispatch: {agent.concurrent_dispatch}")
    logger.info(f"  Tool timeout: {agent.tool_timeout}s")

    privacy = runtime.router.preferences
    logger.info("-" * 60)
    logger.info("PRIVACY CEILINGS")
    logger.info(f"  Default: {privacy.default.name}")
    logger.info(f"  Messaging: {privacy.messaging.name}")
    logger.info(f"  Media: {privacy.media.name}")
    logger.info(f"  General: {privacy.general.name}")

    logger.info("-" * 60)
    logger.info("REGISTERED TOOLS")
    for tool in runtime.registry.all_tools():
        logger.info(
            f"  - {tool.name} [{tool.min_privacy_tier.name}]: {tool.description[:60]}..."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting pocket agent API server")

    if app.state.runtime is None:
        app.state.runtime = build_runtime(config)
    runtime: AgentRuntime = app.state.runtime
    _log_configuration(runtime)

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_tracing_client(config.langfuse)
    if tracing_client.enabled:
        logger.info("  Status: ENABLED")
        logger.info(f"  Host: {config.langfuse.host or 'https://cloud.langfuse.com'}")
    else:
        logger.info("  Status: DISABLED")
        if tracing_client.error:
            logger.info(f"  Reason: {tracing_client.error}")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down pocket agent API server")
    await runtime.close()
    shutdown_tracing()
    logger.info("Tracing client shutdown complete")


def create_app(runtime: Optional[AgentRuntime] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        runtime: Pre-built runtime; when None one is built from the
            configuration at startup.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Pocket Agent API",
        description=(
            "Conversational agent with tool calling and privacy routing for small "
            "on-device models."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(conversations.router, tags=["Conversations"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors before returning 400 response."""
        logger.warning(
            f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
        )
        body = await request.body()
        logger.debug(f"Request body: {body.decode('utf-8', errors='replace')[:1000]}")
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    return app


app = create_app()


def run_server():
    """
    Run the server using uvicorn.

    This is the entry point for running the server programmatically.
    """
    import uvicorn

    uvicorn.run(
        "pocket_agent.api.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        workers=1 if config.server.reload else config.server.workers,
    )


if __name__ == "__main__":
    run_server()
