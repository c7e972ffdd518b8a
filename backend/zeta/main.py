"""
Zeta - Project Assistant

FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import init_db, close_db
from .config import settings
from .api import (
    projects_router,
    chat_router,
    onboarding_router,
    autonomy_router,
    logs_router,
    integrations_router,
)
from .tracer import setup_follow_through_logging

# Configure logging based on mode
if settings.debug:
    log_level = logging.DEBUG
elif settings.follow_through:
    log_level = logging.WARNING  # Suppress normal logs, let tracer handle output
else:
    log_level = logging.INFO

logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Quiet down noisy loggers when not in debug mode
if not settings.debug:
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

# Setup follow-through tracing
setup_follow_through_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Zeta...")

    # Validate provider key and storage backend
    try:
        settings.validate_provider_key()
        settings.validate_storage()
        logger.info(f"Using LLM provider: {settings.llm_provider}, storage: {settings.storage_backend}")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down Zeta...")
    await close_db()


app = FastAPI(
    title="Zeta",
    description="""
    Zeta - an AI assistant bound to a project.

    ## Features
    - **Guided onboarding**: vision, long-term goals, short-term goals, Telegram
    - **Step capture**: structured data pulled from free-form chat messages
    - **Calendar capture**: "add X on dec 20" lands on the calendar
    - **Autonomy plans**: assistant-proposed changes applied under an
      off / shadow / ask / auto policy, with every action logged
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(projects_router)
app.include_router(chat_router)
app.include_router(onboarding_router)
app.include_router(autonomy_router)
app.include_router(logs_router)
app.include_router(integrations_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Zeta",
        "version": "1.0.0",
        "description": "Project assistant with guided onboarding and autonomy plans",
        "provider": settings.llm_provider,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
