"""
Case Escalation Engine - Main Application
==========================================

Classification and escalation decision engine for incident cases.

Modules:
- Triage: Classify incident reports, reclassify and summarize cases, history and stats
- Escalation: Case intake and policy-gated escalation
- Audit: Decision records for every classification and escalation

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and the escalation policy
- Infrastructure: Database, LLM client, inference gateway
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from case_escalation.config import settings
from case_escalation.core import ApplicationException

# Infrastructure
from case_escalation.infrastructure.database import close_database, create_tables, get_engine, init_database
from case_escalation.infrastructure.llm import create_llm_client
from case_escalation.infrastructure.llm.gateway import InferenceGateway

# Module Routers
from case_escalation.escalation.interfaces import cases_router
from case_escalation.triage.interfaces import triage_router

# Shared
from case_escalation.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    application_exception_handler,
    global_exception_handler,
    request_metrics,
)
from case_escalation.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Initialize LLM client and inference gateway

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Case Escalation Engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Development convenience; production uses migrations
    logger.info("Creating database tables")
    try:
        await create_tables()
    except Exception as e:
        logger.warning(
            "Database not available - running in degraded mode",
            extra={"error": str(e)}
        )

    logger.info("Initializing LLM client")
    try:
        llm_client = create_llm_client()
        app.state.gateway = InferenceGateway(llm_client)
    except ApplicationException as e:
        logger.warning("LLM client initialization failed", extra={"error": e.message})
        app.state.gateway = None

    app.state.settings = settings

    logger.info("Case Escalation Engine started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Case Escalation Engine")
    await close_database()
    logger.info("Case Escalation Engine shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Case Escalation Engine API",
    description="""
    ## Case Classification & Escalation Decision Engine

    Turns free-text incident reports into confidence-scored classifications
    and gates case escalation with an auditable AI-assisted policy.

    ---

    ### Triage Module

    - `POST /triage/classify` - Classify incident text
    - `POST /triage/cases/{id}/reclassify` - Reclassify an existing case
    - `POST /triage/cases/{id}/summary` - Generate a case summary
    - `GET /triage/history` - Classification history
    - `GET /triage/stats` - Classification statistics

    ### Cases Module

    - `POST /cases` - Create a classified case
    - `GET /cases/{id}` - Get a case
    - `POST /cases/{id}/escalate` - Escalate a case (AI-assisted policy)

    ---

    ### Escalation Policy

    | AI says escalate | Confidence | Outcome |
    |------------------|------------|---------|
    | yes | >= 60% | Approve, AI-suggested priority |
    | yes | 40-60% | Approve, requested priority (default High) |
    | no  | >= 70% | Deny, AI recommendation returned |
    | any other case | | Approve, requested priority (manual override) |
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
# Last added runs outermost: the correlation id is set before requests are logged
app.add_middleware(LoggingMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(triage_router)
app.include_router(cases_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "initialized",
                        "inference": "available (gpt-4o)"
                    },
                    "requests": {"cases": {"requests": 12, "errors": 0, "avg_ms": 840.5}}
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports whether the database engine and the inference gateway were
    set up, plus per-module request counters.
    """
    try:
        get_engine()
        database = "initialized"
    except RuntimeError:
        database = "not_initialized"

    gateway = getattr(request.app.state, "gateway", None)
    checks = {
        "database": database,
        "inference": f"available ({gateway.model})" if gateway else "not_configured",
    }

    return {
        "status": "healthy" if gateway else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
        "requests": request_metrics.snapshot(),
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Case Escalation Engine",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "triage": {
                "prefix": "/triage",
                "endpoints": [
                    "POST /triage/classify - Classify incident text",
                    "POST /triage/cases/{id}/reclassify - Reclassify a case",
                    "POST /triage/cases/{id}/summary - Generate a case summary",
                    "GET /triage/history - Classification history",
                    "GET /triage/stats - Classification statistics"
                ]
            },
            "cases": {
                "prefix": "/cases",
                "endpoints": [
                    "POST /cases - Create a case",
                    "GET /cases/{id} - Get a case",
                    "POST /cases/{id}/escalate - Escalate a case"
                ]
            }
        }
    }
