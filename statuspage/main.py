"""
FastAPI application entry point.

Configures middleware, routes, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from statuspage.core.config import settings
from statuspage.core.logging import setup_logging
from statuspage.core.sessions import SessionRegistry
from statuspage.store.client import create_directory_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Starting Status Page API in %s mode", settings.ENVIRONMENT)
    app.state.store = create_directory_store(settings)
    app.state.sessions = SessionRegistry()
    try:
        yield
    finally:
        logger.info("Shutting down Status Page API")
        await app.state.sessions.close_all()
        await app.state.store.close()


app = FastAPI(
    title="Status Page API",
    description="Multi-tenant service status and incident reporting",
    version="1.0.0",
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": str(exc),
                    "type": type(exc).__name__,
                }
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0",
    }


from statuspage.routers import dashboard, incidents, organizations, services, session, status as status_page

app.include_router(session.router, prefix="/api/v1/session", tags=["Session"])
app.include_router(organizations.router, prefix="/api/v1/organizations", tags=["Organizations"])
app.include_router(services.router, prefix="/api/v1", tags=["Services"])
app.include_router(incidents.router, prefix="/api/v1", tags=["Incidents"])
app.include_router(status_page.router, prefix="/api/v1/status", tags=["Status Page"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
