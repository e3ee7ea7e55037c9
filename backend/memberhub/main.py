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

from memberhub.core.config import settings
from memberhub.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info("Starting MemberHub API in %s mode", settings.ENVIRONMENT)
    yield
    logger.info("Shutting down MemberHub API")


app = FastAPI(
    title="MemberHub API",
    description="Multi-tenant membership management platform",
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


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "message": "MemberHub API",
        "version": "1.0.0",
        "docs": "/api/docs" if settings.DEBUG else "disabled",
    }


from memberhub.routers import (  # noqa: E402
    admin,
    auth,
    badges,
    campaigns,
    committees,
    domains,
    events,
    forms,
    invitations,
    mailing,
    memberships,
    organizations,
    profiles,
    reminders,
    signup,
    tenant,
    workflows,
)

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(tenant.router, prefix="/api/v1", tags=["Tenant"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Super Admin"])
app.include_router(organizations.router, prefix="/api/v1/organizations", tags=["Organizations"])
app.include_router(invitations.router, prefix="/api/v1/invitations", tags=["Invitations"])
app.include_router(profiles.router, prefix="/api/v1", tags=["Profiles"])
app.include_router(forms.router, prefix="/api/v1", tags=["Forms"])
app.include_router(signup.router, prefix="/api/v1", tags=["Signup"])
app.include_router(memberships.router, prefix="/api/v1", tags=["Memberships"])
app.include_router(events.router, prefix="/api/v1", tags=["Events"])
app.include_router(committees.router, prefix="/api/v1", tags=["Committees"])
app.include_router(badges.router, prefix="/api/v1", tags=["Badges"])
app.include_router(mailing.router, prefix="/api/v1", tags=["Mailing Lists"])
app.include_router(campaigns.router, prefix="/api/v1", tags=["Campaigns"])
app.include_router(workflows.router, prefix="/api/v1", tags=["Workflows"])
app.include_router(reminders.router, prefix="/api/v1", tags=["Reminders"])
app.include_router(domains.router, prefix="/api/v1", tags=["Domains"])
