"""FastAPI application factory for the FlowForge App Server."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flowforge.app_server.app_lifespan.app_lifespan_service import app_lifespan
from flowforge.app_server.config import get_global_config
from flowforge.app_server.invite.invite_router import router as invite_router
from flowforge.app_server.notification.notification_router import (
    router as notification_router,
)
from flowforge.app_server.project.project_router import router as project_router
from flowforge.app_server.team.team_router import router as team_router
from flowforge.app_server.user.user_router import router as user_router
from flowforge.core.errors import FlowForgeError
from flowforge.core.logger import setup_logging

logger = logging.getLogger(__name__)


async def flowforge_error_handler(
    request: Request, exc: FlowForgeError
) -> JSONResponse:
    """Map typed failures to a stable body without storage internals."""
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={'error': exc.code, 'detail': exc.message},
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    config = get_global_config()
    setup_logging(config.log_level)

    app = FastAPI(
        title='FlowForge',
        description='Team and project tracker with invite-based provisioning',
        lifespan=app_lifespan if use_lifespan else None,
    )
    app.add_exception_handler(FlowForgeError, flowforge_error_handler)
    app.include_router(user_router)
    app.include_router(invite_router)
    app.include_router(team_router)
    app.include_router(project_router)
    app.include_router(notification_router)
    return app
