from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SiteStockError(Exception):
    """Erreur métier. `field` désigne la ligne ou le champ fautif."""

    status_code = 400

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotFound(SiteStockError):
    status_code = 404


class ValidationFailure(SiteStockError):
    status_code = 400


class InvalidTransition(ValidationFailure):
    """Transition d'état demandée depuis un état non initial."""


class Conflict(SiteStockError):
    status_code = 409


class PermissionDenied(SiteStockError):
    status_code = 403


def setup_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(SiteStockError)
    async def sitestock_error_handler(request: Request, exc: SiteStockError):
        logger.warning(
            "%s %s rejected: %s (field=%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.field,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "field": exc.field},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
