# backend/activityhub/api/errors.py
"""
Domain exception to HTTP translation.

Routes catch ``DomainException`` and call ``handle_domain_exception``; the
app-level handler covers anything raised outside a route body (dependencies,
background code paths).
"""

import logging
from typing import NoReturn

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..core.exceptions import DomainException

logger = logging.getLogger(__name__)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        if http_exc.status_code >= 500:
            logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(
            status_code=http_exc.status_code,
            content={"detail": http_exc.detail},
            headers=http_exc.headers,
        )
