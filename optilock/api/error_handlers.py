"""Error Handlers — exception handlers that surface lock signals over HTTP.

Invariants:
    - OptiLockError → structured JSON with its own http_status (conflict → 409)
    - StaleVersionConflict responses carry the expected version so clients can re-read
    - Store errors are not handled here: they reach the host app's own handlers

Design Decisions:
    - register_error_handlers(app) instead of a shipped app: the library is embedded
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from optilock.core.errors import OptiLockError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register optilock error handlers on the FastAPI app."""
    _register_optilock_error_handler(app)


def _register_optilock_error_handler(app: FastAPI) -> None:

    @app.exception_handler(OptiLockError)
    async def optilock_error_handler(request: Request, exc: OptiLockError):
        """Handle every optilock signal with its own status code."""
        level = (
            logging.WARNING if exc.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)
            else logging.ERROR
        )
        logger.log(
            level,
            f"OptiLockError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )
