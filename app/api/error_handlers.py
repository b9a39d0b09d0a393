"""
app/api/error_handlers.py

Maps the VRT error taxonomy onto HTTP responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import NotFoundError, PreconditionError, ValidationError, VRTError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, exc: VRTError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.code, "message": str(exc)},
    )


def register_exception_handlers(application: FastAPI) -> None:
    """
    Register handlers returning the `{success, error, message}` envelope.
    """

    @application.exception_handler(ValidationError)
    def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, exc)

    @application.exception_handler(RequestValidationError)
    def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(item) for item in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": ValidationError.code, "message": details},
        )

    @application.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @application.exception_handler(PreconditionError)
    def _precondition(request: Request, exc: PreconditionError) -> JSONResponse:
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @application.exception_handler(VRTError)
    def _vrt_error(request: Request, exc: VRTError) -> JSONResponse:
        logger.error("Request failed: %s: %s", type(exc).__name__, exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)
