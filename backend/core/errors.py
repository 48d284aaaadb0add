"""Domain exceptions and the handlers that turn them into JSON responses.

Every error leaves the API as ``{"success": false, "message": ...}`` with the
status code owned by the exception class.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainException(Exception):
    """Base class for errors raised by services and routes."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(DomainException):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DomainException):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(DomainException):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainException):
    """Raised when a slot fails an availability or overlap check."""

    status_code = status.HTTP_409_CONFLICT


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'message': message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug('Rejected request to %s: %s', request.url.path, exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, 'Invalid input data')

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception('Unhandled error on %s %s', request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Internal server error')
