"""Error taxonomy for the Customers API and its HTTP mapping."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class AppError(Exception):
    """Base class for errors that terminate a request with a known status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationFailed(AppError):
    """One or more field rules were violated; every violation is listed."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, details: list[str], message: str | None = None):
        super().__init__(message)
        self.details = list(details)

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class InvalidDateFilter(AppError):
    """A date query parameter could not be parsed."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Invalid date in {field}")

    def to_dict(self) -> dict:
        return {"error": self.message, "field": self.field}


class InvalidId(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid ID"


class MissingToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication token missing"
    headers = {"WWW-Authenticate": "Bearer"}


class InvalidToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication token invalid"
    headers = {"WWW-Authenticate": "Bearer"}


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class OldPasswordRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Old password is required to change email or password"


class OldPasswordIncorrect(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Old password is incorrect"


class DuplicateEmail(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email already registered"


class NotFound(AppError):
    """Missing entity, or an entity hidden by a scoping check."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Re-shape FastAPI body/parameter errors into ``ValidationFailed``."""
    details = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    logger.debug("Request validation failed: {}", details)
    error = ValidationFailed(details)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Attach the taxonomy's handlers to ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
