# backend/smartwork/core/errors.py

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class SmartWorkError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"
    default_message = "Internal error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if code:
            self.code = code


class InvalidInputError(SmartWorkError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_message = "Invalid input"


class UnauthenticatedError(SmartWorkError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Not authenticated"


class ForbiddenError(SmartWorkError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Not allowed"


class NotFoundError(SmartWorkError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class ConflictError(SmartWorkError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Already exists"


class InvariantViolationError(SmartWorkError):
    status_code = 422
    code = "invariant_violation"
    default_message = "Operation would break a system invariant"


class TransientInfraError(SmartWorkError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "transient"
    default_message = "Temporary failure, try again later"


def smartwork_error_handler(request: Request, exc: SmartWorkError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=InvalidInputError.status_code,
        content={"detail": "Invalid input", "code": InvalidInputError.code, "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
