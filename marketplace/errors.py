import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "InternalFailure"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


class Unauthenticated(MarketplaceError):
    code = "Unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(MarketplaceError):
    code = "Forbidden"
    status_code = 403
    default_message = "Access denied"


class NotFound(MarketplaceError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class DuplicateCredential(MarketplaceError):
    code = "DuplicateCredential"
    status_code = 400
    default_message = "User already exists"


class InvalidCredential(MarketplaceError):
    code = "InvalidCredential"
    status_code = 400
    default_message = "Invalid email or password"


class PreconditionFailed(MarketplaceError):
    code = "PreconditionFailed"
    status_code = 400
    default_message = "Action not allowed in the current state"


class ValidationFailed(MarketplaceError):
    code = "ValidationFailed"
    status_code = 400
    default_message = "Invalid request"


class InternalFailure(MarketplaceError):
    pass


# ==== Handlers ====
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = ValidationFailed("Missing or malformed fields", details=jsonable_encoder(exc.errors()))
    return JSONResponse(err.to_dict(), status_code=err.status_code)


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    err = InternalFailure()
    return JSONResponse(err.to_dict(), status_code=err.status_code)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
