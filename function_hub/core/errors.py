"""Error types shared by the API, the persistence clients and the submission controller."""
import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

DEPLOY_UNSUPPORTED_SOURCE = "deploy_unsupported_source"


class PersistenceError(Exception):
    """Base class for failures of a create/update/read/delete call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FunctionNotFoundError(PersistenceError):
    def __init__(self, function_id: str):
        super().__init__("Function not found", status.HTTP_404_NOT_FOUND)
        self.function_id = function_id


class InvalidInputError(PersistenceError):
    """The store rejected the record on its own re-validation."""

    def __init__(
        self,
        message: str = "Invalid input data",
        field_errors: Optional[Dict[str, str]] = None,
        code: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(message, status_code)
        self.field_errors = dict(field_errors or {})
        self.code = code


class PersistenceInternalError(PersistenceError):
    """Opaque server or transport failure."""


class SubmissionRejected(Exception):
    """Raised by SubmissionOutcome.raise_for_outcome() for field or policy rejections."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.field_errors = dict(field_errors or {})
        self.code = code


def register_exception_handlers(app: FastAPI) -> None:
    """Render store errors with the ``{"message": ...}`` bodies clients expect."""

    @app.exception_handler(FunctionNotFoundError)
    async def _not_found(request: Request, exc: FunctionNotFoundError):
        logger.warning(f"Function not found with ID: {exc.function_id}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": exc.message})

    @app.exception_handler(InvalidInputError)
    async def _invalid_input(request: Request, exc: InvalidInputError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
        content = {"message": exc.message}
        if exc.field_errors:
            content["errors"] = exc.field_errors
        if exc.code:
            content["code"] = exc.code
        return JSONResponse(status_code=exc.status_code or status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(PersistenceError)
    async def _persistence_error(request: Request, exc: PersistenceError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def _malformed_request(request: Request, exc: RequestValidationError):
        errors: Dict[str, str] = {}
        for error in exc.errors():
            loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            errors.setdefault(".".join(loc) or "body", error.get("msg", "Invalid value"))
        logger.info(f"Malformed request to {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid input data", "errors": errors},
        )
