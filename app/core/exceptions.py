import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AppException(Exception):
    kind = "app_error"

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AppException):
    kind = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class VisitNotFound(NotFoundError):
    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__(f"Visit {visit_id} not found")


class ExecutiveNotFound(NotFoundError):
    def __init__(self, executive_id: str):
        self.executive_id = executive_id
        super().__init__(f"Executive {executive_id} not found or inactive")


class ValidationError(AppException):
    kind = "validation_error"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code)


class VisitorDataInvalid(ValidationError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing visitor fields: {', '.join(missing)}", status_code=422)


class NoFieldsProvided(ValidationError):
    def __init__(self):
        super().__init__("No valid fields to update")


class IllegalTransition(ValidationError):
    kind = "illegal_transition"

    def __init__(self, axis: str, current: str, requested: str):
        self.axis = axis
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {axis} from {current} to {requested}", status_code=422)


class NoExecutivesAvailable(AppException):
    kind = "no_executives_available"

    def __init__(self):
        super().__init__("No executives found in database. Please add executives first.", status_code=409)


class PersistenceError(AppException):
    kind = "persistence_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def _app_exception_handler(_: Request, exc: AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(_: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={"error": ValidationError.kind, "message": "; ".join(problems) or "Invalid request"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def _database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("database error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": PersistenceError.kind, "message": "Database operation failed"},
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "Internal server error"},
        )
