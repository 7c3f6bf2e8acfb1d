"""Application-level exceptions and FastAPI exception handlers."""


from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str | None = None):
        msg = f"{entity} not found" if not entity_id else f"{entity} '{entity_id}' not found"
        super().__init__(
            msg,
            status_code=404,
            code="NOT_FOUND",
            details={"entity": entity, "id": entity_id},
        )

class UnauthorizedError(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")

class ConflictError(AppException):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=409, code="CONFLICT", details=details)

class InvalidInputError(AppException):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=422, code="INVALID_INPUT", details=details)

class InvalidTransitionError(AppException):
    """Status change not in the allowed transition table."""

    def __init__(self, entity: str, entity_id: str, current: str, target: str):
        super().__init__(
            f"Invalid status transition for {entity} '{entity_id}' from {current} to {target}",
            status_code=409,
            code="INVALID_TRANSITION",
            details={"entity": entity, "id": entity_id, "current": current, "target": target},
        )

class RequestClosedError(AppException):
    """Mutation or access attempted against a doc request that no longer accepts it."""

    def __init__(self, doc_request_id: str, current: str):
        super().__init__(
            f"Document request '{doc_request_id}' is {current}",
            status_code=409,
            code="REQUEST_CLOSED",
            details={"id": doc_request_id, "current": current, "expected": "OPEN"},
        )

class ReplaceDeniedError(AppException):
    def __init__(self, upload_id: str, current: str):
        super().__init__(
            f"Cannot replace upload '{upload_id}' with status {current}",
            status_code=409,
            code="REPLACE_DENIED",
            details={"id": upload_id, "current": current, "expected": "RECEIVED"},
        )

class MissingDocumentsError(AppException):
    def __init__(self, doc_request_id: str, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Missing required documents: {', '.join(missing)}",
            status_code=409,
            code="MISSING_DOCUMENTS",
            details={"id": doc_request_id, "missing": missing},
        )

# ---------------------------------------------------------------------------
# Token resolution failures
# ---------------------------------------------------------------------------

class TokenRevokedError(AppException):
    def __init__(self, token_id: str | None = None):
        super().__init__(
            "Token has been revoked", status_code=410, code="TOKEN_REVOKED",
            details={"id": token_id},
        )

class TokenAlreadyUsedError(AppException):
    def __init__(self, token_id: str | None = None):
        super().__init__(
            "Token has already been used", status_code=410, code="TOKEN_ALREADY_USED",
            details={"id": token_id},
        )

class TokenExpiredError(AppException):
    def __init__(self, token_id: str | None = None, message: str = "Token has expired"):
        super().__init__(
            message, status_code=410, code="TOKEN_EXPIRED", details={"id": token_id},
        )

# ---------------------------------------------------------------------------
# Internal signal (never reaches the HTTP layer)
# ---------------------------------------------------------------------------

class StaleStateError(Exception):
    """A conditional write matched zero rows because another caller moved first."""

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict:
    body: dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    return {"error": body}

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                {"errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                    for err in exc.errors()
                ]},
            ),
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=_error_body("NOT_FOUND", "Resource not found"),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )
