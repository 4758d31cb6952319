"""
Engine error taxonomy.

Every failure raised by the engine carries a stable ``code``, a message and a
``details`` dict naming the affected identifier, so the HTTP layer can render a
specific response instead of a generic failure.
"""
from typing import Optional


class EngineError(Exception):
    """Base class for all engine errors."""

    status_code = 500

    def __init__(self, message: str, code: str, details: Optional[dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ForbiddenError(EngineError):
    """Caller lacks the capability string required by the operation."""

    status_code = 403

    def __init__(self, capability: str):
        super().__init__(
            message="Forbidden",
            code="FORBIDDEN",
            details={"capability": capability},
        )
        self.capability = capability


class NotFoundError(EngineError):
    status_code = 404

    def __init__(self, message: str, kind: str, identifier: str):
        super().__init__(message=message, code="NOT_FOUND", details={"kind": kind, "identifier": identifier})


class TableNotFoundError(NotFoundError):
    def __init__(self, table: str):
        super().__init__(f"Table '{table}' not found.", kind="table", identifier=table)
        self.table = table


class RecordNotFoundError(NotFoundError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"Record '{record_id}' not found in '{table}'.", kind="record", identifier=record_id)
        self.table = table


class ValidationFailedError(EngineError):
    """Request rejected before any SQL was generated."""

    status_code = 400

    def __init__(self, issues: list[dict]):
        summary = "; ".join(f"{i['field']}: {i['message']}" for i in issues)
        super().__init__(
            message=f"Validation failed: {summary}",
            code="VALIDATION_ERROR",
            details={"issues": issues},
        )
        self.issues = issues

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailedError":
        return cls([{"field": field, "message": message}])


class CatalogUnavailableError(EngineError):
    """The introspection reads themselves failed."""

    status_code = 503

    def __init__(self, table: Optional[str], reason: str):
        target = f"table '{table}'" if table else "schema"
        super().__init__(
            message=f"Catalog unavailable for {target}: {reason}",
            code="CATALOG_UNAVAILABLE",
            details={"table": table},
        )
        self.table = table


class QueryFailedError(EngineError):
    """Both the enriched and the fallback statement failed at execution time."""

    def __init__(self, table: str, cause: str, user_message: str, detail: str = ""):
        super().__init__(
            message=user_message,
            code="QUERY_FAILED",
            details={"table": table, "cause": cause},
        )
        self.table = table
        self.cause = cause
        self.user_message = user_message
        self.detail = detail
