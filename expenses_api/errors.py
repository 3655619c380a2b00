"""
Domain errors raised by the services.

Every error carries the HTTP status the API answers with; `main.py` maps
them to a `{"detail": ...}` body, the same shape FastAPI uses for
`HTTPException`.
"""


class ExpensesError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ExpensesError):
    status_code = 404

    def __init__(self, entity: str, message: str | None = None):
        super().__init__(message or f"{entity.capitalize()} not found.")
        self.entity = entity


class InvalidInputError(ExpensesError):
    status_code = 400


class ForbiddenError(ExpensesError):
    status_code = 403


class ConflictError(ExpensesError):
    status_code = 409


class StoreError(ExpensesError):
    """A read against the database failed."""

    status_code = 500
