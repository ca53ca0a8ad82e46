"""
errors.py — Exceptions raised by the engagement engine.

Every error is scoped to a single call and surfaces synchronously to the
caller. Routes translate them into JSON error responses.
"""


class EngineError(Exception):
    """Base class for all engagement engine errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EngineError):
    status_code = 404

    def __init__(self, client_id):
        super().__init__(f"Client '{client_id}' not found.")
        self.client_id = client_id


class InvalidAmountError(EngineError):
    def __init__(self, amount):
        super().__init__(f"Payment amount must be a positive number, got {amount!r}.")
        self.amount = amount


class MissingReasonError(EngineError):
    def __init__(self, document_id: str):
        super().__init__(f"A rejection reason is required for document '{document_id}'.")
        self.document_id = document_id


class DuplicateClientError(EngineError):
    def __init__(self, field: str, value: str):
        super().__init__(f"A client with {field} '{value}' already exists.")
        self.field = field
        self.value = value
