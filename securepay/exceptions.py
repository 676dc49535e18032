"""
SecurePay exception hierarchy.

Data conditions (malformed persisted payloads, storage write failures,
broken hash chains) are reported through return values and never raised.
These exceptions cover programmer errors and lookups the application layer
has to reject.
"""


class SecurePayError(Exception):
    """Base exception for all SecurePay errors."""

    status_code: int = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class InvalidEngineInput(SecurePayError):
    """An engine was called with a missing collaborator (e.g. rules=None)."""


class UnknownTransaction(SecurePayError):
    """Referenced transaction is not in the scoring history."""

    status_code = 404

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Transaction {transaction_id} has not been scored",
            {"transaction_id": transaction_id},
        )
        self.transaction_id = transaction_id


class UnknownIntegrationTarget(SecurePayError):
    """Referenced alert integration target does not exist."""

    status_code = 404

    def __init__(self, target_id: str):
        super().__init__(
            f"Integration target {target_id} not found",
            {"target_id": target_id},
        )
        self.target_id = target_id
