"""Custom exception classes for the rule and import boundary.

Each exception maps to a specific error code defined in errors.py. The
engine modules report failures as data (``None``, ``False`` or a low
confidence result); these exceptions are raised by the services and the
HTTP layer only.
"""

from typing import Any


class GastosError(Exception):
    """Base exception for all boundary errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "RULE_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int = 500,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status
        super().__init__(error_code)


class RuleNotFoundError(GastosError):
    """Raised when a rule id does not exist in the store (RULE_001)."""

    def __init__(self, rule_id: str):
        super().__init__("RULE_001", {"rule_id": rule_id}, http_status=404)


class InvalidRuleError(GastosError):
    """Raised when a rule definition is rejected at the boundary.

    Invalid regex patterns (RULE_002), duplicate ids (RULE_003) and
    updates that leave a rule invalid (VAL_001).
    """

    pass


class EmptyBatchError(GastosError):
    """Raised when an import request carries no transactions (IMP_001)."""

    def __init__(self):
        super().__init__("IMP_001", http_status=400)


class TransactionNotFoundError(GastosError):
    """Raised when a stored transaction cannot be found (TXN_001)."""

    def __init__(self, transaction_id: Any):
        super().__init__("TXN_001", {"transaction_id": str(transaction_id)}, http_status=404)


class DuplicateTransactionError(GastosError):
    """Raised when a fingerprint is already stored (TXN_002).

    A fingerprint collision is a definite duplicate (confidence 100).
    """

    def __init__(self, fingerprint: str):
        super().__init__("TXN_002", {"fingerprint": fingerprint}, http_status=409)
        self.fingerprint = fingerprint
