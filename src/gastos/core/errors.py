"""Error codes and user-friendly messages.

This module defines the error catalog for the rule and import boundary.
Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable

The categorization engine itself never raises these; they only surface
where a request or a persistence operation cannot be honoured.
"""

ERROR_CATALOG: dict[str, dict] = {
    "RULE_001": {
        "code": "RULE_001",
        "message": "Categorization rule not found",
        "user_message": "We couldn't find this rule.",
        "suggestion": "Refresh the rule list and try again.",
        "retry_allowed": False,
    },
    "RULE_002": {
        "code": "RULE_002",
        "message": "Rule pattern is not a valid regular expression",
        "user_message": "The rule pattern is not a valid regular expression.",
        "suggestion": "Check brackets and special characters, or use a 'contains' rule instead.",
        "retry_allowed": False,
    },
    "RULE_003": {
        "code": "RULE_003",
        "message": "A rule with this id already exists",
        "user_message": "A rule with this identifier already exists.",
        "suggestion": "Edit the existing rule or choose a different identifier.",
        "retry_allowed": False,
    },
    "IMP_001": {
        "code": "IMP_001",
        "message": "Import batch contains no transactions",
        "user_message": "There are no transactions to import.",
        "suggestion": "Check that the statement was parsed correctly and try again.",
        "retry_allowed": False,
    },
    "TXN_001": {
        "code": "TXN_001",
        "message": "Transaction not found",
        "user_message": "We couldn't find this transaction.",
        "suggestion": "Please refresh and try again.",
        "retry_allowed": False,
    },
    "TXN_002": {
        "code": "TXN_002",
        "message": "Transaction fingerprint already stored",
        "user_message": "This transaction has already been imported.",
        "suggestion": "No action needed; the existing record was kept.",
        "retry_allowed": False,
    },
    "DB_001": {
        "code": "DB_001",
        "message": "Database operation failed",
        "user_message": "We couldn't save your changes due to a database error.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "DB_002": {
        "code": "DB_002",
        "message": "Resource already exists",
        "user_message": "This record already exists.",
        "suggestion": "Please check if the record was already created.",
        "retry_allowed": False,
    },
    "VAL_001": {
        "code": "VAL_001",
        "message": "Request data failed validation",
        "user_message": "Invalid input data.",
        "suggestion": "Please check your input and try again.",
        "retry_allowed": True,
    },
    "SYS_001": {
        "code": "SYS_001",
        "message": "Internal server error",
        "user_message": "An unexpected error occurred.",
        "suggestion": "Please try again later or contact support.",
        "retry_allowed": True,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details (a generic entry for unknown codes)
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def get_suggestion(error_code: str) -> str:
    """Get actionable suggestion for an error code."""
    return get_error(error_code)["suggestion"]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]
