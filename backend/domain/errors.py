"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py. Each carries a stable ``code`` so a rejected TipRecord can store
why it was rejected.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class PermissionDeniedError(DomainError):
    """Permission denied (403)."""
    code = "permission_denied"

    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class UnauthorizedError(DomainError):
    """Unauthorized access (401)."""
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class ConflictError(DomainError):
    """Resource conflict (409)."""
    code = "conflict"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


# ── Settlement errors ──────────────────────────────────────────────


class InvalidAmountError(ValidationError):
    """Tip amount is zero, negative or not an integer number of base units."""
    code = "invalid_amount"

    def __init__(self, message: str = "Tip amount must be a positive integer", details: dict | None = None):
        super().__init__(message, details=details)


class FeeConfigInvalidError(ValidationError):
    """Configured fees would leave the creator a non-positive amount."""
    code = "fee_config_invalid"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details=details)


class FeeOutOfBoundsError(ValidationError):
    """Custom fee setting outside the allowed basis-point range."""
    code = "fee_out_of_bounds"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details=details)


class InvalidAddressError(ValidationError):
    """Address or transaction identifier malformed for the target network."""
    code = "invalid_address"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        super().__init__(message, field=field, details=details)


class MemoTooLongError(ValidationError):
    """Tip memo longer than MEMO_MAX_LENGTH bytes once UTF-8 encoded."""
    code = "memo_too_long"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details=details)


class DuplicateTipError(ConflictError):
    """Tip id already settled (only raised when the caller asks for strict mode)."""
    code = "duplicate_tip"

    def __init__(self, tip_id: str, details: dict | None = None):
        super().__init__(f"Tip already settled: {tip_id}", details=details)
        self.tip_id = tip_id


class TipAlreadyRejectedError(ConflictError):
    """Tip id already reached the terminal rejected state."""
    code = "tip_rejected"

    def __init__(self, tip_id: str, details: dict | None = None):
        super().__init__(f"Tip was rejected and cannot be settled: {tip_id}", details=details)
        self.tip_id = tip_id


class SplitInvariantViolationError(DomainError):
    """Split components do not add up to the tip amount. Always a bug (500)."""
    code = "split_invariant_violation"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class SettlementFailedError(DomainError):
    """Settlement backend failed; no funds moved (502)."""
    code = "settlement_failed"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)
