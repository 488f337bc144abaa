"""ScopeAudit error handling.

Custom exceptions and error codes for the deviation engine.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SCHEMA = "INVALID_SCHEMA"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"

    # Geometry Errors (2xxx)
    INVALID_PERIMETER = "INVALID_PERIMETER"
    INVALID_ROOM_DIMENSIONS = "INVALID_ROOM_DIMENSIONS"
    HEIGHT_EXCEEDS_CEILING = "HEIGHT_EXCEEDS_CEILING"
    DIMENSIONS_REQUIRED = "DIMENSIONS_REQUIRED"

    # Calculation Errors (3xxx)
    CALCULATION_ERROR = "CALCULATION_ERROR"
    COST_DATA_ERROR = "COST_DATA_ERROR"

    # Configuration Errors (4xxx)
    INVALID_POLICY = "INVALID_POLICY"


class ScopeAuditError(Exception):
    """Base exception for ScopeAudit errors.

    Provides structured error information for callers and reports.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize ScopeAuditError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"ScopeAuditError(code={self.code!r}, message={self.message!r})"


class ValidationError(ScopeAuditError):
    """Validation-specific error."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: str = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class GeometryValidationError(ValidationError):
    """Room geometry or derived-height validation failure.

    Always fatal: the whole deviation run is aborted and no analysis is
    returned.
    """

    def __init__(
        self,
        code: str,
        message: str,
        room_name: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        extra: Dict[str, Any] = dict(details or {})
        if room_name is not None:
            extra["room_name"] = room_name
        if remediation:
            extra["remediation"] = remediation
        super().__init__(message=message, details=extra, code=code)
        self.room_name = room_name
        self.remediation = remediation

    def __repr__(self) -> str:
        return (
            f"GeometryValidationError(code={self.code!r}, "
            f"room_name={self.room_name!r}, message={self.message!r})"
        )
