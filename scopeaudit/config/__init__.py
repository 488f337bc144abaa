"""ScopeAudit configuration.

This package contains:
- settings: Environment variables and deviation policy
- errors: Custom exceptions and error codes
"""

from scopeaudit.config.settings import settings, Settings, DeviationPolicy
from scopeaudit.config.errors import (
    ErrorCode,
    ScopeAuditError,
    ValidationError,
    GeometryValidationError,
)

__all__ = [
    "settings",
    "Settings",
    "DeviationPolicy",
    "ErrorCode",
    "ScopeAuditError",
    "ValidationError",
    "GeometryValidationError",
]
