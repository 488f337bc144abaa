"""Utility modules for ScopeAudit."""

from scopeaudit.utils.analysis_logger import (
    configure_logging,
    log_analysis_start,
    log_deviation,
    log_analysis_complete,
    log_analysis_failed,
)

__all__ = [
    "configure_logging",
    "log_analysis_start",
    "log_deviation",
    "log_analysis_complete",
    "log_analysis_failed",
]
