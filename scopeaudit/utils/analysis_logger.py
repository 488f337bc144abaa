"""Analysis Logger for ScopeAudit.

Structured, greppable log events for deviation runs, plus the
structlog configuration used by the CLI.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog for command-line use.

    Log lines go to stderr so stdout carries only the analysis JSON.

    Args:
        level: Standard logging level name.
        json_output: Render JSON lines instead of console key/values.
    """
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def _truncate_large_values(data: Dict[str, Any], max_length: int = 200) -> Dict[str, Any]:
    """Truncate large string values for display purposes."""
    result = {}
    for key, value in data.items():
        if isinstance(value, str) and len(value) > max_length:
            result[key] = value[:max_length] + f"... [truncated {len(value) - max_length} chars]"
        else:
            result[key] = value
    return result


def log_analysis_start(
    estimate_id: Optional[str],
    line_item_count: int,
    directive_count: int,
    room_count: int,
) -> None:
    """Log the start of a deviation run."""
    logger.info(
        "deviation_analysis_started",
        estimate_id=estimate_id,
        line_item_count=line_item_count,
        directive_count=directive_count,
        room_count=room_count,
    )


def log_deviation(deviation_type: str, trade: str, severity: str, impact_min: float, impact_max: float) -> None:
    """Log a single emitted deviation."""
    logger.info(
        "deviation_emitted",
        deviation_type=deviation_type,
        trade=trade,
        severity=severity,
        impact_min=impact_min,
        impact_max=impact_max,
    )


def log_analysis_complete(
    estimate_id: Optional[str],
    deviation_count: int,
    exposure_min: float,
    exposure_max: float,
    calculation_method: str,
    warning_count: int,
) -> None:
    """Log a completed deviation run."""
    logger.info(
        "deviation_analysis_complete",
        estimate_id=estimate_id,
        deviation_count=deviation_count,
        exposure_min=exposure_min,
        exposure_max=exposure_max,
        calculation_method=calculation_method,
        warning_count=warning_count,
    )


def log_analysis_failed(estimate_id: Optional[str], error: Dict[str, Any]) -> None:
    """Log an aborted deviation run. No partial result exists."""
    logger.error(
        "deviation_analysis_failed",
        estimate_id=estimate_id,
        **_truncate_large_values(error),
    )
