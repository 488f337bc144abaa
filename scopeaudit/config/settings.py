"""ScopeAudit configuration settings.

Loads configuration from environment variables with sensible defaults.
Every threshold the deviation engine applies lives in DeviationPolicy so
callers can swap policy without touching engine code.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file for non-secret configuration (thresholds, log level)
load_dotenv()


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class DeviationPolicy:
    """Severity thresholds, exposure bands and sanity limits.

    The SF/percent cutoffs have no published derivation; they are
    defaults, not law, and are overridable via DEVIATION_* variables.
    """

    # Directive-based drywall wall delta (SF)
    wall_critical_delta_sf: float = field(default_factory=lambda: _env_float("DEVIATION_WALL_CRITICAL_SF", "400"))
    wall_high_delta_sf: float = field(default_factory=lambda: _env_float("DEVIATION_WALL_HIGH_SF", "200"))

    # Directive-based insulation delta (SF)
    insulation_critical_delta_sf: float = field(default_factory=lambda: _env_float("DEVIATION_INSULATION_CRITICAL_SF", "500"))
    insulation_high_delta_sf: float = field(default_factory=lambda: _env_float("DEVIATION_INSULATION_HIGH_SF", "200"))

    # Directive-based ceiling delta (SF)
    ceiling_high_delta_sf: float = field(default_factory=lambda: _env_float("DEVIATION_CEILING_HIGH_SF", "200"))

    # Dimension comparisons (percent of expected quantity)
    variance_threshold_pct: float = field(default_factory=lambda: _env_float("DEVIATION_VARIANCE_PCT", "20"))
    variance_escalation_pct: float = field(default_factory=lambda: _env_float("DEVIATION_VARIANCE_ESCALATION_PCT", "40"))

    # Fixed exposure bands ($)
    missing_trade_min: float = field(default_factory=lambda: _env_float("DEVIATION_MISSING_TRADE_MIN", "1000"))
    missing_trade_max: float = field(default_factory=lambda: _env_float("DEVIATION_MISSING_TRADE_MAX", "5000"))
    under_scoped_removal_min: float = field(default_factory=lambda: _env_float("DEVIATION_UNDER_SCOPED_MIN", "2000"))
    under_scoped_removal_max: float = field(default_factory=lambda: _env_float("DEVIATION_UNDER_SCOPED_MAX", "8000"))

    # Informational warnings
    low_confidence_threshold: float = field(default_factory=lambda: _env_float("DEVIATION_LOW_CONFIDENCE", "0.70"))
    max_room_length_ft: float = field(default_factory=lambda: _env_float("DEVIATION_MAX_ROOM_LENGTH_FT", "100"))
    max_room_height_ft: float = field(default_factory=lambda: _env_float("DEVIATION_MAX_ROOM_HEIGHT_FT", "20"))

    def validate(self) -> None:
        """Validate threshold ordering.

        Raises:
            ValueError: If a tier cutoff is below the tier beneath it.
        """
        if self.wall_critical_delta_sf < self.wall_high_delta_sf:
            raise ValueError("wall_critical_delta_sf must be >= wall_high_delta_sf")
        if self.insulation_critical_delta_sf < self.insulation_high_delta_sf:
            raise ValueError("insulation_critical_delta_sf must be >= insulation_high_delta_sf")
        if self.variance_escalation_pct < self.variance_threshold_pct:
            raise ValueError("variance_escalation_pct must be >= variance_threshold_pct")
        if self.missing_trade_min > self.missing_trade_max:
            raise ValueError("missing_trade_min must be <= missing_trade_max")
        if self.under_scoped_removal_min > self.under_scoped_removal_max:
            raise ValueError("under_scoped_removal_min must be <= under_scoped_removal_max")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def policy(self) -> DeviationPolicy:
        """Default policy used when a caller does not inject one.

        Read from the environment on each access, so a malformed DEVIATION_*
        value surfaces when the engine runs rather than at import.
        """
        return DeviationPolicy()


# Singleton settings instance
settings = Settings()
