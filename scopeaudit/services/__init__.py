"""ScopeAudit services."""

from scopeaudit.services.cost_baseline import (
    COST_BASELINE_VERSION,
    DEFAULT_COST_BASELINE,
    CostBaseline,
    ExposureRange,
    UnitCostRange,
)
from scopeaudit.services.deviation_engine import analyze_deviations

__all__ = [
    "COST_BASELINE_VERSION",
    "DEFAULT_COST_BASELINE",
    "CostBaseline",
    "ExposureRange",
    "UnitCostRange",
    "analyze_deviations",
]
