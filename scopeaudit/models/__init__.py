"""ScopeAudit data models."""

from scopeaudit.models.room import Room, RoomGeometryCalculation
from scopeaudit.models.estimate import ActionType, LineItem, Estimate
from scopeaudit.models.directive import (
    QuantityRule,
    DirectivePriority,
    Directive,
    ParsedReport,
)
from scopeaudit.models.deviation import (
    DeviationType,
    Severity,
    DeviationSource,
    AttributionMode,
    Deviation,
    AuditTrail,
    AnalysisMetadata,
    DeviationAnalysis,
)

__all__ = [
    "Room",
    "RoomGeometryCalculation",
    "ActionType",
    "LineItem",
    "Estimate",
    "QuantityRule",
    "DirectivePriority",
    "Directive",
    "ParsedReport",
    "DeviationType",
    "Severity",
    "DeviationSource",
    "AttributionMode",
    "Deviation",
    "AuditTrail",
    "AnalysisMetadata",
    "DeviationAnalysis",
]
