"""Exposure and Audit Trail Builder for ScopeAudit.

Aggregates already-validated deviations into totals, severity counts, a
summary sentence and the geometry audit trail. Performs no validation of
its own.
"""

from typing import Dict, List, Optional, Sequence
import math

from scopeaudit.models.deviation import (
    AnalysisMetadata,
    AttributionMode,
    AuditTrail,
    Deviation,
    DeviationAnalysis,
    Severity,
)
from scopeaudit.models.room import Room, RoomGeometryCalculation
from scopeaudit.services.deviation_calculator import sum_exposure
from scopeaudit.services.geometry import ExpectedQuantities


def _round_dollars(value: float) -> float:
    """Round half up to whole dollars."""
    return float(math.floor(value + 0.5))


def count_by_severity(deviations: Sequence[Deviation]) -> Dict[Severity, int]:
    counts = {severity: 0 for severity in Severity}
    for deviation in deviations:
        counts[deviation.severity] += 1
    return counts


def combine_attribution_modes(modes: Sequence[AttributionMode]) -> AttributionMode:
    """Run-level method: the shared mode, HYBRID if checks disagree.

    AGGREGATE when no room-attributed check ran (dimension comparisons
    are aggregate by construction).
    """
    distinct = set(modes)
    if not distinct:
        return AttributionMode.AGGREGATE
    if len(distinct) == 1:
        return next(iter(distinct))
    return AttributionMode.HYBRID


def build_summary(deviations: Sequence[Deviation], total_min: float, total_max: float) -> str:
    if not deviations:
        return "No significant deviations detected between estimate and reference data."

    critical = sum(1 for d in deviations if d.severity == Severity.CRITICAL)
    high = sum(1 for d in deviations if d.severity == Severity.HIGH)

    summary = (
        f"Identified {len(deviations)} deviation(s) with estimated financial impact of "
        f"${total_min:,.0f} - ${total_max:,.0f}."
    )
    if critical:
        summary += f" {critical} critical deviation(s) require immediate attention."
    if high:
        summary += f" {high} high-priority deviation(s) identified."
    return summary


def collect_geometry(deviations: Sequence[Deviation]) -> List[RoomGeometryCalculation]:
    rows: List[RoomGeometryCalculation] = []
    for deviation in deviations:
        if deviation.room_geometry:
            rows.extend(deviation.room_geometry)
    return rows


def build_deviation_analysis(
    deviations: Sequence[Deviation],
    rooms: Optional[Sequence[Room]],
    quantities: Optional[ExpectedQuantities],
    attribution_modes: Sequence[AttributionMode],
    warnings: Sequence[str],
    cost_baseline_version: str,
    metadata: AnalysisMetadata,
) -> DeviationAnalysis:
    """Assemble the frozen DeviationAnalysis for one run."""
    exposure = sum_exposure(deviations)
    total_min = _round_dollars(exposure.min)
    total_max = _round_dollars(exposure.max)
    counts = count_by_severity(deviations)

    audit_trail = AuditTrail(
        dimensions_used=quantities is not None,
        room_count=len(rooms or []),
        per_room_calculations=collect_geometry(deviations),
        total_perimeter=round(quantities.total_perimeter_lf, 2) if quantities else 0.0,
        avg_ceiling_height=round(quantities.avg_ceiling_height, 2) if quantities else 0.0,
        calculation_method=combine_attribution_modes(attribution_modes),
        warnings=list(warnings),
        cost_baseline_version=cost_baseline_version,
    )

    return DeviationAnalysis(
        deviations=list(deviations),
        total_deviation_exposure_min=total_min,
        total_deviation_exposure_max=total_max,
        critical_count=counts[Severity.CRITICAL],
        high_count=counts[Severity.HIGH],
        severity_counts=counts,
        summary=build_summary(deviations, total_min, total_max),
        audit_trail=audit_trail,
        metadata=metadata.model_copy(update={"deviations_found": len(deviations)}),
    )
