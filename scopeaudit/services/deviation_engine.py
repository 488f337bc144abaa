"""
Room-Aware Quantity Deviation Engine for ScopeAudit.

Reconciles estimate line items, expert-report directives and measured
room geometry into severity-ranked, dollar-quantified deviations with a
full calculation trail.

The engine is a pure synchronous function of its arguments:
- no I/O and no module-level mutable state
- the injected CostBaseline is only read
- any validation error aborts the whole run; a partial analysis is
  never returned
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

import structlog

from scopeaudit.config.errors import ErrorCode, GeometryValidationError, ScopeAuditError
from scopeaudit.config.settings import DeviationPolicy, settings
from scopeaudit.models.deviation import (
    AnalysisMetadata,
    AttributionMode,
    Deviation,
    DeviationAnalysis,
    DeviationSource,
)
from scopeaudit.models.directive import Directive, ParsedReport, QuantityRule
from scopeaudit.models.estimate import ActionType, Estimate
from scopeaudit.models.room import Room
from scopeaudit.services.attribution import attribute_insulation_shortfall, attribute_wall_shortfall
from scopeaudit.services.cost_baseline import DEFAULT_COST_BASELINE, CostBaseline
from scopeaudit.services.deviation_calculator import (
    DRYWALL,
    INSULATION,
    ceiling_only_deviation,
    compare_against_dimensions,
    cut_height_deviation,
    deviation_surfaces,
    insulation_deviation,
    missing_trade_deviation,
    under_scoped_removal_deviation,
)
from scopeaudit.services.exposure_builder import build_deviation_analysis
from scopeaudit.services.geometry import (
    ExpectedQuantities,
    calculate_expected_quantities,
    ensure_valid_rooms,
)
from scopeaudit.services.height_reconciler import HEIGHT_RULES
from scopeaudit.utils.analysis_logger import (
    log_analysis_complete,
    log_analysis_failed,
    log_analysis_start,
    log_deviation,
)

logger = structlog.get_logger(__name__)


@dataclass
class ReportCheckResult:
    """Accumulated output of the directive pass."""

    deviations: List[Deviation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    attribution_modes: List[AttributionMode] = field(default_factory=list)
    room_positions_mapped: List[int] = field(default_factory=list)
    items_unmapped: int = 0


# =============================================================================
# Directive Pass
# =============================================================================


def _check_drywall_directive(
    directive: Directive,
    estimate: Estimate,
    rooms: Sequence[Room],
    quantities: ExpectedQuantities,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
    result: ReportCheckResult,
) -> None:
    rule = directive.quantity_rule
    if rule == QuantityRule.SPECIFIC_AREA:
        result.warnings.append(
            f"Directive for {directive.display_trade} specifies a specific area; "
            f"not height-resolvable, excluded from height-based checks"
        )
        return

    removal_items = [
        item for item in estimate.items_for_trade(DRYWALL)
        if item.action_type == ActionType.REMOVE
    ]
    if not removal_items:
        result.deviations.append(under_scoped_removal_deviation(directive, policy))
        return

    if rule == QuantityRule.CEILING_ONLY:
        deviation = ceiling_only_deviation(directive, removal_items, quantities, cost_baseline, policy)
        if deviation is not None:
            result.deviations.append(deviation)
        return

    if rule in HEIGHT_RULES:
        shortfall = attribute_wall_shortfall(removal_items, rooms, rule)
        result.warnings.extend(shortfall.warnings)
        result.attribution_modes.append(shortfall.mode)
        result.room_positions_mapped.extend(shortfall.room_positions_mapped)
        result.items_unmapped += shortfall.items_unmapped
        deviation = cut_height_deviation(directive, shortfall, cost_baseline, policy)
        if deviation is not None:
            result.deviations.append(deviation)


def _check_insulation_directive(
    directive: Directive,
    estimate: Estimate,
    rooms: Sequence[Room],
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
    result: ReportCheckResult,
) -> None:
    shortfall = attribute_insulation_shortfall(estimate.items_for_trade(INSULATION), rooms)
    result.warnings.extend(shortfall.warnings)
    result.attribution_modes.append(shortfall.mode)
    result.room_positions_mapped.extend(shortfall.room_positions_mapped)
    result.items_unmapped += shortfall.items_unmapped
    deviation = insulation_deviation(directive, shortfall, cost_baseline, policy)
    if deviation is not None:
        result.deviations.append(deviation)


def compare_against_report(
    estimate: Estimate,
    directives: Sequence[Directive],
    rooms: Sequence[Room],
    quantities: ExpectedQuantities,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
) -> ReportCheckResult:
    """Evaluate every measurable directive against the estimate."""
    result = ReportCheckResult()

    for directive in directives:
        if not directive.measurable:
            continue

        trade = directive.trade.upper()
        if not estimate.has_trade(trade):
            result.deviations.append(missing_trade_deviation(directive, policy))
            continue

        if trade == DRYWALL and directive.quantity_rule is not None:
            _check_drywall_directive(directive, estimate, rooms, quantities, cost_baseline, policy, result)
        elif trade == INSULATION:
            _check_insulation_directive(directive, estimate, rooms, cost_baseline, policy, result)

    return result


def _mark_corroborated(deviations: List[Deviation], surfaces: Set[str]) -> List[Deviation]:
    """Set source=BOTH on directive deviations the dimensions agree with."""
    marked: List[Deviation] = []
    for deviation in deviations:
        if (
            surfaces.intersection(deviation_surfaces(deviation))
            and deviation.source == DeviationSource.REPORT
        ):
            deviation = deviation.model_copy(update={"source": DeviationSource.BOTH})
        marked.append(deviation)
    return marked


def _confidence_warnings(
    estimate: Estimate,
    report: Optional[ParsedReport],
    policy: DeviationPolicy,
) -> List[str]:
    warnings: List[str] = []
    if estimate.parse_confidence < policy.low_confidence_threshold:
        warnings.append(
            f"Estimate parse confidence {estimate.parse_confidence:.0%} is below "
            f"{policy.low_confidence_threshold:.0%}"
        )
    if report is not None and report.confidence < policy.low_confidence_threshold:
        warnings.append(
            f"Report directive confidence {report.confidence:.0%} is below "
            f"{policy.low_confidence_threshold:.0%}"
        )
    return warnings


def _resolve_policy(policy: Optional[DeviationPolicy]) -> DeviationPolicy:
    """Injected policy, or the environment default, checked for tier ordering.

    Raises:
        ScopeAuditError: INVALID_POLICY for unparseable or inverted thresholds.
    """
    try:
        policy = policy or settings.policy
        policy.validate()
    except ValueError as e:
        raise ScopeAuditError(
            code=ErrorCode.INVALID_POLICY,
            message=str(e),
            details={"remediation": "Fix the DEVIATION_* settings or the injected policy"},
        ) from e
    return policy


# =============================================================================
# Entry Point
# =============================================================================


def analyze_deviations(
    estimate: Estimate,
    report: Optional[ParsedReport] = None,
    rooms: Optional[Sequence[Room]] = None,
    cost_baseline: CostBaseline = DEFAULT_COST_BASELINE,
    policy: Optional[DeviationPolicy] = None,
) -> DeviationAnalysis:
    """Audit an estimate against report directives and room geometry.

    Args:
        estimate: Structured estimate (already parsed and gated upstream).
        report: Extracted directives; only measurable ones are evaluated.
        rooms: Measured rooms in caller order (the room-mapping tie-break).
        cost_baseline: Versioned unit costs used to price shortfalls.
        policy: Severity thresholds and fixed bands; defaults from settings.

    Returns:
        A frozen DeviationAnalysis.

    Raises:
        GeometryValidationError: invalid rooms, zero perimeter, inferred
            height above the ceiling, or directives without dimensions.
        ScopeAuditError: INVALID_POLICY for a malformed or inverted policy.
    """
    rooms = list(rooms or [])
    directives = list(report.directives) if report else []
    measurable = [d for d in directives if d.measurable]

    log_analysis_start(estimate.estimate_id, len(estimate.line_items), len(directives), len(rooms))

    try:
        policy = _resolve_policy(policy)

        if measurable and not rooms:
            raise GeometryValidationError(
                code=ErrorCode.DIMENSIONS_REQUIRED,
                message=(
                    "Dimension data required for report directive comparison. "
                    "Cannot calculate height-based deviations without room measurements."
                ),
                remediation="Supply room dimensions with the report",
            )

        warnings: List[str] = []
        quantities: Optional[ExpectedQuantities] = None
        if rooms:
            warnings.extend(ensure_valid_rooms(rooms, policy))
            quantities = calculate_expected_quantities(rooms)
        warnings.extend(_confidence_warnings(estimate, report, policy))

        report_result = ReportCheckResult()
        if measurable:
            report_result = compare_against_report(
                estimate, measurable, rooms, quantities, cost_baseline, policy
            )
            warnings.extend(report_result.warnings)

        deviations = list(report_result.deviations)
        comparisons_performed = 0
        if quantities is not None:
            covered = {surface for d in deviations for surface in deviation_surfaces(d)}
            dimension_deviations, corroborated, comparisons_performed = compare_against_dimensions(
                estimate, quantities, cost_baseline, policy, covered
            )
            deviations = _mark_corroborated(deviations, corroborated) + dimension_deviations

        if AttributionMode.AGGREGATE in report_result.attribution_modes:
            logger.warning("aggregate_fallback_used", estimate_id=estimate.estimate_id)

        metadata = AnalysisMetadata(
            report_directives_checked=len(measurable),
            dimension_comparisons_performed=comparisons_performed,
            rooms_mapped=len(set(report_result.room_positions_mapped)),
            items_unmapped=report_result.items_unmapped,
        )
    except ScopeAuditError as e:
        log_analysis_failed(estimate.estimate_id, e.to_dict())
        raise

    for deviation in deviations:
        log_deviation(
            deviation.deviation_type.value,
            deviation.trade,
            deviation.severity.value,
            deviation.impact_min,
            deviation.impact_max,
        )

    analysis = build_deviation_analysis(
        deviations=deviations,
        rooms=rooms,
        quantities=quantities,
        attribution_modes=report_result.attribution_modes,
        warnings=warnings,
        cost_baseline_version=cost_baseline.version,
        metadata=metadata,
    )

    log_analysis_complete(
        estimate.estimate_id,
        len(analysis.deviations),
        analysis.total_deviation_exposure_min,
        analysis.total_deviation_exposure_max,
        analysis.audit_trail.calculation_method.value,
        len(analysis.audit_trail.warnings),
    )
    return analysis
