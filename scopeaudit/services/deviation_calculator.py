"""
Deviation Calculator for ScopeAudit.

Computes shortfalls between what a directive or the room geometry
requires and what the estimate carries, classifies severity, and prices
the shortfall through the injected cost baseline.

Rules that hold for every check:
- delta <= 0 never produces a Deviation
- no pricing data for a trade/unit/material means no Deviation
- height inference failures are fatal (GeometryValidationError)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog

from scopeaudit.config.settings import DeviationPolicy
from scopeaudit.models.deviation import (
    AttributionMode,
    Deviation,
    DeviationSource,
    DeviationType,
    Severity,
)
from scopeaudit.models.directive import Directive, DirectivePriority, QuantityRule
from scopeaudit.models.estimate import ActionType, Estimate, LineItem
from scopeaudit.models.room import RoomGeometryCalculation
from scopeaudit.services.cost_baseline import CostBaseline, ExposureRange, UnitCostRange
from scopeaudit.services.geometry import ExpectedQuantities, require_positive_perimeter
from scopeaudit.services.height_reconciler import TargetHeight, infer_height
from scopeaudit.services.line_item_classifier import classify_wall_vs_ceiling

logger = structlog.get_logger(__name__)

# Trade codes
DRYWALL = "DRY"
INSULATION = "INS"
MOLDING = "MLD"
FLOORING_TRADES = ("FLR", "CRP", "VCT", "TIL", "WDP")

# Material specs queried from the cost baseline
DRYWALL_REPLACE_SPEC = "REPLACE_1/2"
DRYWALL_CEILING_SPEC = "CEILING"
INSULATION_SPEC = "BATT_R13"
FLOORING_SPEC = "STANDARD"
BASEBOARD_SPEC = "BASEBOARD"

# Surfaces shared by directive checks and dimension comparisons
SURFACE_DRYWALL_WALLS = "DRYWALL_WALLS"
SURFACE_DRYWALL_CEILING = "DRYWALL_CEILING"
SURFACE_INSULATION = "INSULATION"
SURFACE_FLOORING = "FLOORING"
SURFACE_BASEBOARD = "BASEBOARD"

DEVIATION_SURFACES: Dict[DeviationType, str] = {
    DeviationType.INSUFFICIENT_CUT_HEIGHT: SURFACE_DRYWALL_WALLS,
    DeviationType.MISSING_CEILING: SURFACE_DRYWALL_CEILING,
    DeviationType.MISSING_INSULATION: SURFACE_INSULATION,
}

# A trade missing outright accounts for every surface of its family
TRADE_SURFACES: Dict[str, Tuple[str, ...]] = {
    DRYWALL: (SURFACE_DRYWALL_WALLS, SURFACE_DRYWALL_CEILING),
    INSULATION: (SURFACE_INSULATION,),
    MOLDING: (SURFACE_BASEBOARD,),
    **{code: (SURFACE_FLOORING,) for code in FLOORING_TRADES},
}


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class UnitDelta:
    """Delta for one room or pseudo-room, unrounded, plus its audit row."""

    delta_sf: float
    estimate_sf: float
    required_sf: float
    geometry: RoomGeometryCalculation


@dataclass(frozen=True)
class AttributedShortfall:
    """
    Summed shortfall for one check after room attribution.

    Attributes:
        mode: Attribution mode the controller chose
        total_delta_sf: Net shortfall across rooms (may be <= 0)
        estimate_sf: Total estimate quantity considered
        geometry: Audit rows (positive-delta rooms plus any unmapped credit)
        warnings: Non-fatal notes raised while attributing
        rooms_mapped: Names of rooms that received at least one line item
        room_positions_mapped: Positions of those rooms in the room list
        items_unmapped: Line items that matched no room
    """

    mode: AttributionMode
    total_delta_sf: float
    estimate_sf: float
    geometry: List[RoomGeometryCalculation]
    warnings: List[str] = field(default_factory=list)
    rooms_mapped: List[str] = field(default_factory=list)
    room_positions_mapped: List[int] = field(default_factory=list)
    items_unmapped: int = 0

    @property
    def required_sf(self) -> float:
        return self.estimate_sf + self.total_delta_sf


@dataclass(frozen=True)
class DimensionComparison:
    """One aggregate estimate-vs-geometry comparison."""

    surface: str
    estimate_value: float
    expected_value: float

    @property
    def variance(self) -> float:
        return self.expected_value - self.estimate_value

    @property
    def variance_pct(self) -> float:
        if self.expected_value <= 0:
            return 0.0
        return self.variance / self.expected_value * 100


# =============================================================================
# Severity Policy
# =============================================================================


def classify_delta_severity(delta_sf: float, critical_sf: float, high_sf: float) -> Severity:
    """> critical_sf -> CRITICAL, > high_sf -> HIGH, else MODERATE."""
    if delta_sf > critical_sf:
        return Severity.CRITICAL
    if delta_sf > high_sf:
        return Severity.HIGH
    return Severity.MODERATE


def classify_variance_severity(
    variance_pct: float,
    escalation_pct: float,
    upper: Severity,
    lower: Severity,
) -> Severity:
    return upper if variance_pct > escalation_pct else lower


def severity_for_priority(priority: DirectivePriority) -> Severity:
    return Severity.CRITICAL if priority == DirectivePriority.CRITICAL else Severity.HIGH


# =============================================================================
# Formatting
# =============================================================================


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _rate(cost: Optional[UnitCostRange], unit: str) -> str:
    if cost is None:
        return ""
    return f" × ${cost.min:g}-{cost.max:g}/{unit}"


# =============================================================================
# Per-Room Delta
# =============================================================================


def compute_wall_delta(
    label: str,
    perimeter_lf: float,
    ceiling_height: float,
    estimate_wall_sf: float,
    target: TargetHeight,
    ceiling_included: bool = False,
) -> UnitDelta:
    """Required minus estimated wall SF for one room or pseudo-room.

    delta = target height x perimeter - estimated wall SF. The estimate's
    implied height is validated against the ceiling first.

    Raises:
        GeometryValidationError: INVALID_PERIMETER or HEIGHT_EXCEEDS_CEILING
    """
    require_positive_perimeter(perimeter_lf, label)
    inferred = infer_height(estimate_wall_sf, perimeter_lf, ceiling_height, label)

    required_sf = perimeter_lf * target.height
    delta_sf = required_sf - estimate_wall_sf

    geometry = RoomGeometryCalculation(
        room_name=label,
        perimeter=round(perimeter_lf, 2),
        wall_height=round(ceiling_height, 2),
        estimate_height=round(inferred.height, 2),
        report_height=round(target.height, 2),
        estimate_wall_sf=round(estimate_wall_sf, 2),
        report_wall_sf=round(required_sf, 2),
        delta_sf=round(delta_sf, 2),
        ceiling_included=ceiling_included,
        formula=(
            f"{label}: {perimeter_lf:.0f} LF × ({target.height:g} ft - {inferred.height:.1f} ft) "
            f"= {delta_sf:.0f} SF"
        ),
    )
    return UnitDelta(delta_sf=delta_sf, estimate_sf=estimate_wall_sf, required_sf=required_sf, geometry=geometry)


def compute_wall_area_delta(
    label: str,
    perimeter_lf: float,
    ceiling_height: float,
    estimate_sf: float,
) -> UnitDelta:
    """Full wall area minus an estimate quantity (insulation).

    No height validation: insulation quantities legitimately include
    attic and ceiling runs.
    """
    require_positive_perimeter(perimeter_lf, label)
    required_sf = perimeter_lf * ceiling_height
    delta_sf = required_sf - estimate_sf

    geometry = RoomGeometryCalculation(
        room_name=label,
        perimeter=round(perimeter_lf, 2),
        wall_height=round(ceiling_height, 2),
        estimate_height=round(estimate_sf / perimeter_lf, 2),
        report_height=round(ceiling_height, 2),
        estimate_wall_sf=round(estimate_sf, 2),
        report_wall_sf=round(required_sf, 2),
        delta_sf=round(delta_sf, 2),
        ceiling_included=False,
        formula=(
            f"{label}: {perimeter_lf:.0f} LF × {ceiling_height:g} ft = {required_sf:.0f} SF expected, "
            f"{delta_sf:.0f} SF shortfall"
        ),
    )
    return UnitDelta(delta_sf=delta_sf, estimate_sf=estimate_sf, required_sf=required_sf, geometry=geometry)


def _geometry_summary(shortfall: AttributedShortfall) -> str:
    if len(shortfall.geometry) == 1:
        return shortfall.geometry[0].formula
    parts = ", ".join(f"{row.room_name} {row.delta_sf:.0f} SF" for row in shortfall.geometry)
    return f"Per-room: {parts} = {shortfall.total_delta_sf:.0f} SF total"


# =============================================================================
# Directive Deviations
# =============================================================================


def missing_trade_deviation(directive: Directive, policy: DeviationPolicy) -> Deviation:
    """Trade required by the report but absent from the estimate."""
    return Deviation(
        deviation_type=DeviationType.MISSING_REQUIRED_TRADE,
        trade=directive.trade,
        trade_name=directive.display_trade,
        issue=f"Expert report requires {directive.display_trade} but trade not found in estimate",
        report_directive=directive.raw_text or None,
        impact_min=policy.missing_trade_min,
        impact_max=policy.missing_trade_max,
        severity=severity_for_priority(directive.priority),
        calculation="Expert directive not addressed in estimate",
        source=DeviationSource.REPORT,
    )


def under_scoped_removal_deviation(directive: Directive, policy: DeviationPolicy) -> Deviation:
    """Drywall present but no removal lines against a removal directive."""
    return Deviation(
        deviation_type=DeviationType.UNDER_SCOPED_REMOVAL,
        trade=DRYWALL,
        trade_name=directive.trade_name or "Drywall",
        issue="Expert report requires drywall removal but no removal items found in estimate",
        estimate_value=0.0,
        report_directive=directive.raw_text or None,
        impact_min=policy.under_scoped_removal_min,
        impact_max=policy.under_scoped_removal_max,
        severity=Severity.HIGH,
        calculation="Missing removal scope per expert directive",
        source=DeviationSource.REPORT,
    )


def cut_height_deviation(
    directive: Directive,
    shortfall: AttributedShortfall,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
) -> Optional[Deviation]:
    """INSUFFICIENT_CUT_HEIGHT from an attributed wall shortfall."""
    delta = shortfall.total_delta_sf
    if delta <= 0:
        return None

    exposure = cost_baseline.lookup(DRYWALL, delta, "SF", DRYWALL_REPLACE_SPEC)
    if exposure is None:
        return None
    cost = cost_baseline.unit_cost(DRYWALL, "SF", DRYWALL_REPLACE_SPEC)

    rule = directive.quantity_rule.value if directive.quantity_rule else QuantityRule.FULL_HEIGHT.value
    return Deviation(
        deviation_type=DeviationType.INSUFFICIENT_CUT_HEIGHT,
        trade=DRYWALL,
        trade_name=directive.trade_name or "Drywall",
        issue=(
            f"Expert report requires {rule} but estimate shows insufficient height "
            f"({shortfall.mode.value.lower()} calculation)"
        ),
        estimate_value=round(shortfall.estimate_sf, 2),
        expected_value=round(shortfall.required_sf, 2),
        report_directive=directive.raw_text or None,
        impact_min=exposure.min,
        impact_max=exposure.max,
        severity=classify_delta_severity(delta, policy.wall_critical_delta_sf, policy.wall_high_delta_sf),
        calculation=(
            f"{_geometry_summary(shortfall)}{_rate(cost, 'SF')} = "
            f"{_money(exposure.min)}-{_money(exposure.max)}"
        ),
        room_geometry=shortfall.geometry,
        attribution_mode=shortfall.mode,
        source=DeviationSource.REPORT,
    )


def insulation_deviation(
    directive: Directive,
    shortfall: AttributedShortfall,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
) -> Optional[Deviation]:
    """MISSING_INSULATION from an attributed wall-area shortfall."""
    delta = shortfall.total_delta_sf
    if delta <= 0:
        return None

    exposure = cost_baseline.lookup(INSULATION, delta, "SF", INSULATION_SPEC)
    if exposure is None:
        return None
    cost = cost_baseline.unit_cost(INSULATION, "SF", INSULATION_SPEC)

    return Deviation(
        deviation_type=DeviationType.MISSING_INSULATION,
        trade=INSULATION,
        trade_name=directive.trade_name or "Insulation",
        issue=(
            f"Expert report requires insulation replacement but estimate shows "
            f"{shortfall.estimate_sf:.0f} SF (expected {shortfall.required_sf:.0f} SF based on wall area)"
        ),
        estimate_value=round(shortfall.estimate_sf, 2),
        expected_value=round(shortfall.required_sf, 2),
        report_directive=directive.raw_text or None,
        impact_min=exposure.min,
        impact_max=exposure.max,
        severity=classify_delta_severity(
            delta, policy.insulation_critical_delta_sf, policy.insulation_high_delta_sf
        ),
        calculation=(
            f"{_geometry_summary(shortfall)}{_rate(cost, 'SF')} = "
            f"{_money(exposure.min)}-{_money(exposure.max)}"
        ),
        room_geometry=shortfall.geometry,
        attribution_mode=shortfall.mode,
        source=DeviationSource.REPORT,
    )


def ceiling_only_deviation(
    directive: Directive,
    removal_items: Sequence[LineItem],
    quantities: ExpectedQuantities,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
) -> Optional[Deviation]:
    """Required ceiling area vs ceiling removal quantity, no height inference."""
    estimate_ceiling_sf = classify_wall_vs_ceiling(removal_items).ceiling_sf
    expected_ceiling_sf = quantities.total_ceiling_sf
    delta = expected_ceiling_sf - estimate_ceiling_sf
    if delta <= 0:
        return None

    exposure = cost_baseline.lookup(DRYWALL, delta, "SF", DRYWALL_CEILING_SPEC)
    if exposure is None:
        return None
    cost = cost_baseline.unit_cost(DRYWALL, "SF", DRYWALL_CEILING_SPEC)

    geometry = RoomGeometryCalculation(
        room_name="All Rooms (Ceiling)",
        perimeter=round(quantities.total_perimeter_lf, 2),
        wall_height=round(quantities.avg_ceiling_height, 2),
        estimate_height=0.0,
        report_height=0.0,
        estimate_wall_sf=round(estimate_ceiling_sf, 2),
        report_wall_sf=round(expected_ceiling_sf, 2),
        delta_sf=round(delta, 2),
        ceiling_included=True,
        formula=f"Ceiling: {expected_ceiling_sf:.0f} SF expected - {estimate_ceiling_sf:.0f} SF in estimate = {delta:.0f} SF",
    )

    return Deviation(
        deviation_type=DeviationType.MISSING_CEILING,
        trade=DRYWALL,
        trade_name=directive.trade_name or "Drywall",
        issue=(
            f"Expert report requires ceiling removal but estimate shows only "
            f"{estimate_ceiling_sf:.0f} SF (expected {expected_ceiling_sf:.0f} SF)"
        ),
        estimate_value=round(estimate_ceiling_sf, 2),
        expected_value=round(expected_ceiling_sf, 2),
        report_directive=directive.raw_text or None,
        impact_min=exposure.min,
        impact_max=exposure.max,
        severity=Severity.HIGH if delta > policy.ceiling_high_delta_sf else Severity.MODERATE,
        calculation=f"{geometry.formula}{_rate(cost, 'SF')} = {_money(exposure.min)}-{_money(exposure.max)}",
        room_geometry=[geometry],
        attribution_mode=AttributionMode.AGGREGATE,
        source=DeviationSource.REPORT,
    )


# =============================================================================
# Dimension Comparisons
# =============================================================================


def scope_quantity(items: Sequence[LineItem]) -> float:
    """Quantity of surface an estimate touches for one trade.

    Remove and replace lines repeat the same surface, so the largest
    per-action total is used instead of the sum. A trade with no lines
    touches nothing.
    """
    by_action: Dict[ActionType, float] = {}
    for item in items:
        by_action[item.action_type] = by_action.get(item.action_type, 0.0) + item.quantity
    return max(by_action.values(), default=0.0)


def build_dimension_comparisons(estimate: Estimate, quantities: ExpectedQuantities) -> List[DimensionComparison]:
    """Aggregate comparisons for all five surface families.

    Every family is compared whenever rooms are supplied; a family the
    estimate omits entirely is compared at an estimate of 0.
    """
    split = classify_wall_vs_ceiling(estimate.items_for_trade(DRYWALL))

    return [
        DimensionComparison(
            SURFACE_DRYWALL_WALLS, scope_quantity(split.wall_items), quantities.total_wall_sf
        ),
        DimensionComparison(
            SURFACE_DRYWALL_CEILING, scope_quantity(split.ceiling_items), quantities.total_ceiling_sf
        ),
        DimensionComparison(
            SURFACE_INSULATION, scope_quantity(estimate.items_for_trade(INSULATION)), quantities.insulation_sf
        ),
        DimensionComparison(
            SURFACE_FLOORING, scope_quantity(estimate.items_for_trade(*FLOORING_TRADES)), quantities.flooring_sf
        ),
        DimensionComparison(
            SURFACE_BASEBOARD, scope_quantity(estimate.items_for_trade(MOLDING)), quantities.baseboard_lf
        ),
    ]


# surface -> (deviation type, trade, trade name, unit, material spec, upper tier, lower tier)
_DIMENSION_RULES: Dict[str, Tuple[DeviationType, str, str, str, str, Severity, Severity]] = {
    SURFACE_DRYWALL_WALLS: (
        DeviationType.DIMENSION_MISMATCH, DRYWALL, "Drywall (Walls)", "SF", DRYWALL_REPLACE_SPEC,
        Severity.CRITICAL, Severity.HIGH,
    ),
    SURFACE_DRYWALL_CEILING: (
        DeviationType.MISSING_CEILING, DRYWALL, "Drywall (Ceiling)", "SF", DRYWALL_CEILING_SPEC,
        Severity.HIGH, Severity.MODERATE,
    ),
    SURFACE_INSULATION: (
        DeviationType.DIMENSION_MISMATCH, INSULATION, "Insulation", "SF", INSULATION_SPEC,
        Severity.HIGH, Severity.MODERATE,
    ),
    SURFACE_FLOORING: (
        DeviationType.QUANTITY_SHORTFALL, "FLR", "Flooring", "SF", FLOORING_SPEC,
        Severity.HIGH, Severity.MODERATE,
    ),
    SURFACE_BASEBOARD: (
        DeviationType.QUANTITY_SHORTFALL, MOLDING, "Molding/Trim", "LF", BASEBOARD_SPEC,
        Severity.HIGH, Severity.MODERATE,
    ),
}


def deviation_surfaces(deviation: Deviation) -> Tuple[str, ...]:
    """Surfaces a directive deviation already accounts for."""
    if deviation.deviation_type == DeviationType.MISSING_REQUIRED_TRADE:
        return TRADE_SURFACES.get(deviation.trade.upper(), ())
    surface = DEVIATION_SURFACES.get(deviation.deviation_type)
    return (surface,) if surface else ()


def exceeds_variance_threshold(comparison: DimensionComparison, policy: DeviationPolicy) -> bool:
    return comparison.variance > 0 and comparison.variance_pct > policy.variance_threshold_pct


def dimension_deviation(
    comparison: DimensionComparison,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
) -> Optional[Deviation]:
    """Deviation for one comparison past the variance threshold, else None."""
    if not exceeds_variance_threshold(comparison, policy):
        return None

    deviation_type, trade, trade_name, unit, spec, upper, lower = _DIMENSION_RULES[comparison.surface]
    exposure = cost_baseline.lookup(trade, comparison.variance, unit, spec)
    if exposure is None:
        return None
    cost = cost_baseline.unit_cost(trade, unit, spec)

    return Deviation(
        deviation_type=deviation_type,
        trade=trade,
        trade_name=trade_name,
        issue=(
            f"Estimate shows {comparison.estimate_value:.0f} {unit} {trade_name.lower()} but dimensions "
            f"indicate {comparison.expected_value:.0f} {unit} needed"
        ),
        estimate_value=round(comparison.estimate_value, 2),
        expected_value=round(comparison.expected_value, 2),
        impact_min=exposure.min,
        impact_max=exposure.max,
        severity=classify_variance_severity(
            comparison.variance_pct, policy.variance_escalation_pct, upper, lower
        ),
        calculation=(
            f"{trade_name} {comparison.expected_value:.0f} {unit} expected - "
            f"{comparison.estimate_value:.0f} {unit} in estimate = {comparison.variance:.0f} {unit} shortfall"
            f"{_rate(cost, unit)} = {_money(exposure.min)}-{_money(exposure.max)}"
        ),
        source=DeviationSource.DIMENSION,
    )


def compare_against_dimensions(
    estimate: Estimate,
    quantities: ExpectedQuantities,
    cost_baseline: CostBaseline,
    policy: DeviationPolicy,
    covered_surfaces: Optional[Set[str]] = None,
) -> Tuple[List[Deviation], Set[str], int]:
    """Run the pure dimension comparisons.

    Surfaces already covered by a directive deviation are not emitted a
    second time; they are returned as `corroborated` when the dimension
    comparison agrees, so the caller can mark that deviation BOTH.

    Returns:
        (deviations, corroborated surfaces, comparisons performed)
    """
    covered = covered_surfaces or set()
    deviations: List[Deviation] = []
    corroborated: Set[str] = set()
    comparisons = build_dimension_comparisons(estimate, quantities)

    for comparison in comparisons:
        if comparison.surface in covered:
            if exceeds_variance_threshold(comparison, policy):
                corroborated.add(comparison.surface)
            continue

        deviation = dimension_deviation(comparison, cost_baseline, policy)
        if deviation is not None:
            logger.info(
                "dimension_deviation_emitted",
                surface=comparison.surface,
                variance=round(comparison.variance, 2),
                variance_pct=round(comparison.variance_pct, 1),
                severity=deviation.severity.value,
            )
            deviations.append(deviation)

    return deviations, corroborated, len(comparisons)


def sum_exposure(deviations: Sequence[Deviation]) -> ExposureRange:
    total = ExposureRange.zero()
    for deviation in deviations:
        total = total + ExposureRange(min=deviation.impact_min, max=deviation.impact_max)
    return total
