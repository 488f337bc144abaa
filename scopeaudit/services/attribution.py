"""
Attribution/Fallback Controller for ScopeAudit.

Chooses how line items are attributed to rooms for one check and runs
the per-room delta calculation accordingly:

- AGGREGATE: no item matched a room. One pseudo-room over the total
  perimeter and the perimeter-weighted ceiling height.
- PER_ROOM: every item matched a room. Each room is evaluated on its
  own perimeter, height and mapped quantity; a room with no mapped items
  counts as estimate 0.
- HYBRID: some items matched, some did not. Every room is evaluated
  per room as in PER_ROOM, then the UNMAPPED quantity is credited once
  against the summed per-room shortfall. Each room's requirement is
  counted exactly once, so the unmapped bucket can lower the total but
  never add a second copy of a room's required area.
"""

from dataclasses import replace
from typing import Callable, List, Sequence, Tuple

import structlog

from scopeaudit.config.errors import ErrorCode, GeometryValidationError
from scopeaudit.models.deviation import AttributionMode
from scopeaudit.models.directive import QuantityRule
from scopeaudit.models.estimate import LineItem
from scopeaudit.models.room import Room, RoomGeometryCalculation
from scopeaudit.services.deviation_calculator import (
    AttributedShortfall,
    UnitDelta,
    compute_wall_area_delta,
    compute_wall_delta,
)
from scopeaudit.services.geometry import require_positive_perimeter, weighted_ceiling_height
from scopeaudit.services.height_reconciler import TargetHeight, resolve_target_height
from scopeaudit.services.line_item_classifier import (
    RoomMapping,
    classify_wall_vs_ceiling,
    map_items_to_rooms,
    sum_quantity,
)

logger = structlog.get_logger(__name__)

AGGREGATE_LABEL = "All Rooms (Aggregate)"
UNMAPPED_LABEL = "Unmapped Items"

# (label, perimeter, ceiling height, items) -> UnitDelta
UnitCalculator = Callable[[str, float, float, Sequence[LineItem]], UnitDelta]


def select_attribution_mode(mapping: RoomMapping) -> AttributionMode:
    """AGGREGATE if nothing mapped, PER_ROOM if everything mapped, else HYBRID."""
    if mapping.mapped_count == 0:
        return AttributionMode.AGGREGATE
    if mapping.unmapped_count == 0:
        return AttributionMode.PER_ROOM
    return AttributionMode.HYBRID


# =============================================================================
# Unit Calculators
# =============================================================================


def wall_height_calculator(rule: QuantityRule, clamp_warnings: List[str]) -> UnitCalculator:
    """Drywall wall delta: target height from `rule`, height inferred from wall items."""

    def calculate(label: str, perimeter: float, ceiling_height: float, items: Sequence[LineItem]) -> UnitDelta:
        split = classify_wall_vs_ceiling(items)
        target: TargetHeight = resolve_target_height(rule, ceiling_height)
        if target.clamped:
            clamp_warnings.append(
                f"{label}: {rule.value} exceeds ceiling height ({ceiling_height:g} ft); "
                f"using full height"
            )
        return compute_wall_delta(
            label,
            perimeter,
            ceiling_height,
            split.wall_sf,
            target,
            ceiling_included=split.ceiling_sf > 0,
        )

    return calculate


def wall_area_calculator(label: str, perimeter: float, ceiling_height: float, items: Sequence[LineItem]) -> UnitDelta:
    """Insulation delta: full wall area vs all item quantity."""
    return compute_wall_area_delta(label, perimeter, ceiling_height, sum_quantity(items))


# =============================================================================
# Controller
# =============================================================================


def _aggregate(rooms: Sequence[Room], items: Sequence[LineItem], calculate: UnitCalculator) -> UnitDelta:
    total_perimeter = require_positive_perimeter(sum(room.perimeter for room in rooms))
    return calculate(AGGREGATE_LABEL, total_perimeter, weighted_ceiling_height(rooms), items)


def _per_room(rooms: Sequence[Room], mapping: RoomMapping, calculate: UnitCalculator) -> List[UnitDelta]:
    return [
        calculate(room.name, room.perimeter, room.height, mapping.items_for(position))
        for position, room in enumerate(rooms)
    ]


def _unmapped_credit(
    rooms: Sequence[Room],
    mapping: RoomMapping,
    wall_quantity: Callable[[Sequence[LineItem]], float],
    per_room_shortfall: float,
    validate_height: bool,
) -> Tuple[float, RoomGeometryCalculation]:
    """Credit for the unmapped quantity against per-room shortfall, with its audit row."""
    total_perimeter = require_positive_perimeter(sum(room.perimeter for room in rooms))
    avg_height = weighted_ceiling_height(rooms)
    unmapped_sf = wall_quantity(mapping.unmapped)

    if validate_height:
        mapped_sf = sum(wall_quantity(items) for items in mapping.by_position.values())
        implied_height = (mapped_sf + unmapped_sf) / total_perimeter
        if implied_height > avg_height + 1e-6:
            raise GeometryValidationError(
                code=ErrorCode.HEIGHT_EXCEEDS_CEILING,
                message=(
                    f"{UNMAPPED_LABEL}: mapped plus unmapped wall quantity implies "
                    f"{implied_height:.1f} ft over {total_perimeter:.0f} LF, above the average "
                    f"ceiling height ({avg_height:.2f} ft)"
                ),
                room_name=UNMAPPED_LABEL,
                remediation="Check if ceiling removal is included in wall quantity",
            )

    credit = min(unmapped_sf, max(per_room_shortfall, 0.0))
    return credit, RoomGeometryCalculation(
        room_name=UNMAPPED_LABEL,
        perimeter=round(total_perimeter, 2),
        wall_height=round(avg_height, 2),
        estimate_height=round(unmapped_sf / total_perimeter, 2),
        report_height=0.0,
        estimate_wall_sf=round(unmapped_sf, 2),
        report_wall_sf=0.0,
        delta_sf=round(-credit, 2) if credit else 0.0,
        ceiling_included=False,
        is_credit=True,
        formula=(
            f"Unmapped: {unmapped_sf:.0f} SF across {total_perimeter:.0f} LF credited against "
            f"{per_room_shortfall:.0f} SF per-room shortfall = -{credit:.0f} SF"
        ),
    )


def attribute_shortfall(
    items: Sequence[LineItem],
    rooms: Sequence[Room],
    calculate: UnitCalculator,
    wall_quantity: Callable[[Sequence[LineItem]], float],
    validate_height: bool = True,
) -> AttributedShortfall:
    """Map items to rooms, pick a mode and sum the shortfall.

    Only positive per-room deltas contribute; a room whose estimate
    meets or exceeds its requirement is left out of the rows and the
    total.

    Raises:
        GeometryValidationError: from any per-room calculation.
    """
    mapping = map_items_to_rooms(items, rooms)
    mode = select_attribution_mode(mapping)
    warnings: List[str] = []
    estimate_sf = wall_quantity(items)

    if mode == AttributionMode.AGGREGATE:
        warnings.append("Estimate items not mapped to specific rooms - using aggregate calculation")
        unit = _aggregate(rooms, items, calculate)
        rows = [unit.geometry] if unit.delta_sf > 0 else []
        total_delta = max(unit.delta_sf, 0.0)
    else:
        units = _per_room(rooms, mapping, calculate)
        positive = [unit for unit in units if unit.delta_sf > 0]
        rows = [unit.geometry for unit in positive]
        total_delta = sum(unit.delta_sf for unit in positive)

        if mode == AttributionMode.HYBRID:
            credit, credit_row = _unmapped_credit(rooms, mapping, wall_quantity, total_delta, validate_height)
            warnings.append(
                f"{mapping.unmapped_count} estimate item(s) could not be mapped to specific rooms. "
                f"These items ({credit_row.estimate_wall_sf:.0f} SF) are credited against the "
                f"per-room shortfall."
            )
            if credit_row.estimate_wall_sf > 0:
                rows.append(credit_row)
            total_delta -= credit

    logger.info(
        "attribution_mode_selected",
        mode=mode.value,
        mapped=mapping.mapped_count,
        unmapped=mapping.unmapped_count,
        total_delta_sf=round(total_delta, 2),
    )

    return AttributedShortfall(
        mode=mode,
        total_delta_sf=total_delta,
        estimate_sf=estimate_sf,
        geometry=rows,
        warnings=warnings,
        rooms_mapped=mapping.rooms_with_items,
        room_positions_mapped=mapping.mapped_positions,
        items_unmapped=mapping.unmapped_count,
    )


def attribute_wall_shortfall(
    removal_items: Sequence[LineItem],
    rooms: Sequence[Room],
    rule: QuantityRule,
) -> AttributedShortfall:
    """Drywall wall shortfall for a height-based directive rule."""
    clamp_warnings: List[str] = []
    shortfall = attribute_shortfall(
        removal_items,
        rooms,
        wall_height_calculator(rule, clamp_warnings),
        wall_quantity=lambda items: classify_wall_vs_ceiling(items).wall_sf,
        validate_height=True,
    )
    if not clamp_warnings:
        return shortfall
    return replace(shortfall, warnings=shortfall.warnings + clamp_warnings)


def attribute_insulation_shortfall(
    insulation_items: Sequence[LineItem],
    rooms: Sequence[Room],
) -> AttributedShortfall:
    """Insulation shortfall against full wall area of every room."""
    return attribute_shortfall(
        insulation_items,
        rooms,
        wall_area_calculator,
        wall_quantity=sum_quantity,
        validate_height=False,
    )
