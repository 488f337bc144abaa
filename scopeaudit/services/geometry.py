"""
Room Geometry Service for ScopeAudit.

Derives perimeter, wall, ceiling and floor quantities from measured rooms
and validates the dimension invariants every later division relies on.

Architecture:
- Pure functions over Room models, no shared state
- Validation failures raise GeometryValidationError (fatal)
- Sanity-limit breaches are returned as warnings (non-fatal)
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import math

import structlog

from scopeaudit.config.errors import ErrorCode, GeometryValidationError
from scopeaudit.config.settings import DeviationPolicy
from scopeaudit.models.room import Room

logger = structlog.get_logger(__name__)


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class RoomQuantities:
    """Derived quantities for a single room."""

    room_name: str
    perimeter_lf: float
    wall_sf: float
    ceiling_sf: float
    floor_sf: float
    height: float


@dataclass(frozen=True)
class ExpectedQuantities:
    """
    Expected trade quantities derived from room dimensions.

    Attributes:
        rooms: Per-room breakdown, in input order
        total_perimeter_lf: Sum of room perimeters
        total_wall_sf: Sum of room wall areas
        total_ceiling_sf: Sum of room ceiling areas
        total_floor_sf: Sum of room floor areas
        avg_ceiling_height: Perimeter-weighted mean ceiling height
    """

    rooms: List[RoomQuantities]
    total_perimeter_lf: float
    total_wall_sf: float
    total_ceiling_sf: float
    total_floor_sf: float
    avg_ceiling_height: float

    @property
    def drywall_sf(self) -> float:
        return self.total_wall_sf + self.total_ceiling_sf

    @property
    def paint_sf(self) -> float:
        return self.total_wall_sf + self.total_ceiling_sf

    @property
    def flooring_sf(self) -> float:
        return self.total_floor_sf

    @property
    def baseboard_lf(self) -> float:
        return self.total_perimeter_lf

    @property
    def insulation_sf(self) -> float:
        return self.total_wall_sf


@dataclass
class DimensionValidation:
    """Outcome of validate_dimension_input()."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


# =============================================================================
# Validation
# =============================================================================


def require_positive_perimeter(perimeter: float, room_name: Optional[str] = None) -> float:
    """Fail fast unless `perimeter` is finite and > 0.

    Called immediately before any division by a perimeter so a bad room
    can never propagate inf/NaN into a dollar figure.

    Raises:
        GeometryValidationError: INVALID_PERIMETER
    """
    if perimeter is None or not math.isfinite(perimeter) or perimeter <= 0:
        label = room_name or "dimension data"
        raise GeometryValidationError(
            code=ErrorCode.INVALID_PERIMETER,
            message=f"Perimeter for {label} is {perimeter}; must be a finite value greater than zero",
            room_name=room_name,
            remediation="Check room length and width measurements",
            details={"perimeter": perimeter},
        )
    return perimeter


def validate_room(room: Room) -> None:
    """Check one room's dimension invariants.

    Perimeter is checked first so a degenerate footprint reports
    INVALID_PERIMETER; any other non-positive or non-finite dimension
    reports INVALID_ROOM_DIMENSIONS.

    Raises:
        GeometryValidationError
    """
    require_positive_perimeter(room.perimeter, room.name)

    for dimension in ("length", "width", "height"):
        value = getattr(room, dimension)
        if not math.isfinite(value) or value <= 0:
            raise GeometryValidationError(
                code=ErrorCode.INVALID_ROOM_DIMENSIONS,
                message=f'Room "{room.name}" has invalid {dimension} ({value}); must be > 0',
                room_name=room.name,
                remediation="Re-measure the room or correct the dimension input",
                details={"dimension": dimension, "value": value},
            )


def validate_dimension_input(
    rooms: Sequence[Room],
    policy: Optional[DeviationPolicy] = None,
) -> DimensionValidation:
    """Collect every dimension problem without raising.

    Errors are invariant violations; warnings are sanity-limit breaches
    (unusually long or tall rooms) that do not stop a run.
    """
    policy = policy or DeviationPolicy()
    result = DimensionValidation()

    if not rooms:
        result.errors.append("No rooms provided")
        return result

    for index, room in enumerate(rooms):
        if not room.name or not room.name.strip():
            result.errors.append(f"Room {index + 1}: Missing name")

        for dimension in ("length", "width", "height"):
            value = getattr(room, dimension)
            if not math.isfinite(value) or value <= 0:
                result.errors.append(f'Room "{room.name}": Invalid {dimension} ({value})')

        if room.length > policy.max_room_length_ft:
            result.warnings.append(f'Room "{room.name}": Length {room.length} ft seems unusually large')
        if room.width > policy.max_room_length_ft:
            result.warnings.append(f'Room "{room.name}": Width {room.width} ft seems unusually large')
        if room.height > policy.max_room_height_ft:
            result.warnings.append(f'Room "{room.name}": Height {room.height} ft seems unusually large')

    return result


def ensure_valid_rooms(rooms: Sequence[Room], policy: Optional[DeviationPolicy] = None) -> List[str]:
    """Validate all rooms, raising on the first invariant violation.

    Returns:
        Sanity warnings to carry into the audit trail.

    Raises:
        GeometryValidationError
    """
    for room in rooms:
        validate_room(room)

    validation = validate_dimension_input(rooms, policy)
    if not validation.valid:
        raise GeometryValidationError(
            code=ErrorCode.INVALID_ROOM_DIMENSIONS,
            message="; ".join(validation.errors),
            remediation="Correct the dimension input",
        )
    return validation.warnings


# =============================================================================
# Quantities
# =============================================================================


def calculate_room_quantities(room: Room) -> RoomQuantities:
    return RoomQuantities(
        room_name=room.name,
        perimeter_lf=room.perimeter,
        wall_sf=room.wall_area,
        ceiling_sf=room.ceiling_area,
        floor_sf=room.floor_area,
        height=room.height,
    )


def weighted_ceiling_height(rooms: Sequence[Room]) -> float:
    """Perimeter-weighted mean ceiling height.

    Equals total wall area / total perimeter, so an aggregate calculation
    over mixed-height rooms reproduces the sum of the room wall areas.
    """
    total_perimeter = require_positive_perimeter(sum(r.perimeter for r in rooms))
    return sum(r.wall_area for r in rooms) / total_perimeter


def calculate_expected_quantities(rooms: Sequence[Room]) -> ExpectedQuantities:
    """Calculate per-room and total quantities from validated rooms.

    Raises:
        GeometryValidationError: if `rooms` is empty or has zero total perimeter.
    """
    if not rooms:
        raise GeometryValidationError(
            code=ErrorCode.DIMENSIONS_REQUIRED,
            message="No rooms provided for dimension calculation",
            remediation="Supply room dimensions",
        )

    breakdown = [calculate_room_quantities(room) for room in rooms]
    totals = ExpectedQuantities(
        rooms=breakdown,
        total_perimeter_lf=sum(r.perimeter_lf for r in breakdown),
        total_wall_sf=sum(r.wall_sf for r in breakdown),
        total_ceiling_sf=sum(r.ceiling_sf for r in breakdown),
        total_floor_sf=sum(r.floor_sf for r in breakdown),
        avg_ceiling_height=weighted_ceiling_height(rooms),
    )

    logger.debug(
        "expected_quantities_calculated",
        room_count=len(breakdown),
        total_perimeter_lf=totals.total_perimeter_lf,
        total_wall_sf=totals.total_wall_sf,
    )
    return totals
