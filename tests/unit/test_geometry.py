"""
Unit Tests for the Room Geometry Service.

Tests derived quantities and dimension validation:
- Perimeter, wall, ceiling and floor area arithmetic
- Perimeter-weighted ceiling height
- Fatal errors for zero/non-finite perimeter and bad dimensions
- Sanity-limit warnings for unusually large rooms
"""

import math

import pytest

from scopeaudit.config.errors import ErrorCode, GeometryValidationError
from scopeaudit.models.room import Room
from scopeaudit.services.geometry import (
    calculate_expected_quantities,
    ensure_valid_rooms,
    require_positive_perimeter,
    validate_dimension_input,
    validate_room,
    weighted_ceiling_height,
)


# =============================================================================
# Test: Room derived quantities
# =============================================================================


def test_room_derived_quantities(living_room):
    """20 x 15 x 8 room derives 70 LF, 560 SF walls, 300 SF floor/ceiling."""
    assert living_room.perimeter == 70
    assert living_room.wall_area == 560
    assert living_room.floor_area == 300
    assert living_room.ceiling_area == 300


def test_room_to_dict_includes_derived_values(living_room):
    data = living_room.to_dict()

    assert data["name"] == "Living Room"
    assert data["perimeter"] == 70
    assert data["wallArea"] == 560
    assert data["floorArea"] == 300


def test_room_accepts_invalid_values_at_construction():
    """Rooms are validated by the engine, not the model."""
    room = Room(name="Closet", length=0, width=5, height=8)

    assert room.perimeter == 10


# =============================================================================
# Test: Expected quantities
# =============================================================================


def test_expected_quantities_sum_rooms(living_room, bedroom):
    quantities = calculate_expected_quantities([living_room, bedroom])

    assert quantities.total_perimeter_lf == 110
    assert quantities.total_wall_sf == 880
    assert quantities.total_ceiling_sf == 400
    assert quantities.total_floor_sf == 400
    assert quantities.drywall_sf == 1280
    assert quantities.paint_sf == quantities.drywall_sf
    assert quantities.flooring_sf == 400
    assert quantities.baseboard_lf == 110
    assert quantities.insulation_sf == 880
    assert [r.room_name for r in quantities.rooms] == ["Living Room", "Bedroom"]


def test_weighted_ceiling_height_reproduces_total_wall_area():
    """Perimeter x weighted height equals the summed wall area."""
    rooms = [
        Room(name="Hall", length=20, width=5, height=8),
        Room(name="Great Room", length=20, width=20, height=12),
    ]

    height = weighted_ceiling_height(rooms)

    total_perimeter = sum(r.perimeter for r in rooms)
    assert height == pytest.approx(sum(r.wall_area for r in rooms) / total_perimeter)
    assert total_perimeter * height == pytest.approx(400 + 960)


def test_expected_quantities_requires_rooms():
    with pytest.raises(GeometryValidationError) as exc_info:
        calculate_expected_quantities([])

    assert exc_info.value.code == ErrorCode.DIMENSIONS_REQUIRED


# =============================================================================
# Test: Validation
# =============================================================================


@pytest.mark.parametrize("perimeter", [0, -10, math.inf, math.nan])
def test_require_positive_perimeter_rejects(perimeter):
    with pytest.raises(GeometryValidationError) as exc_info:
        require_positive_perimeter(perimeter, "Kitchen")

    assert exc_info.value.code == ErrorCode.INVALID_PERIMETER
    assert exc_info.value.details["room_name"] == "Kitchen"
    assert "remediation" in exc_info.value.details


def test_require_positive_perimeter_returns_value():
    assert require_positive_perimeter(42.0) == 42.0


def test_validate_room_zero_footprint_reports_perimeter():
    with pytest.raises(GeometryValidationError) as exc_info:
        validate_room(Room(name="Void", length=0, width=0, height=8))

    assert exc_info.value.code == ErrorCode.INVALID_PERIMETER


def test_validate_room_zero_length_reports_dimensions():
    with pytest.raises(GeometryValidationError) as exc_info:
        validate_room(Room(name="Closet", length=0, width=5, height=8))

    assert exc_info.value.code == ErrorCode.INVALID_ROOM_DIMENSIONS
    assert exc_info.value.details["dimension"] == "length"


def test_validate_room_zero_height_reports_dimensions():
    with pytest.raises(GeometryValidationError) as exc_info:
        validate_room(Room(name="Crawlspace", length=10, width=10, height=0))

    assert exc_info.value.code == ErrorCode.INVALID_ROOM_DIMENSIONS


def test_validate_dimension_input_collects_errors_and_warnings(policy):
    rooms = [
        Room(name="", length=10, width=10, height=8),
        Room(name="Warehouse", length=150, width=10, height=25),
        Room(name="Closet", length=-1, width=4, height=8),
    ]

    result = validate_dimension_input(rooms, policy)

    assert not result.valid
    assert "Room 1: Missing name" in result.errors
    assert any("Closet" in e and "length" in e for e in result.errors)
    assert any("Length 150" in w for w in result.warnings)
    assert any("Height 25" in w for w in result.warnings)


def test_validate_dimension_input_empty():
    result = validate_dimension_input([])

    assert result.errors == ["No rooms provided"]


def test_ensure_valid_rooms_returns_sanity_warnings(policy):
    rooms = [Room(name="Barn", length=120, width=30, height=10)]

    warnings = ensure_valid_rooms(rooms, policy)

    assert len(warnings) == 1
    assert "Barn" in warnings[0]


def test_ensure_valid_rooms_rejects_missing_name(policy):
    with pytest.raises(GeometryValidationError) as exc_info:
        ensure_valid_rooms([Room(name="  ", length=10, width=10, height=8)], policy)

    assert exc_info.value.code == ErrorCode.INVALID_ROOM_DIMENSIONS
