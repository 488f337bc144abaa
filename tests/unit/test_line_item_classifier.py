"""
Unit Tests for the Line-Item Classifier and Room Mapper.

Tests:
- Wall vs ceiling split on description tokens
- First-room-wins name matching, case-insensitive
- Unmapped bucket for items that match no room
- Same-named rooms kept apart by list position
"""

import pytest

from scopeaudit.models.room import Room
from scopeaudit.services.line_item_classifier import (
    classify_wall_vs_ceiling,
    is_ceiling_item,
    map_items_to_rooms,
    sum_quantity,
)
from tests.fixtures.mock_estimate_data import make_line_items


@pytest.mark.parametrize(
    "description,expected",
    [
        ("Remove drywall - ceiling", True),
        ("R&R 1/2\" drywall CEILING", True),
        ("Drywall clg patch", True),
        ("Tape & float cei", True),
        ("Remove drywall 2ft flood cut", False),
        ("Deceive", False),
        ("Remove drywall walls", False),
    ],
)
def test_is_ceiling_item(description, expected):
    item = make_line_items([("DRY", description, "REMOVE", 10, "SF")])[0]

    assert is_ceiling_item(item) is expected


def test_classify_wall_vs_ceiling_splits_quantities():
    items = make_line_items([
        ("DRY", "Remove drywall 4ft cut", "REMOVE", 280, "SF"),
        ("DRY", "Remove drywall ceiling", "REMOVE", 300, "SF"),
        ("DRY", "Remove drywall closet", "REMOVE", 40, "SF"),
    ])

    split = classify_wall_vs_ceiling(items)

    assert split.wall_sf == 320
    assert split.ceiling_sf == 300
    assert len(split.wall_items) == 2
    assert len(split.ceiling_items) == 1


def test_classify_empty_items():
    split = classify_wall_vs_ceiling([])

    assert split.wall_sf == 0
    assert split.ceiling_sf == 0


def test_sum_quantity():
    items = make_line_items([
        ("INS", "Batt insulation", "REPLACE", 100, "SF"),
        ("INS", "Batt insulation", "REPLACE", 50.5, "SF"),
    ])

    assert sum_quantity(items) == 150.5


def test_map_items_to_rooms_case_insensitive(living_room, bedroom):
    items = make_line_items([
        ("DRY", "LIVING ROOM - remove drywall 2ft", "REMOVE", 140, "SF"),
        ("DRY", "bedroom - remove drywall 2ft", "REMOVE", 80, "SF"),
        ("DRY", "Hallway - remove drywall", "REMOVE", 30, "SF"),
    ])

    mapping = map_items_to_rooms(items, [living_room, bedroom])

    assert mapping.mapped_count == 2
    assert mapping.unmapped_count == 1
    assert mapping.items_for(0)[0].quantity == 140
    assert mapping.items_for(1)[0].quantity == 80
    assert mapping.unmapped[0].quantity == 30
    assert mapping.rooms_with_items == ["Living Room", "Bedroom"]
    assert mapping.mapped_positions == [0, 1]


def test_map_items_first_room_in_list_wins():
    """A description naming two rooms goes to whichever is listed first."""
    bath = Room(name="Bath", length=8, width=5, height=8)
    master_bath = Room(name="Master Bath", length=10, width=8, height=8)
    items = make_line_items([("DRY", "Master Bath - remove drywall", "REMOVE", 50, "SF")])

    first = map_items_to_rooms(items, [bath, master_bath])
    second = map_items_to_rooms(items, [master_bath, bath])

    assert first.rooms_with_items == ["Bath"]
    assert second.rooms_with_items == ["Master Bath"]


def test_map_items_without_rooms_all_unmapped():
    items = make_line_items([("DRY", "Remove drywall", "REMOVE", 50, "SF")])

    mapping = map_items_to_rooms(items, [])

    assert mapping.mapped_count == 0
    assert mapping.unmapped_count == 1
    assert mapping.items_for(0) == []


def test_map_items_same_named_rooms_match_first_only():
    first = Room(name="Bedroom", length=10, width=10, height=8)
    second = Room(name="Bedroom", length=12, width=10, height=8)
    items = make_line_items([("DRY", "Bedroom remove drywall full", "REMOVE", 320, "SF")])

    mapping = map_items_to_rooms(items, [first, second])

    assert mapping.mapped_count == 1
    assert mapping.mapped_positions == [0]
    assert mapping.items_for(1) == []
    assert mapping.rooms_with_items == ["Bedroom"]
