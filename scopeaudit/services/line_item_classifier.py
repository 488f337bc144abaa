"""
Line-Item Classifier and Room Mapper for ScopeAudit.

Splits wall from ceiling line items and attributes items to rooms by
name. Room attribution is greedy and order-dependent: an item is given
to the FIRST room (in caller-supplied order) whose name appears in the
item description. Callers that need a different tie-break must reorder
their room list; that ordering is the documented policy.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence
import re

import structlog

from scopeaudit.models.estimate import LineItem
from scopeaudit.models.room import Room

logger = structlog.get_logger(__name__)

# "ceiling" anywhere, or the Xactimate-style short tokens as whole words
CEILING_PATTERN = re.compile(r"ceiling|\bcei\b|\bclg\b", re.IGNORECASE)


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class WallCeilingSplit:
    """Wall and ceiling subsets of a set of line items."""

    wall_items: List[LineItem]
    ceiling_items: List[LineItem]
    wall_sf: float
    ceiling_sf: float


@dataclass
class RoomMapping:
    """Line items grouped by room position, plus the unmapped bucket.

    Keyed by position in the room list, not by name: two rooms that share
    a name are still two rooms, and each item lands in exactly one.
    """

    rooms: Sequence[Room] = field(default_factory=list)
    by_position: Dict[int, List[LineItem]] = field(default_factory=dict)
    unmapped: List[LineItem] = field(default_factory=list)

    def items_for(self, position: int) -> List[LineItem]:
        return self.by_position.get(position, [])

    @property
    def mapped_count(self) -> int:
        return sum(len(items) for items in self.by_position.values())

    @property
    def unmapped_count(self) -> int:
        return len(self.unmapped)

    @property
    def mapped_positions(self) -> List[int]:
        return sorted(position for position, items in self.by_position.items() if items)

    @property
    def rooms_with_items(self) -> List[str]:
        return [self.rooms[position].name for position in self.mapped_positions]


# =============================================================================
# Classification
# =============================================================================


def is_ceiling_item(item: LineItem) -> bool:
    return bool(CEILING_PATTERN.search(item.description))


def sum_quantity(items: Sequence[LineItem]) -> float:
    return sum(item.quantity for item in items)


def classify_wall_vs_ceiling(items: Sequence[LineItem]) -> WallCeilingSplit:
    """Separate wall items from ceiling items.

    An item is a ceiling item iff its description mentions the ceiling;
    everything else counts as wall.
    """
    wall_items: List[LineItem] = []
    ceiling_items: List[LineItem] = []

    for item in items:
        if is_ceiling_item(item):
            ceiling_items.append(item)
        else:
            wall_items.append(item)

    return WallCeilingSplit(
        wall_items=wall_items,
        ceiling_items=ceiling_items,
        wall_sf=sum_quantity(wall_items),
        ceiling_sf=sum_quantity(ceiling_items),
    )


# =============================================================================
# Room Mapping
# =============================================================================


def map_items_to_rooms(items: Sequence[LineItem], rooms: Sequence[Room]) -> RoomMapping:
    """Attribute each item to the first room whose name it mentions.

    Matching is a case-insensitive substring test of the room name
    against the item description. Ties resolve to room list order.
    Items matching no room go to the unmapped bucket.
    """
    mapping = RoomMapping(rooms=list(rooms))

    for item in items:
        description = item.description.lower()
        for position, room in enumerate(rooms):
            room_name = room.name.strip().lower()
            if room_name and room_name in description:
                mapping.by_position.setdefault(position, []).append(item)
                break
        else:
            mapping.unmapped.append(item)

    logger.debug(
        "line_items_mapped",
        item_count=len(items),
        mapped=mapping.mapped_count,
        unmapped=mapping.unmapped_count,
    )
    return mapping
