"""Room geometry Pydantic models for ScopeAudit.

This module defines the measured room input and the per-room geometry
audit record produced by every height/area deviation check.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


# =============================================================================
# ROOM MODEL
# =============================================================================


class Room(BaseModel):
    """A measured room, dimensions in feet.

    Construction does not reject bad values. The engine validates rooms
    before use so that failures carry a coded GeometryValidationError.
    Derived quantities are always recomputed, never stored.
    """

    name: str = Field(..., description="Room name as it appears on the sketch")
    length: float = Field(..., description="Length (ft)")
    width: float = Field(..., description="Width (ft)")
    height: float = Field(..., description="Ceiling height (ft)")

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def perimeter(self) -> float:
        """Perimeter (LF) = 2 x (length + width)."""
        return 2 * (self.length + self.width)

    @property
    def wall_area(self) -> float:
        """Wall area (SF) = perimeter x height."""
        return self.perimeter * self.height

    @property
    def floor_area(self) -> float:
        """Floor area (SF) = length x width."""
        return self.length * self.width

    @property
    def ceiling_area(self) -> float:
        """Ceiling area (SF), flat ceiling assumed."""
        return self.floor_area

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, derived quantities included."""
        return {
            "name": self.name,
            "length": self.length,
            "width": self.width,
            "height": self.height,
            "perimeter": self.perimeter,
            "wallArea": self.wall_area,
            "ceilingArea": self.ceiling_area,
            "floorArea": self.floor_area,
        }


# =============================================================================
# GEOMETRY AUDIT RECORD
# =============================================================================


class RoomGeometryCalculation(BaseModel):
    """Audit record for one room (or aggregate pseudo-room) in one check."""

    room_name: str = Field(..., alias="roomName", description="Room or pseudo-room label")
    perimeter: float = Field(..., ge=0, description="Perimeter used (LF)")
    wall_height: float = Field(..., alias="wallHeight", ge=0, description="Ceiling height used (ft)")
    estimate_height: float = Field(..., alias="estimateHeight", description="Height inferred from the estimate (ft)")
    report_height: float = Field(..., alias="reportHeight", ge=0, description="Height required by the directive (ft)")
    estimate_wall_sf: float = Field(..., alias="estimateWallSF", description="Estimated quantity (SF)")
    report_wall_sf: float = Field(..., alias="reportWallSF", ge=0, description="Required quantity (SF)")
    delta_sf: float = Field(..., alias="deltaSF", description="Required minus estimated (SF)")
    ceiling_included: bool = Field(default=False, alias="ceilingIncluded")
    is_credit: bool = Field(
        default=False,
        alias="isCredit",
        description="Unmapped-quantity credit row; deltaSF is the non-positive amount credited",
    )
    formula: str = Field(..., description="Human-readable calculation")

    class Config:
        frozen = True
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for reports."""
        return self.model_dump(by_alias=True)
