"""Cost Baseline Service for ScopeAudit.

Versioned unit-cost ranges used to turn a quantity shortfall into a
dollar exposure range. A CostBaseline is immutable configuration: build
one (or use DEFAULT_COST_BASELINE) and inject it into the engine.
"""

from __future__ import annotations

from typing import Dict, Optional

import structlog
from pydantic import BaseModel, Field, model_validator

logger = structlog.get_logger(__name__)


# =============================================================================
# MODELS
# =============================================================================


class UnitCostRange(BaseModel):
    """Per-unit cost range for one trade/material combination."""

    min: float = Field(..., ge=0, description="Low unit cost ($/unit)")
    max: float = Field(..., ge=0, description="High unit cost ($/unit)")
    unit: str = Field(..., description="Unit of measurement")
    notes: Optional[str] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def validate_order(self) -> "UnitCostRange":
        """Ensure min <= max."""
        if self.min > self.max:
            raise ValueError(f"Unit cost range must be min <= max, got: min={self.min}, max={self.max}")
        return self


class ExposureRange(BaseModel):
    """Dollar exposure for a quantity (quantity x unit cost range)."""

    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)

    class Config:
        frozen = True

    @classmethod
    def zero(cls) -> "ExposureRange":
        return cls(min=0.0, max=0.0)

    def __add__(self, other: "ExposureRange") -> "ExposureRange":
        return ExposureRange(
            min=round(self.min + other.min, 2),
            max=round(self.max + other.max, 2),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max}


class CostBaseline(BaseModel):
    """Versioned, read-only unit cost table keyed by TRADE_MATERIALSPEC."""

    version: str = Field(..., min_length=1)
    entries: Dict[str, UnitCostRange] = Field(default_factory=dict)

    class Config:
        frozen = True

    def unit_cost(self, trade_code: str, unit: str, material_spec: str = "STANDARD") -> Optional[UnitCostRange]:
        """Find the unit cost range for a trade/unit/material.

        Exact key first, then the first entry in table order carrying
        the trade prefix. A unit mismatch is treated as no match.
        """
        trade = trade_code.upper()
        cost = self.entries.get(f"{trade}_{material_spec}")
        if cost is None:
            prefix = f"{trade}_"
            cost = next(
                (value for key, value in self.entries.items() if key.startswith(prefix)),
                None,
            )
        if cost is None or cost.unit != unit:
            return None
        return cost

    def lookup(
        self,
        trade_code: str,
        quantity: float,
        unit: str,
        material_spec: str = "STANDARD",
    ) -> Optional[ExposureRange]:
        """Exposure range for `quantity` units, or None without pricing data."""
        cost = self.unit_cost(trade_code, unit, material_spec)
        if cost is None:
            logger.debug(
                "cost_baseline_miss",
                trade_code=trade_code,
                unit=unit,
                material_spec=material_spec,
                version=self.version,
            )
            return None
        return ExposureRange(
            min=round(quantity * cost.min, 2),
            max=round(quantity * cost.max, 2),
        )

    def __call__(
        self,
        trade_code: str,
        quantity: float,
        unit: str,
        material_spec: str = "STANDARD",
    ) -> Optional[ExposureRange]:
        return self.lookup(trade_code, quantity, unit, material_spec)


# =============================================================================
# DEFAULT BASELINE - NATIONAL AVERAGES
# =============================================================================

COST_BASELINE_VERSION = "2026-02-20"

_DEFAULT_ENTRIES: Dict[str, UnitCostRange] = {
    # Drywall
    "DRY_REMOVE": UnitCostRange(min=1.00, max=2.50, unit="SF", notes="Removal only"),
    "DRY_REPLACE_1/2": UnitCostRange(min=2.50, max=5.00, unit="SF", notes='1/2" drywall R&R'),
    "DRY_REPLACE_5/8": UnitCostRange(min=2.75, max=5.50, unit="SF", notes='5/8" drywall R&R'),
    "DRY_REPAIR": UnitCostRange(min=1.50, max=3.00, unit="SF", notes="Patch and repair"),
    "DRY_CEILING": UnitCostRange(min=3.00, max=6.00, unit="SF", notes="Ceiling work premium"),

    # Painting
    "PNT_INTERIOR_WALL": UnitCostRange(min=1.50, max=3.50, unit="SF", notes="Interior walls"),
    "PNT_INTERIOR_CEILING": UnitCostRange(min=1.75, max=3.75, unit="SF", notes="Interior ceilings"),

    # Flooring
    "FLR_STANDARD": UnitCostRange(min=3.00, max=8.00, unit="SF", notes="Flooring, blended"),
    "FLR_REMOVE": UnitCostRange(min=0.50, max=1.50, unit="SF", notes="Flooring removal"),
    "CRP_INSTALL": UnitCostRange(min=3.00, max=8.00, unit="SF", notes="Carpet with pad"),
    "VCT_INSTALL": UnitCostRange(min=4.00, max=10.00, unit="SF", notes="Vinyl plank"),
    "TIL_INSTALL": UnitCostRange(min=8.00, max=20.00, unit="SF", notes="Ceramic/porcelain tile"),
    "WDP_INSTALL": UnitCostRange(min=10.00, max=25.00, unit="SF", notes="Hardwood flooring"),

    # Insulation
    "INS_BATT_R13": UnitCostRange(min=1.00, max=2.50, unit="SF", notes="R-13 batt insulation"),
    "INS_BATT_R19": UnitCostRange(min=1.25, max=2.75, unit="SF", notes="R-19 batt insulation"),
    "INS_BATT_R30": UnitCostRange(min=1.50, max=3.00, unit="SF", notes="R-30 batt insulation"),
    "INS_BLOWN": UnitCostRange(min=1.50, max=3.00, unit="SF", notes="Blown-in insulation"),

    # Trim/molding
    "MLD_BASEBOARD": UnitCostRange(min=3.00, max=8.00, unit="LF", notes="Baseboard"),
    "MLD_CROWN": UnitCostRange(min=5.00, max=12.00, unit="LF", notes="Crown molding"),
    "MLD_CASING": UnitCostRange(min=4.00, max=10.00, unit="LF", notes="Door/window casing"),
}

DEFAULT_COST_BASELINE = CostBaseline(version=COST_BASELINE_VERSION, entries=_DEFAULT_ENTRIES)
