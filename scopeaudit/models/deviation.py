"""Deviation and DeviationAnalysis Pydantic models for ScopeAudit.

This module defines the severity-ranked, dollar-quantified deviations the
engine emits and the aggregate analysis handed to report rendering and
risk scoring.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from scopeaudit.models.room import RoomGeometryCalculation


# =============================================================================
# ENUMS
# =============================================================================


class DeviationType(str, Enum):
    """Kind of scope shortfall."""

    UNDER_SCOPED_REMOVAL = "UNDER_SCOPED_REMOVAL"
    MISSING_REQUIRED_TRADE = "MISSING_REQUIRED_TRADE"
    INSUFFICIENT_CUT_HEIGHT = "INSUFFICIENT_CUT_HEIGHT"
    MISSING_INSULATION = "MISSING_INSULATION"
    MISSING_CEILING = "MISSING_CEILING"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    QUANTITY_SHORTFALL = "QUANTITY_SHORTFALL"


class Severity(str, Enum):
    """Deviation severity, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


class DeviationSource(str, Enum):
    """Which source of truth flagged the deviation."""

    REPORT = "REPORT"
    DIMENSION = "DIMENSION"
    BOTH = "BOTH"


class AttributionMode(str, Enum):
    """How line items were attributed to rooms for a check."""

    PER_ROOM = "PER_ROOM"
    AGGREGATE = "AGGREGATE"
    HYBRID = "HYBRID"


# =============================================================================
# DEVIATION
# =============================================================================


class Deviation(BaseModel):
    """A quantified scope shortfall with its calculation trail."""

    deviation_type: DeviationType = Field(..., alias="deviationType")
    trade: str = Field(..., description="Trade code")
    trade_name: str = Field(..., alias="tradeName")
    issue: str = Field(..., description="One-line description of the shortfall")
    estimate_value: Optional[float] = Field(default=None, alias="estimateValue")
    expected_value: Optional[float] = Field(default=None, alias="expectedValue")
    report_directive: Optional[str] = Field(default=None, alias="reportDirective")
    impact_min: float = Field(..., alias="impactMin", ge=0)
    impact_max: float = Field(..., alias="impactMax", ge=0)
    severity: Severity
    calculation: str
    room_geometry: Optional[List[RoomGeometryCalculation]] = Field(default=None, alias="roomGeometry")
    attribution_mode: Optional[AttributionMode] = Field(default=None, alias="attributionMode")
    source: DeviationSource

    class Config:
        frozen = True
        populate_by_name = True

    @model_validator(mode="after")
    def validate_impact_order(self) -> "Deviation":
        """Ensure impact_min <= impact_max."""
        if self.impact_min > self.impact_max:
            raise ValueError(
                f"Deviation impact must be min <= max, got: "
                f"min={self.impact_min}, max={self.impact_max}"
            )
        return self

    @property
    def delta_sf(self) -> Optional[float]:
        """Total delta across geometry rows, if any."""
        if not self.room_geometry:
            return None
        return round(sum(row.delta_sf for row in self.room_geometry), 2)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# =============================================================================
# ANALYSIS
# =============================================================================


class AuditTrail(BaseModel):
    """Provenance for a DeviationAnalysis."""

    dimensions_used: bool = Field(..., alias="dimensionsUsed")
    room_count: int = Field(..., alias="roomCount", ge=0)
    per_room_calculations: List[RoomGeometryCalculation] = Field(
        default_factory=list, alias="perRoomCalculations"
    )
    total_perimeter: float = Field(..., alias="totalPerimeter", ge=0)
    avg_ceiling_height: float = Field(..., alias="avgCeilingHeight", ge=0)
    calculation_method: AttributionMode = Field(..., alias="calculationMethod")
    warnings: List[str] = Field(default_factory=list)
    cost_baseline_version: str = Field(..., alias="costBaselineVersion")

    class Config:
        frozen = True
        populate_by_name = True


class AnalysisMetadata(BaseModel):
    """Counters describing what the run examined."""

    report_directives_checked: int = Field(default=0, alias="reportDirectivesChecked")
    dimension_comparisons_performed: int = Field(default=0, alias="dimensionComparisonsPerformed")
    deviations_found: int = Field(default=0, alias="deviationsFound")
    rooms_mapped: int = Field(default=0, alias="roomsMapped")
    items_unmapped: int = Field(default=0, alias="itemsUnmapped")

    class Config:
        frozen = True
        populate_by_name = True


class DeviationAnalysis(BaseModel):
    """All deviations from one invocation plus totals and audit trail."""

    deviations: List[Deviation] = Field(default_factory=list)
    total_deviation_exposure_min: float = Field(..., alias="totalDeviationExposureMin", ge=0)
    total_deviation_exposure_max: float = Field(..., alias="totalDeviationExposureMax", ge=0)
    critical_count: int = Field(default=0, alias="criticalCount")
    high_count: int = Field(default=0, alias="highCount")
    severity_counts: Dict[Severity, int] = Field(default_factory=dict, alias="severityCounts")
    summary: str
    audit_trail: AuditTrail = Field(..., alias="auditTrail")
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)

    class Config:
        frozen = True
        populate_by_name = True

    def deviations_of_type(self, deviation_type: DeviationType) -> List[Deviation]:
        return [d for d in self.deviations if d.deviation_type == deviation_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary for JSON serialization."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
