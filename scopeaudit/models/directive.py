"""Expert report directive Pydantic models for ScopeAudit.

Directives are extracted upstream from free-text expert reports. Only
measurable directives take part in deviation calculation.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class QuantityRule(str, Enum):
    """Abstract quantity requirement carried by a directive."""

    FULL_HEIGHT = "FULL_HEIGHT"
    CUT_2FT = "2FT_CUT"
    CUT_4FT = "4FT_CUT"
    CUT_6FT = "6FT_CUT"
    CEILING_ONLY = "CEILING_ONLY"
    SPECIFIC_AREA = "SPECIFIC_AREA"


class DirectivePriority(str, Enum):
    """Priority assigned by the directive extractor."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


class Directive(BaseModel):
    """A single extracted scope requirement."""

    trade: str = Field(..., description="Trade code the directive applies to")
    trade_name: Optional[str] = Field(default=None, alias="tradeName")
    directive_type: str = Field(..., alias="directiveType", description="e.g. REMOVE, REPLACE")
    measurable: bool = Field(default=False)
    quantity_rule: Optional[QuantityRule] = Field(default=None, alias="quantityRule")
    priority: DirectivePriority = Field(default=DirectivePriority.MODERATE)
    raw_text: str = Field(default="", alias="rawText")
    page_number: Optional[int] = Field(default=None, alias="pageNumber")

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def display_trade(self) -> str:
        return self.trade_name or self.trade


class ParsedReport(BaseModel):
    """Ordered directives plus upstream extraction confidence."""

    directives: List[Directive] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0, le=1)

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def measurable_directives(self) -> List[Directive]:
        return [d for d in self.directives if d.measurable]
