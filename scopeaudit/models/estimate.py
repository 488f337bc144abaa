"""Structured estimate Pydantic models for ScopeAudit.

Line items arrive already parsed and confidence-gated upstream; the
engine treats them as immutable input.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ActionType(str, Enum):
    """Line item action."""

    REMOVE = "REMOVE"
    REPLACE = "REPLACE"
    INSTALL = "INSTALL"
    REPAIR = "REPAIR"
    CLEAN = "CLEAN"
    OTHER = "OTHER"


class LineItem(BaseModel):
    """One estimate line item."""

    trade_code: str = Field(..., alias="tradeCode", description="Trade code (e.g., 'DRY', 'INS')")
    description: str = Field(..., description="Line item description")
    action_type: ActionType = Field(default=ActionType.OTHER, alias="actionType")
    quantity: float = Field(..., description="Quantity in `unit`")
    unit: str = Field(..., description="Unit of measure (SF, LF, EA, ...)")
    rcv: float = Field(default=0.0, description="Replacement cost value ($)")
    acv: float = Field(default=0.0, description="Actual cash value ($)")
    line_number: Optional[int] = Field(default=None, alias="lineNumber")

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def depreciation(self) -> float:
        """RCV minus ACV."""
        return self.rcv - self.acv


class Estimate(BaseModel):
    """Ordered list of line items with upstream parse confidence."""

    estimate_id: Optional[str] = Field(default=None, alias="estimateId")
    line_items: List[LineItem] = Field(default_factory=list, alias="lineItems")
    parse_confidence: float = Field(default=1.0, alias="parseConfidence", ge=0, le=1)

    class Config:
        frozen = True
        populate_by_name = True

    def items_for_trade(self, *trade_codes: str) -> List[LineItem]:
        """Line items whose trade code is one of `trade_codes`, in order."""
        codes = {code.upper() for code in trade_codes}
        return [item for item in self.line_items if item.trade_code.upper() in codes]

    def has_trade(self, *trade_codes: str) -> bool:
        return bool(self.items_for_trade(*trade_codes))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
