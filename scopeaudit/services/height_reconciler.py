"""
Height/Quantity Reconciler for ScopeAudit.

Infers the removal height an estimate implies (quantity / perimeter),
checks it against the real ceiling, and turns a directive's abstract
quantity rule into a concrete target height.

Height inference returns an explicit result variant:
    try_infer_height(...) -> HeightInference | HeightFailure
Callers branch on the type. infer_height() unwraps the variant and
raises GeometryValidationError on failure.
"""

from dataclasses import dataclass
from typing import Optional, Union
import math

import structlog

from scopeaudit.config.errors import ErrorCode, GeometryValidationError
from scopeaudit.models.directive import QuantityRule

logger = structlog.get_logger(__name__)

# Literal cut heights (ft)
CUT_HEIGHTS = {
    QuantityRule.CUT_2FT: 2.0,
    QuantityRule.CUT_4FT: 4.0,
    QuantityRule.CUT_6FT: 6.0,
}

HEIGHT_RULES = frozenset(
    {QuantityRule.FULL_HEIGHT, QuantityRule.CUT_2FT, QuantityRule.CUT_4FT, QuantityRule.CUT_6FT}
)

# Float noise allowed when comparing an inferred height with the ceiling
HEIGHT_TOLERANCE_FT = 1e-6


# =============================================================================
# Result Variant
# =============================================================================


@dataclass(frozen=True)
class HeightInference:
    """Successful height inference."""

    height: float
    wall_quantity_sf: float
    perimeter_lf: float
    ceiling_height: float


@dataclass(frozen=True)
class HeightFailure:
    """Failed height inference with a structured error code."""

    code: str
    message: str
    room_name: Optional[str] = None
    remediation: Optional[str] = None

    def to_error(self) -> GeometryValidationError:
        return GeometryValidationError(
            code=self.code,
            message=self.message,
            room_name=self.room_name,
            remediation=self.remediation,
        )


HeightResult = Union[HeightInference, HeightFailure]


@dataclass(frozen=True)
class TargetHeight:
    """A resolved directive height.

    `clamped` is set when a literal cut exceeded the ceiling and was
    limited to it.
    """

    height: float
    rule: QuantityRule
    clamped: bool = False


# =============================================================================
# Target Height Resolution
# =============================================================================


def is_height_resolvable(rule: Optional[QuantityRule]) -> bool:
    """True for rules that map to a wall height (CEILING_ONLY maps to 0)."""
    return rule is not None and (rule in HEIGHT_RULES or rule == QuantityRule.CEILING_ONLY)


def resolve_target_height(rule: QuantityRule, ceiling_height: float) -> TargetHeight:
    """Turn a quantity rule into a wall height for a room (or average).

    FULL_HEIGHT -> the ceiling height; 2/4/6 FT cuts -> the literal value,
    limited to the ceiling height; CEILING_ONLY -> 0 (ceiling area is a
    separate comparison).

    Raises:
        ValueError: for SPECIFIC_AREA, which has no height.
    """
    if rule == QuantityRule.FULL_HEIGHT:
        return TargetHeight(height=ceiling_height, rule=rule)
    if rule in CUT_HEIGHTS:
        cut = CUT_HEIGHTS[rule]
        if cut > ceiling_height:
            return TargetHeight(height=ceiling_height, rule=rule, clamped=True)
        return TargetHeight(height=cut, rule=rule)
    if rule == QuantityRule.CEILING_ONLY:
        return TargetHeight(height=0.0, rule=rule)
    raise ValueError(f"Quantity rule {rule.value} is not height-resolvable")


# =============================================================================
# Height Inference
# =============================================================================


def try_infer_height(
    wall_quantity_sf: float,
    perimeter_lf: float,
    ceiling_height: float,
    room_name: Optional[str] = None,
) -> HeightResult:
    """Infer removal height = wall quantity / perimeter.

    Returns HeightFailure(INVALID_PERIMETER) for zero/non-finite
    perimeter, and HeightFailure(HEIGHT_EXCEEDS_CEILING) when the implied
    height is above the ceiling, which nearly always means ceiling
    removal was folded into the wall quantity.
    """
    label = room_name or "All rooms"

    if perimeter_lf is None or not math.isfinite(perimeter_lf) or perimeter_lf <= 0:
        return HeightFailure(
            code=ErrorCode.INVALID_PERIMETER,
            message=f"{label}: perimeter is {perimeter_lf}; cannot infer removal height",
            room_name=room_name,
            remediation="Check room length and width measurements",
        )

    if not math.isfinite(wall_quantity_sf) or wall_quantity_sf < 0:
        return HeightFailure(
            code=ErrorCode.INVALID_FIELD,
            message=f"{label}: wall removal quantity is {wall_quantity_sf}; must be a finite value >= 0",
            room_name=room_name,
            remediation="Check line item quantities for credits or parse errors",
        )

    height = wall_quantity_sf / perimeter_lf

    if height > ceiling_height + HEIGHT_TOLERANCE_FT:
        return HeightFailure(
            code=ErrorCode.HEIGHT_EXCEEDS_CEILING,
            message=(
                f"{label}: extracted estimate height ({height:.1f} ft) exceeds ceiling height "
                f"({ceiling_height:g} ft). Either ceiling removal is included in the wall "
                f"quantity or the dimension data is incorrect."
            ),
            room_name=room_name,
            remediation="Check if ceiling removal is included in wall quantity",
        )

    return HeightInference(
        height=height,
        wall_quantity_sf=wall_quantity_sf,
        perimeter_lf=perimeter_lf,
        ceiling_height=ceiling_height,
    )


def infer_height(
    wall_quantity_sf: float,
    perimeter_lf: float,
    ceiling_height: float,
    room_name: Optional[str] = None,
) -> HeightInference:
    """Like try_infer_height() but raises on failure.

    Raises:
        GeometryValidationError: INVALID_PERIMETER, INVALID_FIELD or
            HEIGHT_EXCEEDS_CEILING
    """
    result = try_infer_height(wall_quantity_sf, perimeter_lf, ceiling_height, room_name)
    if isinstance(result, HeightFailure):
        logger.warning(
            "height_inference_failed",
            code=result.code,
            room_name=room_name,
            wall_quantity_sf=wall_quantity_sf,
            perimeter_lf=perimeter_lf,
        )
        raise result.to_error()
    return result
