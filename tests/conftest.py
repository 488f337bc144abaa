"""Pytest configuration and shared fixtures for ScopeAudit tests."""

import os
import sys

import pytest
import structlog

# ============================================================================
# Ensure local imports work (scopeaudit/, tests/) without an install
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from scopeaudit.config.settings import DeviationPolicy  # noqa: E402
from tests.fixtures.mock_estimate_data import (  # noqa: E402
    BEDROOM,
    LIVING_ROOM,
    TEST_COST_BASELINE,
    full_height_directive,
    make_estimate,
)


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test (e.g. the CLI) applied."""
    yield
    structlog.reset_defaults()


# ============================================================================
# Policy and Cost Data
# ============================================================================

@pytest.fixture
def policy():
    """Default thresholds, independent of the environment."""
    return DeviationPolicy(
        wall_critical_delta_sf=400,
        wall_high_delta_sf=200,
        insulation_critical_delta_sf=500,
        insulation_high_delta_sf=200,
        ceiling_high_delta_sf=200,
        variance_threshold_pct=20,
        variance_escalation_pct=40,
        missing_trade_min=1000,
        missing_trade_max=5000,
        under_scoped_removal_min=2000,
        under_scoped_removal_max=8000,
        low_confidence_threshold=0.70,
        max_room_length_ft=100,
        max_room_height_ft=20,
    )


@pytest.fixture
def cost_baseline():
    """Small versioned baseline with known unit costs."""
    return TEST_COST_BASELINE


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def living_room():
    """20 x 15 x 8 ft: perimeter 70 LF, wall area 560 SF."""
    return LIVING_ROOM


@pytest.fixture
def bedroom():
    """10 x 10 x 8 ft: perimeter 40 LF, wall area 320 SF."""
    return BEDROOM


@pytest.fixture
def sample_estimate_id():
    return "est-test-12345"


@pytest.fixture
def two_foot_cut_estimate(sample_estimate_id):
    """A 2 ft flood cut over the living room perimeter (140 SF), unmapped."""
    return make_estimate(
        [("DRY", "Remove drywall 2ft flood cut", "REMOVE", 140.0, "SF")],
        estimate_id=sample_estimate_id,
    )


@pytest.fixture
def full_height_report():
    return full_height_directive()
