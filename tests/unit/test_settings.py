"""
Unit Tests for ScopeAudit configuration and errors.
"""

import pytest

from scopeaudit.config.errors import ErrorCode, GeometryValidationError, ScopeAuditError, ValidationError
from scopeaudit.config.settings import DeviationPolicy, Settings, settings


class TestDeviationPolicy:
    """Tests for DeviationPolicy defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("DEVIATION_WALL_CRITICAL_SF", "DEVIATION_VARIANCE_PCT", "DEVIATION_MISSING_TRADE_MAX"):
            monkeypatch.delenv(name, raising=False)

        policy = DeviationPolicy()

        assert policy.wall_critical_delta_sf == 400
        assert policy.variance_threshold_pct == 20
        assert policy.missing_trade_max == 5000

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEVIATION_WALL_CRITICAL_SF", "1000")

        assert DeviationPolicy().wall_critical_delta_sf == 1000

    def test_validate_rejects_inverted_tiers(self):
        with pytest.raises(ValueError):
            DeviationPolicy(wall_critical_delta_sf=100, wall_high_delta_sf=200).validate()

    def test_validate_rejects_inverted_bands(self):
        with pytest.raises(ValueError):
            DeviationPolicy(missing_trade_min=6000, missing_trade_max=5000).validate()

    def test_non_numeric_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("DEVIATION_WALL_HIGH_SF", "lots")

        with pytest.raises(ValueError, match="DEVIATION_WALL_HIGH_SF must be a number"):
            DeviationPolicy()

    def test_settings_policy_reads_environment_on_access(self, monkeypatch):
        monkeypatch.setenv("DEVIATION_WALL_CRITICAL_SF", "900")
        assert settings.policy.wall_critical_delta_sf == 900

        monkeypatch.setenv("DEVIATION_WALL_CRITICAL_SF", "450")
        assert settings.policy.wall_critical_delta_sf == 450

    def test_settings_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        assert Settings().log_level == "DEBUG"


class TestErrors:
    """Tests for the ScopeAuditError hierarchy."""

    def test_to_dict(self):
        error = ScopeAuditError(ErrorCode.CALCULATION_ERROR, "boom", {"step": 1})

        assert error.to_dict() == {"code": "CALCULATION_ERROR", "message": "boom", "details": {"step": 1}}

    def test_validation_error_records_field(self):
        error = ValidationError("bad quantity", field="quantity")

        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.details == {"field": "quantity"}

    def test_geometry_error_carries_room_and_remediation(self):
        error = GeometryValidationError(
            code=ErrorCode.HEIGHT_EXCEEDS_CEILING,
            message="too tall",
            room_name="Kitchen",
            remediation="Check ceiling items",
        )

        assert isinstance(error, ValidationError)
        assert error.details == {"room_name": "Kitchen", "remediation": "Check ceiling items"}
        assert "Kitchen" in repr(error)
