"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def test_prod_settings_rejects_wildcard_origins():
    """Test that production settings reject wildcard origins"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        JWT_SECRET_KEY="a" * 32,  # Valid length
        APP_ENV="prod",
        ALLOWED_ORIGINS="*"
    )

    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    """Test that production settings reject short JWT secret"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        JWT_SECRET_KEY="short",  # Too short
        APP_ENV="prod",
        ALLOWED_ORIGINS="https://example.com"
    )

    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allows_wildcard_origins():
    """Test that local settings allow wildcard origins"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        JWT_SECRET_KEY="test-key",
        APP_ENV="local",
        ALLOWED_ORIGINS="*"
    )

    # Should not raise error
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list():
    """Test parsing of ALLOWED_ORIGINS"""
    settings = Settings(
        DATABASE_URL="postgresql://test",
        JWT_SECRET_KEY="test-key",
        ALLOWED_ORIGINS="https://example.com, https://app.example.com"
    )
    origins = settings.get_allowed_origins_list()
    assert origins == ["https://example.com", "https://app.example.com"]


def test_unknown_app_env_rejected():
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite://", JWT_SECRET_KEY="k", APP_ENV="qa")


def test_default_timezone_must_be_known():
    """DEFAULT_TIMEZONE is validated against the IANA database"""
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite://", JWT_SECRET_KEY="k", DEFAULT_TIMEZONE="Mars/Olympus_Mons")

    settings = Settings(DATABASE_URL="sqlite://", JWT_SECRET_KEY="k", DEFAULT_TIMEZONE="Asia/Kolkata")
    assert settings.DEFAULT_TIMEZONE == "Asia/Kolkata"


def test_attendance_defaults():
    settings = Settings(DATABASE_URL="sqlite://", JWT_SECRET_KEY="k")
    assert settings.DEFAULT_GRACE_MINUTES == 15
    assert settings.DEFAULT_OVERTIME_THRESHOLD_MINUTES == 480
    assert settings.LATE_CHECKIN_SWEEP_INTERVAL_SECONDS == 900
    assert settings.LATE_ALERT_WINDOW_HOURS == 3
    assert settings.REGULARIZATION_SEARCH_WINDOW_DAYS == 2
