from __future__ import annotations

import pytest
from pydantic import ValidationError

from studio_engine.core.config import Settings


def test_defaults_match_studio_policy() -> None:
    settings = Settings(_env_file=None)

    assert settings.studio_timezone == "Asia/Bangkok"
    assert settings.auto_confirm_after_hours == 12
    assert settings.package_validity_months == 12
    assert settings.consistency_base_hour == 9
    assert settings.engine_mode == "loop"


def test_engine_mode_is_case_insensitive() -> None:
    settings = Settings(_env_file=None, engine_mode=" ONCE ")
    assert settings.engine_mode == "once"


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, studio_timezone="Mars/Olympus_Mons")


def test_non_positive_interval_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, auto_confirm_interval_seconds=0)


def test_zero_hour_auto_confirm_allowed_in_development() -> None:
    settings = Settings(_env_file=None, app_env="development", auto_confirm_after_hours=0)
    assert settings.auto_confirm_after_hours == 0


def test_zero_hour_auto_confirm_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="production", auto_confirm_after_hours=0)


def test_studio_zone_resolves_configured_timezone() -> None:
    settings = Settings(_env_file=None, studio_timezone="Europe/Berlin")
    assert settings.studio_zone.key == "Europe/Berlin"
