"""
Settings tests.
"""

import pytest
from pydantic import ValidationError

from cadence.subscriptions.settings import (
    Environment,
    SchedulerBackend,
    Settings,
    get_settings,
    reset_settings,
)

pytestmark = pytest.mark.unit


class TestBillingSettings:
    def test_defaults(self):
        billing = Settings.BillingSettings()

        assert billing.charge_lookback_days == 2
        assert billing.trigger_interval_hours == 1
        assert billing.page_size == 1000

    def test_lookback_must_cover_missed_trigger(self):
        with pytest.raises(ValidationError, match="charge_lookback_days"):
            Settings.BillingSettings(charge_lookback_days=1, trigger_interval_hours=1)

    def test_longer_interval_needs_longer_lookback(self):
        with pytest.raises(ValidationError):
            Settings.BillingSettings(charge_lookback_days=2, trigger_interval_hours=25)

        assert Settings.BillingSettings(charge_lookback_days=3, trigger_interval_hours=25)


class TestSchedulerBackend:
    def test_test_environment_captures(self):
        assert Settings(environment=Environment.TEST).scheduler_backend is SchedulerBackend.TEST

    def test_development_runs_inline(self):
        settings = Settings(environment=Environment.DEVELOPMENT)

        assert settings.scheduler_backend is SchedulerBackend.INLINE

    def test_explicit_backend_wins(self):
        settings = Settings(environment=Environment.TEST, jobs={"scheduler": "CLOUD_TASKS"})

        assert settings.scheduler_backend is SchedulerBackend.CLOUD_TASKS


class TestEnvironmentOverrides:
    def test_nested_override(self, monkeypatch):
        monkeypatch.setenv("JOBS__SCHEDULER", "CELERY")
        monkeypatch.setenv("BILLING__PAGE_SIZE", "50")
        monkeypatch.setenv("WEBHOOKS__SECRET", "shhh")

        settings = Settings()

        assert settings.scheduler_backend is SchedulerBackend.CELERY
        assert settings.billing.page_size == 50
        assert settings.webhooks.secret == "shhh"

    def test_environment_is_case_insensitive(self):
        assert Settings(environment="PRODUCTION").is_production

    def test_singleton(self):
        reset_settings()
        first = get_settings()

        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first
