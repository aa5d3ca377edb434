import pytest

from pgque.config.settings import Settings, get_settings


def test_default_settings():
    """Test default settings values."""
    settings = Settings()

    assert settings.app_name == "pgque"
    assert settings.version == "0.1.0"
    assert settings.environment == "development"
    assert settings.job_worker_count == 1
    assert settings.job_poll_interval_ms == 5000
    assert settings.job_default_priority is None


def test_worker_count_must_be_positive():
    """Test that zero workers is rejected."""
    with pytest.raises(ValueError, match="JOB_WORKER_COUNT must be at least 1"):
        Settings(job_worker_count=0)


def test_poll_interval_must_be_positive():
    """Test that a zero poll interval is rejected."""
    with pytest.raises(ValueError, match="JOB_POLL_INTERVAL_MS must be positive"):
        Settings(job_poll_interval_ms=0)


def test_job_settings_from_environment(monkeypatch):
    """Test that job settings are read from environment variables."""
    monkeypatch.setenv("JOB_WORKER_COUNT", "4")
    monkeypatch.setenv("JOB_DEFAULT_PRIORITY", "10")
    monkeypatch.setenv("JOB_MODULES", '["app.jobs", "billing.jobs"]')

    settings = Settings()

    assert settings.job_worker_count == 4
    assert settings.job_default_priority == 10
    assert settings.job_modules == ["app.jobs", "billing.jobs"]


def test_settings_dependency_injection():
    """Test the get_settings dependency function."""
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.app_name == "pgque"
