"""
Tests for configuration loading and user-facing error messages.
"""

from pathlib import Path

import pytest

from transcreator.config import AppConfig
from transcreator.errors import AgentContractViolation, InputError, ModelUnavailable, user_message


def test_config_defaults(monkeypatch):
    for name in ("APP_ENV", "TRANSCREATOR_BATCH_SIZE", "TRANSCREATOR_MAX_RETRIES", "TRANSCREATOR_STORE_DIR"):
        monkeypatch.delenv(name, raising=False)

    config = AppConfig.from_env()

    assert config.batch_size == 10
    assert config.max_retries == 3
    assert config.initial_backoff == pytest.approx(0.2)
    assert config.cps_threshold == pytest.approx(22.0)
    assert config.store_dir == Path(".transcreator")
    assert not config.is_production


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("TRANSCREATOR_BATCH_SIZE", "25")
    monkeypatch.setenv("TRANSCREATOR_INITIAL_BACKOFF", "0.5")

    config = AppConfig.from_env()

    assert config.is_production
    assert config.batch_size == 25
    assert config.initial_backoff == pytest.approx(0.5)


@pytest.mark.parametrize("value", ["zero", "0", "-3"])
def test_config_rejects_bad_batch_size(monkeypatch, value):
    monkeypatch.setenv("TRANSCREATOR_BATCH_SIZE", value)

    with pytest.raises(InputError):
        AppConfig.from_env()


def test_user_message_hides_details_in_production():
    err = ModelUnavailable("gpt-4o", 3, RuntimeError("secret upstream detail"))

    public = user_message(err, production=True, operation="blueprint")
    debug = user_message(err, production=False, operation="blueprint")

    assert public.startswith("[service_unavailable]")
    assert "secret" not in public
    assert "secret upstream detail" in debug
    assert debug.startswith("[service_unavailable] Blueprint generation failed:")


def test_status_classifications():
    assert InputError("x").status == "bad_input"
    violation = AgentContractViolation("qa_batch", 10, 9)
    assert violation.status == "bad_gateway"
    assert "expected 10" in str(violation)
