import pydantic
import pytest
from sttgateway.config import GatewaySettings


def test_defaults():
    settings = GatewaySettings()
    assert settings.timeout == 30.0
    assert settings.max_retries == 3
    assert settings.retry_base_delay == 1.0
    assert settings.min_audio_bytes == 1000
    assert settings.poll_interval == 1.0
    assert settings.max_poll_attempts == 60
    assert settings.stream_timeout == 60.0
    assert settings.token_refresh_margin == 300.0
    assert settings.realtime_pacing is False
    assert settings.debug is False


def test_invalid_values_are_rejected():
    with pytest.raises(pydantic.ValidationError):
        GatewaySettings(max_retries=0)
    with pytest.raises(pydantic.ValidationError):
        GatewaySettings(stream_timeout=0)


def test_from_env(monkeypatch):
    monkeypatch.setenv("STT_GATEWAY_TIMEOUT", "12.5")
    monkeypatch.setenv("STT_GATEWAY_MAX_RETRIES", "5")
    monkeypatch.setenv("STT_GATEWAY_DEBUG", "true")
    monkeypatch.setenv("STT_GATEWAY_REALTIME_PACING", "0")

    settings = GatewaySettings.from_env()
    assert settings.timeout == 12.5
    assert settings.max_retries == 5
    assert settings.debug is True
    assert settings.realtime_pacing is False
    # Untouched values keep their defaults
    assert settings.min_audio_bytes == 1000


def test_from_env_with_prefix(monkeypatch):
    monkeypatch.setenv("MYAPP_MIN_AUDIO_BYTES", "6400")
    monkeypatch.setenv("STT_GATEWAY_MIN_AUDIO_BYTES", "100")

    settings = GatewaySettings.from_env(prefix="MYAPP_")
    assert settings.min_audio_bytes == 6400
