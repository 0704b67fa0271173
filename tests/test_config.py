from sealedproxy import ProxySettings
from sealedproxy.config import DEFAULT_FETCH_TIMEOUT


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SEALEDPROXY_SECRET", "s3cr3t-value")
    monkeypatch.setenv("SEALEDPROXY_FETCH_TIMEOUT", "3.5")
    monkeypatch.setenv("SEALEDPROXY_MAX_BYTES", "1024")
    monkeypatch.setenv("SEALEDPROXY_PORT", "9000")

    settings = ProxySettings.from_env()

    assert settings.secret == "s3cr3t-value"
    assert settings.fetch_timeout == 3.5
    assert settings.max_bytes == 1024
    assert settings.port == 9000
    assert "s3cr3t-value" not in repr(settings)


def test_missing_secret_falls_back_to_random_key(monkeypatch) -> None:
    monkeypatch.delenv("SEALEDPROXY_SECRET", raising=False)
    monkeypatch.delenv("SEALEDPROXY_FETCH_TIMEOUT", raising=False)

    first = ProxySettings.from_env()
    second = ProxySettings.from_env()

    assert len(first.secret) == 64
    assert first.secret != second.secret
    assert first.fetch_timeout == DEFAULT_FETCH_TIMEOUT
