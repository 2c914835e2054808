from pathlib import Path

from portal.settings import DEFAULT_AUTH_SECRET, Settings


def test_defaults(monkeypatch):
    for name in ("PORTAL_DB_URL", "PORTAL_AUTH_SECRET", "PORTAL_SECURITY_CONFIG_PATH", "PORTAL_SESSION_SCHEME"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()

    assert settings.resolved_db_url().startswith("sqlite:///")
    assert settings.resolved_db_url().endswith("portal.db")
    assert settings.resolved_security_config_path().name == "security_config.yaml"
    assert settings.session_scheme == "aes-cbc-hmac"
    assert settings.uses_default_secret()


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PORTAL_DB_URL", "sqlite:///:memory:")
    monkeypatch.setenv("PORTAL_AUTH_SECRET", "prod-secret")
    monkeypatch.setenv("PORTAL_SECURITY_CONFIG_PATH", str(tmp_path / "security.yaml"))
    monkeypatch.setenv("PORTAL_SESSION_SCHEME", "aes-gcm")
    settings = Settings()

    assert settings.resolved_db_url() == "sqlite:///:memory:"
    assert settings.resolved_security_config_path() == Path(tmp_path / "security.yaml")
    assert settings.session_scheme == "aes-gcm"
    assert not settings.uses_default_secret()
    assert settings.auth_secret != DEFAULT_AUTH_SECRET
