"""Tests for OidcConfig from environment."""

import pytest

from portal.oidc import OidcConfig

_OIDC_VARS = (
    "OIDC_ISSUER",
    "OIDC_CLIENT_ID",
    "OIDC_AUDIENCE",
    "OIDC_JWKS_URI",
    "OIDC_SUBJECT_CLAIM",
    "OIDC_ALGORITHMS",
    "CLOCK_SKEW_SECONDS",
    "JWKS_CACHE_TTL_SECONDS",
)


@pytest.fixture
def oidc_env(monkeypatch):
    for name in _OIDC_VARS:
        monkeypatch.delenv(name, raising=False)

    def _set(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, value)

    return _set


def test_config_requires_issuer_and_client(oidc_env):
    with pytest.raises(ValueError, match="OIDC_ISSUER and OIDC_CLIENT_ID"):
        OidcConfig.from_environ()

    oidc_env(OIDC_ISSUER="https://cas.example.org/cas/oidc")
    with pytest.raises(ValueError):
        OidcConfig.from_environ()


def test_config_defaults(oidc_env):
    oidc_env(OIDC_ISSUER=" https://cas.example.org/cas/oidc/ ", OIDC_CLIENT_ID="portal")
    cfg = OidcConfig.from_environ()

    assert cfg.issuer == "https://cas.example.org/cas/oidc/"
    assert cfg.expected_audience == "portal"
    assert cfg.jwks_uri is None
    assert cfg.discovery_url == "https://cas.example.org/cas/oidc/.well-known/openid-configuration"
    assert cfg.subject_claim == "sub"
    assert cfg.algorithms == ("RS256",)
    assert cfg.clock_skew_seconds == 120
    assert cfg.jwks_cache_ttl_seconds == 3600


def test_config_overrides(oidc_env):
    oidc_env(
        OIDC_ISSUER="https://idp.example.org",
        OIDC_CLIENT_ID="portal",
        OIDC_AUDIENCE="portal-api",
        OIDC_JWKS_URI="https://idp.example.org/keys",
        OIDC_SUBJECT_CLAIM="preferred_username",
        OIDC_ALGORITHMS="RS256, ES256",
        CLOCK_SKEW_SECONDS="30",
        JWKS_CACHE_TTL_SECONDS="not-a-number",
    )
    cfg = OidcConfig.from_environ()

    assert cfg.expected_audience == "portal-api"
    assert cfg.jwks_uri == "https://idp.example.org/keys"
    assert cfg.subject_claim == "preferred_username"
    assert cfg.algorithms == ("RS256", "ES256")
    assert cfg.clock_skew_seconds == 30
    # Unparseable ints fall back to the default
    assert cfg.jwks_cache_ttl_seconds == 3600


def test_blank_optional_values_are_ignored(oidc_env):
    oidc_env(OIDC_ISSUER="https://idp", OIDC_CLIENT_ID="c", OIDC_AUDIENCE="  ", OIDC_SUBJECT_CLAIM="")
    cfg = OidcConfig.from_environ()
    assert cfg.audience is None
    assert cfg.subject_claim == "sub"
