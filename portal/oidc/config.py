"""Identity provider configuration from environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env(key: str) -> str | None:
    """Stripped value of `key`; unset and blank both read as None."""
    value = os.environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(key: str, default: int) -> int:
    value = _env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class OidcConfig:
    """
    OpenID Connect provider (CAS / Keycloak / ...) configuration from environment.

    Required:
        OIDC_ISSUER: Issuer URL, e.g. ``https://cas.example.org/cas/oidc``.
        OIDC_CLIENT_ID: Client id registered at the provider; used as audience.

    Optional:
        OIDC_AUDIENCE: Expected audience if different from the client id.
        OIDC_JWKS_URI: Key set URL; discovered from the issuer metadata when unset.
        OIDC_SUBJECT_CLAIM: Claim holding the local login (default ``sub``).
        OIDC_ALGORITHMS: Comma-separated accepted algorithms (default ``RS256``).
        CLOCK_SKEW_SECONDS: Leeway for exp/nbf/iat checks (default 120).
        JWKS_CACHE_TTL_SECONDS: How long to cache the key set (default 3600).
    """

    issuer: str
    client_id: str
    audience: str | None = None
    jwks_uri: str | None = None
    subject_claim: str = "sub"
    algorithms: tuple[str, ...] = ("RS256",)
    clock_skew_seconds: int = 120
    jwks_cache_ttl_seconds: int = 3600

    @property
    def expected_audience(self) -> str:
        return self.audience or self.client_id

    @property
    def discovery_url(self) -> str:
        return f"{self.issuer.rstrip('/')}/.well-known/openid-configuration"

    @classmethod
    def from_environ(cls) -> OidcConfig:
        issuer = _env("OIDC_ISSUER")
        client_id = _env("OIDC_CLIENT_ID")
        if issuer is None or client_id is None:
            raise ValueError("OIDC_ISSUER and OIDC_CLIENT_ID must be set")

        algorithms = tuple(a.strip() for a in (_env("OIDC_ALGORITHMS") or "").split(",") if a.strip())
        return cls(
            issuer=issuer,
            client_id=client_id,
            audience=_env("OIDC_AUDIENCE"),
            jwks_uri=_env("OIDC_JWKS_URI"),
            subject_claim=_env("OIDC_SUBJECT_CLAIM") or "sub",
            algorithms=algorithms or ("RS256",),
            clock_skew_seconds=_env_int("CLOCK_SKEW_SECONDS", 120),
            jwks_cache_ttl_seconds=_env_int("JWKS_CACHE_TTL_SECONDS", 3600),
        )
