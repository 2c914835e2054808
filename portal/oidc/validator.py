"""
Validate an OIDC token issued by the portal's identity provider.

A token is trusted only after its signature (key looked up by ``kid`` in the
provider JWKS), issuer, audience and lifetime checks all pass. The local login
is then read from the configured subject claim.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from .config import OidcConfig
from .context import IdentityAssertion
from .jwks_cache import JWKSCache

logger = logging.getLogger(__name__)

# Checked in order; anything else derived from InvalidTokenError is a generic rejection.
_REJECTIONS: tuple[tuple[type[jwt.InvalidTokenError], str], ...] = (
    (jwt.ExpiredSignatureError, "Token expired"),
    (jwt.InvalidIssuerError, "Invalid token: issuer"),
    (jwt.InvalidAudienceError, "Invalid token: audience"),
    (jwt.MissingRequiredClaimError, "Invalid token: missing required claim"),
    (jwt.InvalidSignatureError, "Invalid token: signature"),
)


class ValidationError(Exception):
    """Token rejected. Messages never contain the token itself."""


def _key_id(token: str) -> str | None:
    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        return None
    kid = header.get("kid") if isinstance(header, dict) else None
    return kid or None


def _rejection_reason(exc: jwt.InvalidTokenError) -> str:
    for exc_type, reason in _REJECTIONS:
        if isinstance(exc, exc_type):
            return reason
    return "Invalid token"


def _extract_assertion(payload: dict[str, Any], subject_claim: str = "sub") -> IdentityAssertion:
    """
    Build an `IdentityAssertion` from validated claims.

    CAS-style providers put the login in ``sub``; others expose it as
    ``preferred_username``, hence the configurable claim. Numeric subjects are
    normalised to their integer string form.
    """

    raw = payload.get(subject_claim)
    if raw is None or raw == "":
        raise ValidationError(f"Invalid token: missing {subject_claim} claim")
    subject = str(int(raw)) if isinstance(raw, (int, float)) else str(raw)

    email = payload.get("email")
    name = payload.get("name")
    if name is None and (payload.get("given_name") or payload.get("family_name")):
        name = " ".join(p for p in (payload.get("given_name"), payload.get("family_name")) if p)

    return IdentityAssertion(
        subject=subject,
        email=str(email) if email is not None else None,
        name=str(name) if name is not None else None,
    )


class OidcTokenValidator:
    """Validates provider tokens against the provider JWKS (cached across calls)."""

    def __init__(self, config: OidcConfig | None = None) -> None:
        self._config = config or OidcConfig.from_environ()
        self._keys = JWKSCache(
            jwks_uri=self._config.jwks_uri,
            ttl_seconds=self._config.jwks_cache_ttl_seconds,
            discovery_url=self._config.discovery_url,
        )

    def _signing_key(self, token: str) -> Any:
        kid = _key_id(token)
        if kid is None:
            logger.debug("Rejecting token without a usable kid header")
            raise ValidationError("Invalid token: missing key id")

        try:
            key = self._keys.get_signing_key(kid)
        except (OSError, ValueError) as exc:
            # requests.RequestException is an OSError; bad JSON is a ValueError.
            logger.warning("Provider JWKS unavailable: %s", type(exc).__name__)
            raise ValidationError("Invalid token: signing keys unavailable") from exc

        if key is None:
            logger.info("Token signed with a key absent from the provider JWKS kid=%s", kid)
            raise ValidationError("Invalid token: unknown signing key")
        return key.key

    def validate(self, token: str) -> IdentityAssertion:
        """Return the asserted identity or raise ValidationError."""
        key = self._signing_key(token)
        cfg = self._config
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=list(cfg.algorithms),
                audience=cfg.expected_audience,
                issuer=cfg.issuer,
                leeway=cfg.clock_skew_seconds,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.InvalidTokenError as exc:
            reason = _rejection_reason(exc)
            logger.info("Token rejected: %s (%s)", reason, type(exc).__name__)
            raise ValidationError(reason) from exc

        return _extract_assertion(claims, cfg.subject_claim)


def validate_token(token: str, config: OidcConfig | None = None) -> IdentityAssertion:
    """One-shot helper; prefer a long-lived `OidcTokenValidator` to reuse its JWKS cache."""
    return OidcTokenValidator(config=config).validate(token)
