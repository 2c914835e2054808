"""Tests for OIDC token validation and claim extraction."""

import time
from unittest.mock import patch

import jwt
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm
from jwt.api_jwk import PyJWK

from portal.oidc import OidcConfig, OidcTokenValidator, ValidationError, validate_token
from portal.oidc.validator import _extract_assertion

ISSUER = "https://cas.example.org/cas/oidc"
KID = "portal-key-1"


def _config(**overrides) -> OidcConfig:
    values = dict(
        issuer=ISSUER,
        client_id="portal",
        audience=None,
        jwks_uri="https://cas.example.org/cas/oidc/jwks",
        subject_claim="sub",
        algorithms=("RS256",),
        clock_skew_seconds=60,
        jwks_cache_ttl_seconds=3600,
    )
    values.update(overrides)
    return OidcConfig(**values)


@pytest.fixture(scope="module")
def rsa_key():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk["kid"] = KID
    return private_key, PyJWK.from_dict(jwk)


def _token(private_key, **claims) -> str:
    now = int(time.time())
    payload = {"sub": "amartin", "iss": ISSUER, "aud": "portal", "exp": now + 3600, "iat": now}
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": KID})


def _validate(token, signing_key, config=None):
    with patch("portal.oidc.validator.JWKSCache") as mock_cache:
        mock_cache.return_value.get_signing_key.return_value = signing_key
        return OidcTokenValidator(config=config or _config()).validate(token)


def test_extract_assertion():
    assertion = _extract_assertion(
        {"sub": "amartin", "email": "a@example.org", "given_name": "Alice", "family_name": "Martin"}
    )
    assert assertion.subject == "amartin"
    assert assertion.email == "a@example.org"
    assert assertion.name == "Alice Martin"


def test_extract_assertion_numeric_subject():
    assert _extract_assertion({"sub": 12345}).subject == "12345"


def test_extract_assertion_custom_claim():
    payload = {"sub": "opaque-id", "preferred_username": "amartin"}
    assert _extract_assertion(payload, "preferred_username").subject == "amartin"
    with pytest.raises(ValidationError):
        _extract_assertion({"sub": "x"}, "preferred_username")


def test_extract_assertion_missing_subject():
    with pytest.raises(ValidationError):
        _extract_assertion({"sub": ""})


def test_valid_token(rsa_key):
    private_key, public_jwk = rsa_key
    assertion = _validate(_token(private_key), public_jwk)
    assert assertion.subject == "amartin"
    assert assertion.to_dict() == {"subject": "amartin", "email": None, "name": None}


def test_not_a_jwt():
    with pytest.raises(ValidationError):
        OidcTokenValidator(config=_config()).validate("not-a-jwt")


def test_missing_kid():
    token = jwt.encode({"sub": "u"}, "x" * 32, algorithm="HS256")
    with pytest.raises(ValidationError, match="key id"):
        OidcTokenValidator(config=_config()).validate(token)


def test_unknown_kid(rsa_key):
    private_key, _ = rsa_key
    with pytest.raises(ValidationError, match="unknown signing key"):
        _validate(_token(private_key), None)


def test_jwks_unavailable(rsa_key):
    private_key, _ = rsa_key
    with patch("portal.oidc.validator.JWKSCache") as mock_cache:
        mock_cache.return_value.get_signing_key.side_effect = requests.ConnectionError("down")
        with pytest.raises(ValidationError, match="unavailable"):
            OidcTokenValidator(config=_config()).validate(_token(private_key))


def test_expired_token(rsa_key):
    private_key, public_jwk = rsa_key
    token = _token(private_key, exp=int(time.time()) - 3600)
    with pytest.raises(ValidationError, match="expired"):
        _validate(token, public_jwk)


def test_expiry_within_clock_skew_is_accepted(rsa_key):
    private_key, public_jwk = rsa_key
    token = _token(private_key, exp=int(time.time()) - 10)
    assert _validate(token, public_jwk, _config(clock_skew_seconds=60)).subject == "amartin"


def test_wrong_issuer(rsa_key):
    private_key, public_jwk = rsa_key
    with pytest.raises(ValidationError, match="issuer"):
        _validate(_token(private_key, iss="https://evil.example.org"), public_jwk)


def test_wrong_audience(rsa_key):
    private_key, public_jwk = rsa_key
    with pytest.raises(ValidationError, match="audience"):
        _validate(_token(private_key, aud="another-client"), public_jwk)


def test_audience_override(rsa_key):
    private_key, public_jwk = rsa_key
    token = _token(private_key, aud="portal-api")
    assert _validate(token, public_jwk, _config(audience="portal-api")).subject == "amartin"


def test_missing_exp_rejected(rsa_key):
    private_key, public_jwk = rsa_key
    token = _token(private_key, exp=None)
    with pytest.raises(ValidationError):
        _validate(token, public_jwk)


def test_signature_from_other_key_rejected(rsa_key):
    _, public_jwk = rsa_key
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    with pytest.raises(ValidationError):
        _validate(_token(other), public_jwk)


def test_validate_token_helper(rsa_key):
    private_key, public_jwk = rsa_key
    with patch("portal.oidc.validator.JWKSCache") as mock_cache:
        mock_cache.return_value.get_signing_key.return_value = public_jwk
        assertion = validate_token(_token(private_key, email="a@example.org"), config=_config())
    assert assertion.subject == "amartin"
    assert assertion.email == "a@example.org"
