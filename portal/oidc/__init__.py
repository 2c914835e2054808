"""
Standalone OIDC token validation for the portal's identity provider.

This package has no dependency on other portal packages. Use
`OidcTokenValidator.validate()` with a bearer token to get an `IdentityAssertion`.
"""

from .config import OidcConfig
from .context import IdentityAssertion
from .validator import OidcTokenValidator, ValidationError, validate_token

__all__ = [
    "OidcConfig",
    "IdentityAssertion",
    "OidcTokenValidator",
    "ValidationError",
    "validate_token",
]
