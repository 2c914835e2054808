"""Identity assertion produced after validating an OIDC token."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityAssertion:
    """
    Proof that the identity provider authenticated `subject` for this request.

    Only `subject` is used for authorization (it is matched against the local
    user's login); the other fields are informational.
    """

    subject: str
    """External user id (the configured subject claim, usually ``sub``)."""

    email: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"subject": self.subject, "email": self.email, "name": self.name}
