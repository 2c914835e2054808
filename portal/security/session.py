"""
Tamper-evident session cookie codec.

Default scheme (``aes-cbc-hmac``), compatible with already issued cookies::

    hex(iv) + ":" + hex(aes_256_cbc(payload)) + "." + hex(hmac_sha256(secret, "iv:ciphertext"))

The key is the secret padded with ``"0"`` (or truncated) to 32 bytes; the MAC is
keyed with the secret string itself. The optional ``aes-gcm`` scheme replaces
the separate MAC with authenticated encryption::

    hex(nonce) + ":" + hex(aes_256_gcm(payload) || tag)

Payloads are JSON produced by `SessionPayload`. Nothing in this module touches
HTTP objects; cookie attributes live in `CookiePolicy`.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Literal

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, ValidationError

from portal.security.errors import SessionIntegrityFailure
from portal.security.principal import Membership, User, scope_from_ids

logger = logging.getLogger(__name__)

SessionScheme = Literal["aes-cbc-hmac", "aes-gcm"]

SESSION_MAX_AGE = 60 * 60 * 24 * 7


class MembershipPayload(BaseModel):
    id: int
    association_id: int | None = None
    list_id: int | None = None
    role_name: str = ""
    permissions: int = 0
    hierarchy: int = 0
    visible: bool = True


class SessionPayload(BaseModel):
    id: int
    first_name: str
    last_name: str
    login: str
    email: str
    promo: int | None = None
    permissions: int = 0
    admin: bool = False
    memberships: list[MembershipPayload] = []

    @classmethod
    def from_user(cls, user: User) -> SessionPayload:
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            login=user.login,
            email=user.email,
            promo=user.promo,
            permissions=user.permissions,
            admin=user.admin,
            memberships=[
                MembershipPayload(
                    id=m.id,
                    association_id=m.association_id,
                    list_id=m.list_id,
                    role_name=m.role_name,
                    permissions=m.permissions,
                    hierarchy=m.hierarchy,
                    visible=m.visible,
                )
                for m in user.memberships
            ],
        )

    def to_user(self) -> User:
        return User(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            login=self.login,
            email=self.email,
            promo=self.promo,
            permissions=self.permissions,
            admin=self.admin,
            memberships=tuple(
                Membership(
                    id=m.id,
                    user_id=self.id,
                    scope=scope_from_ids(m.association_id, m.list_id),
                    role_name=m.role_name,
                    permissions=m.permissions,
                    hierarchy=m.hierarchy,
                    visible=m.visible,
                )
                for m in self.memberships
            ),
        )


def derive_key(secret: str) -> bytes:
    return secret.encode("utf-8").ljust(32, b"0")[:32]


class SessionCodec:
    """
    Encrypts/signs a `User` into a cookie value and back.

    `read_session` never raises: any integrity problem yields None.
    """

    def __init__(self, secret: str, scheme: SessionScheme = "aes-cbc-hmac") -> None:
        if not secret:
            raise ValueError("Session secret must not be empty")
        if scheme not in ("aes-cbc-hmac", "aes-gcm"):
            raise ValueError(f"Unknown session scheme: {scheme!r}")
        self._secret = secret.encode("utf-8")
        self._key = derive_key(secret)
        self.scheme: SessionScheme = scheme

    def create_session(self, user: User) -> str:
        data = SessionPayload.from_user(user).model_dump_json().encode("utf-8")
        if self.scheme == "aes-gcm":
            return self._encrypt_gcm(data)
        encrypted = self._encrypt_cbc(data)
        return f"{encrypted}.{self._sign(encrypted)}"

    def read_session(self, value: str | None) -> User | None:
        if not value:
            return None
        try:
            return self.decode(value)
        except SessionIntegrityFailure as exc:
            logger.info("Discarding untrusted session cookie: %s", exc)
            return None

    def decode(self, value: str) -> User:
        """Strict variant of `read_session`; raises SessionIntegrityFailure."""
        if self.scheme == "aes-gcm":
            data = self._decrypt_gcm(value)
        else:
            encrypted, sep, signature = value.rpartition(".")
            if not sep or not encrypted:
                raise SessionIntegrityFailure("missing signature separator")
            if not hmac.compare_digest(self._sign(encrypted).encode("ascii"), signature.encode("utf-8")):
                logger.warning("Invalid session signature")
                raise SessionIntegrityFailure("bad signature")
            data = self._decrypt_cbc(encrypted)

        try:
            payload = SessionPayload.model_validate_json(data)
            return payload.to_user()
        except (ValidationError, ValueError) as exc:
            raise SessionIntegrityFailure("malformed payload") from exc

    def _sign(self, data: str) -> str:
        return hmac.new(self._secret, data.encode("utf-8"), hashlib.sha256).hexdigest()

    def _encrypt_cbc(self, data: bytes) -> str:
        iv = os.urandom(16)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def _decrypt_cbc(self, encrypted: str) -> bytes:
        iv, ciphertext = _split_hex_pair(encrypted)
        if len(iv) != 16 or not ciphertext or len(ciphertext) % 16:
            raise SessionIntegrityFailure("bad iv or ciphertext length")
        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise SessionIntegrityFailure("decryption failed") from exc

    def _encrypt_gcm(self, data: bytes) -> str:
        nonce = os.urandom(12)
        ciphertext = AESGCM(self._key).encrypt(nonce, data, None)
        return f"{nonce.hex()}:{ciphertext.hex()}"

    def _decrypt_gcm(self, value: str) -> bytes:
        nonce, ciphertext = _split_hex_pair(value)
        if len(nonce) != 12:
            raise SessionIntegrityFailure("bad nonce length")
        try:
            return AESGCM(self._key).decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise SessionIntegrityFailure("authentication tag mismatch") from exc


def _split_hex_pair(value: str) -> tuple[bytes, bytes]:
    first, sep, second = value.partition(":")
    if not sep or not first or not second:
        raise SessionIntegrityFailure("missing ':' separator")
    try:
        return bytes.fromhex(first), bytes.fromhex(second)
    except ValueError as exc:
        raise SessionIntegrityFailure("invalid hex encoding") from exc


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes applied when the session cookies are written or deleted."""

    cookie_name: str = "user_session"
    display_cookie_name: str = "user_display"
    max_age_seconds: int = SESSION_MAX_AGE
    same_site: Literal["lax", "strict", "none"] = "lax"
    secure: bool = False
    path: str = "/"
