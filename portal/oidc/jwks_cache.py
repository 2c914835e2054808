"""
Provider key set (JWKS) retrieval with a TTL cache.

The key set location is either configured directly or read once from the
issuer's discovery document (``/.well-known/openid-configuration``). Keys are
cached for ``ttl_seconds``; a token signed with an unknown ``kid`` triggers a
single forced refresh, which covers provider key rotation.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from jwt import PyJWK
from jwt.exceptions import PyJWTError

logger = logging.getLogger(__name__)

_HTTP_TIMEOUT = 10


class JWKSCache:
    def __init__(self, jwks_uri: str | None, ttl_seconds: int, discovery_url: str | None = None) -> None:
        if not jwks_uri and not discovery_url:
            raise ValueError("Either jwks_uri or discovery_url is required")
        self._uri = jwks_uri
        self._discovery_url = discovery_url
        self._ttl = ttl_seconds
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: float | None = None

    def _resolve_uri(self) -> str:
        if self._uri:
            return self._uri
        resp = requests.get(self._discovery_url, timeout=_HTTP_TIMEOUT)
        resp.raise_for_status()
        uri = resp.json().get("jwks_uri")
        if not uri:
            raise ValueError(f"Discovery document has no jwks_uri: {self._discovery_url}")
        self._uri = uri
        logger.info("Discovered JWKS uri=%s", uri)
        return uri

    def _refresh(self) -> None:
        uri = self._resolve_uri()
        resp = requests.get(uri, timeout=_HTTP_TIMEOUT)
        resp.raise_for_status()
        self._keys = {k["kid"]: k for k in resp.json().get("keys") or [] if k.get("kid")}
        self._fetched_at = time.monotonic()
        logger.debug("JWKS refreshed uri=%s keys=%d", uri, len(self._keys))

    def _expired(self) -> bool:
        return self._fetched_at is None or (time.monotonic() - self._fetched_at) >= self._ttl

    def _lookup(self, kid: str) -> PyJWK | None:
        key_dict = self._keys.get(kid)
        if key_dict is None:
            return None
        try:
            return PyJWK.from_dict(key_dict)
        except PyJWTError:
            logger.warning("Unusable key in JWKS kid=%s", kid)
            return None

    def get_signing_key(self, kid: str) -> PyJWK | None:
        if self._expired():
            self._refresh()
        key = self._lookup(kid)
        if key is not None:
            return key

        logger.info("kid not in cached JWKS; refreshing once for key rotation")
        self._refresh()
        return self._lookup(kid)
