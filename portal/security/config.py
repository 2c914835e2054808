"""
YAML security configuration.

The file has a single top-level ``security`` key::

    security:
      auth:     identity provider and how the assertion is read
      session:  session/display cookie attributes
      default:  rule applied when no route matches
      routes:   per-path rules (exact paths, ``{param}`` templates, ``/prefix/*``)

Route rules only express authentication and *global* permission requirements.
Association/list checks need the scope id and live in the handlers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from portal.security.permissions import Permission, parse_permission
from portal.security.session import SESSION_MAX_AGE, CookiePolicy


class AuthConfig(BaseModel):
    # "dummy": the bearer token *is* the external login (local development only).
    # "oidc": the bearer token is a provider-signed JWT.
    provider: Literal["dummy", "oidc"] = "dummy"
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"
    assertion_cookie: str | None = None


class SessionConfig(BaseModel):
    cookie_name: str = "user_session"
    display_cookie_name: str = "user_display"
    max_age_seconds: int = Field(default=SESSION_MAX_AGE, gt=0)
    same_site: Literal["lax", "strict", "none"] = "lax"
    legacy_cookies: list[str] = Field(default_factory=lambda: ["PHPSESSID"])


def _permission_by_name(value: Any) -> Permission | None:
    if value is None or isinstance(value, Permission):
        return value
    return parse_permission(str(value))


class DefaultRule(BaseModel):
    auth_required: bool = False
    required_permission: Permission | None = None

    _parse_permission = field_validator("required_permission", mode="before")(_permission_by_name)


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])
    # None: inherit from `default` (a permission requirement implies auth).
    auth_required: bool | None = None
    required_permission: Permission | None = None

    _parse_permission = field_validator("required_permission", mode="before")(_permission_by_name)

    @field_validator("methods")
    @classmethod
    def _upper_methods(cls, value: list[str]) -> list[str]:
        return [m.upper() for m in value]


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class EffectiveRule:
    """What a request must satisfy once defaults are applied."""

    auth_required: bool
    required_permission: Permission | None


def _compile_path(path: str) -> re.Pattern[str]:
    # "/api/events/{id}" -> ^/api/events/[^/]+$ ; "/admin/*" -> "/admin" and everything below it.
    subtree = path.endswith("/*")
    body = re.sub(r"\\\{[^/]+?\\\}", "[^/]+", re.escape(path[:-2] if subtree else path))
    return re.compile(rf"^{body}(/.*)?$" if subtree else rf"^{body}$")


def _resolve(rule: RouteRule, default: DefaultRule) -> EffectiveRule:
    required = rule.required_permission if rule.required_permission is not None else default.required_permission
    if rule.auth_required is not None:
        auth_required = rule.auth_required
    else:
        auth_required = default.auth_required or required is not None
    return EffectiveRule(auth_required=auth_required, required_permission=required)


class SecurityConfig:
    """Validated configuration plus (path, method) rule lookup."""

    def __init__(self, model: SecurityConfigModel) -> None:
        self.model = model

        # Exact paths are consulted before any template, in file order.
        self._by_path: dict[str, list[RouteRule]] = {}
        self._patterns: list[tuple[re.Pattern[str], RouteRule]] = []
        for rule in model.routes:
            self._by_path.setdefault(rule.path, []).append(rule)
            self._patterns.append((_compile_path(rule.path), rule))

        default = model.default
        self._fallback = EffectiveRule(
            auth_required=default.auth_required or default.required_permission is not None,
            required_permission=default.required_permission,
        )

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    @property
    def session(self) -> SessionConfig:
        return self.model.session

    def cookie_policy(self, secure: bool = False) -> CookiePolicy:
        session = self.session
        return CookiePolicy(
            cookie_name=session.cookie_name,
            display_cookie_name=session.display_cookie_name,
            max_age_seconds=session.max_age_seconds,
            same_site=session.same_site,
            secure=secure,
        )

    def match(self, path: str, method: str) -> EffectiveRule:
        method = method.upper()

        for rule in self._by_path.get(path, ()):
            if method in rule.methods:
                return _resolve(rule, self.model.default)

        for pattern, rule in self._patterns:
            if method in rule.methods and pattern.match(path):
                return _resolve(rule, self.model.default)

        return self._fallback


def load_security_config(path: Path) -> SecurityConfig:
    raw: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or "security" not in raw:
        raise ValueError(f"Missing top-level 'security' key in config: {path}")
    return SecurityConfig(SecurityConfigModel.model_validate(raw["security"] or {}))
