from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request

from portal.db.init_db import init_db
from portal.logging_config import configure_app_logging
from portal.oidc import OidcConfig, OidcTokenValidator
from portal.routers import admin, associations, auth, events, health, lists, members, roles
from portal.security.config import SecurityConfig, load_security_config
from portal.security.cookies import apply_session_cookies
from portal.security.dependencies import enforce_security
from portal.security.errors import AccessDenied
from portal.security.session import SessionCodec
from portal.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_security(app: FastAPI, settings: Settings, config: SecurityConfig) -> None:
    """Attach the security collaborators used by `enforce_security` to `app.state`."""
    if settings.uses_default_secret():
        logger.warning("PORTAL_AUTH_SECRET is not set; session cookies use the default secret")

    app.state.security_config = config
    app.state.session_codec = SessionCodec(settings.auth_secret, settings.session_scheme)
    app.state.cookie_policy = config.cookie_policy(secure=settings.cookie_secure)
    app.state.token_validator = (
        OidcTokenValidator(OidcConfig.from_environ()) if config.auth.provider == "oidc" else None
    )


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        config = load_security_config(settings.resolved_security_config_path())
        configure_security(app, settings, config)
        logger.info(
            "Loaded security config: %s (provider=%s)",
            settings.resolved_security_config_path(),
            config.auth.provider,
        )
        init_db(seed=settings.seed_demo_data)
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    # Global dependency: resolves the session principal and applies config rules.
    app = FastAPI(title="Portail associatif", dependencies=[Depends(enforce_security)], lifespan=lifespan)

    @app.exception_handler(AccessDenied)
    async def access_denied_handler(request: Request, exc: AccessDenied):
        return exc.response

    @app.middleware("http")
    async def session_cookie_middleware(request: Request, call_next):
        response = await call_next(request)
        policy = getattr(request.app.state, "cookie_policy", None)
        config = getattr(request.app.state, "security_config", None)
        if policy is not None and config is not None:
            apply_session_cookies(request, response, policy, config.session.legacy_cookies)
        return response

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(associations.router)
    app.include_router(lists.router)
    app.include_router(members.router)
    app.include_router(roles.router)
    app.include_router(events.router)
    app.include_router(admin.router)

    return app


app = create_app()
