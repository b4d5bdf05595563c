"""Auth manager — injects credentials into browser contexts before navigation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page
from pydantic import BaseModel

from autosmoke.errors import AuthError
from autosmoke.models.config import AuthMode, RunnerSettings, SmokeConfig
from autosmoke.models.route import DiscoveredRoute
from autosmoke.url_utils import base_hostname, is_https, route_url

logger = logging.getLogger(__name__)

DEFAULT_SESSION_PATH = Path(".cache") / "auth" / "session.json"

# Path fragments that indicate we were bounced to a login page
_AUTH_URL_MARKERS = ("/login", "/signin", "/auth", "/authenticate")

_LOGGED_IN_CHECK = """() =>
    document.cookie.includes('auth') ||
    document.cookie.includes('session') ||
    localStorage.getItem('token') !== null ||
    sessionStorage.getItem('token') !== null
"""


class AuthSettings(BaseModel):
    mode: AuthMode = "none"
    cookie: Optional[str] = None
    magic_link_path: Optional[str] = None
    basic_username: str = ""
    basic_password: str = ""
    oauth_token: Optional[str] = None
    session_file: Optional[str] = None


def resolve_auth_settings(settings: RunnerSettings, smoke_config: SmokeConfig | None = None) -> AuthSettings:
    """Combine env settings with the project's ``auth`` section (which wins)."""
    auth = AuthSettings(
        mode=settings.auth_mode,
        cookie=settings.auth_cookie,
        magic_link_path=settings.magic_link_path,
        basic_username=settings.basic_auth_username,
        basic_password=settings.basic_auth_password,
        oauth_token=settings.oauth_token,
        session_file=settings.session_file,
    )
    section = smoke_config.auth if smoke_config else None
    if section is None:
        return auth
    return auth.model_copy(update={
        "mode": section.mode,
        "cookie": section.cookie or auth.cookie,
        "magic_link_path": section.magic_link_path or auth.magic_link_path,
    })


def parse_cookie(raw: str) -> tuple[str, str]:
    """Split ``name=value``; the value may itself contain ``=``."""
    name, _, value = raw.partition("=")
    name, value = name.strip(), value.strip()
    if not name or not value:
        raise AuthError("Invalid cookie format. Expected: name=value")
    return name, value


class AuthManager:
    """Sets up authentication for browser contexts."""

    def __init__(
        self,
        settings: RunnerSettings,
        auth: AuthSettings | None = None,
        session_path: Path | None = None,
    ):
        self.settings = settings
        self.auth = auth or resolve_auth_settings(settings)
        if session_path is None:
            session_path = Path(self.auth.session_file) if self.auth.session_file else DEFAULT_SESSION_PATH
        self.session_path = session_path

    @property
    def enabled(self) -> bool:
        return self.auth.mode != "none"

    def context_options(self) -> dict[str, Any]:
        """Keyword arguments for ``browser.new_context``.

        HTTP credentials and extra headers can only be set when the context is
        created, so basic and bearer-token auth are applied here.
        """
        options: dict[str, Any] = {}
        match self.auth.mode:
            case "basic":
                if not self.auth.basic_username or not self.auth.basic_password:
                    raise AuthError("Username and password required for basic auth mode")
                options["http_credentials"] = {
                    "username": self.auth.basic_username,
                    "password": self.auth.basic_password,
                }
                logger.debug("Basic auth configured for user: %s", self.auth.basic_username)
            case "oauth_token":
                if not self.auth.oauth_token:
                    raise AuthError("OAuth token required for oauth_token auth mode")
                options["extra_http_headers"] = {"Authorization": f"Bearer {self.auth.oauth_token}"}
            case "magic_link":
                if self.session_path.exists():
                    options["storage_state"] = str(self.session_path)
        return options

    async def prepare_session(self, browser: Browser) -> None:
        """Consume the magic link once, before any route context is created.

        Route contexts then pick up the saved session via ``storage_state``.
        """
        if self.auth.mode != "magic_link" or self.session_path.exists():
            return
        context = await browser.new_context()
        try:
            await self._setup_magic_link_auth(context)
        finally:
            await context.close()

    async def setup_auth(self, context: BrowserContext) -> None:
        """Apply cookie auth to a freshly created context."""
        if self.auth.mode == "cookie":
            await self._setup_cookie_auth(context)

    async def _setup_cookie_auth(self, context: BrowserContext) -> None:
        if not self.auth.cookie:
            logger.warning("Cookie auth enabled but no AUTH_COOKIE provided")
            return
        name, value = parse_cookie(self.auth.cookie)
        await context.add_cookies([{
            "name": name,
            "value": value,
            "domain": base_hostname(self.settings.base_url),
            "path": "/",
            "httpOnly": True,
            "secure": is_https(self.settings.base_url),
            "sameSite": "Lax",
        }])
        logger.debug("Cookie auth configured: %s", name)

    async def _setup_magic_link_auth(self, context: BrowserContext) -> None:
        if not self.auth.magic_link_path:
            raise AuthError("Magic link path required for magic_link auth mode")

        magic_url = route_url(self.settings.base_url, self.auth.magic_link_path)
        logger.info("Using magic link: %s", magic_url)
        page = await context.new_page()
        try:
            await page.goto(magic_url, wait_until="networkidle")
            # Redirects after the link is consumed may land after networkidle
            await page.wait_for_timeout(2000)
            if await page.evaluate(_LOGGED_IN_CHECK):
                logger.info("Magic link authentication successful")
                await self.save_session(context)
            else:
                logger.warning("Magic link may not have worked - no auth indicators found")
        finally:
            await page.close()

    async def save_session(self, context: BrowserContext) -> None:
        state = await context.storage_state()
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.session_path, "w") as f:
            json.dump(state, f, indent=2)
        logger.info("Session saved to %s", self.session_path)

    async def is_auth_required(self, page: Page, url: str) -> bool:
        """True when ``url`` answers 401/403 or redirects to a login page."""
        try:
            response = await page.goto(url, timeout=10000)
        except Exception as e:
            logger.warning("Could not determine auth requirement for %s: %s", url, e)
            return False
        status = response.status if response else 0
        if status in (401, 403):
            return True
        current = page.url
        return any(marker in current and marker not in url for marker in _AUTH_URL_MARKERS)

    async def skip_auth_gated_routes(
        self, browser: Browser, routes: list[DiscoveredRoute],
    ) -> list[DiscoveredRoute]:
        """Drop routes that require a login the configured auth cannot provide."""
        if not self.enabled:
            logger.info("Skipping auth-gated route detection (auth mode: none)")
            return routes

        available = []
        for route in routes:
            context = await browser.new_context()
            page = await context.new_page()
            try:
                if await self.is_auth_required(page, route_url(self.settings.base_url, route.path)):
                    logger.info("Skipping auth-gated route: %s", route.path)
                else:
                    available.append(route)
            finally:
                await page.close()
                await context.close()
        return available
