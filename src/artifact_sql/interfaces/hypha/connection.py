"""Lazily established, reused Hypha connection.

The authentication token is cached on disk across sessions. A cached or
configured token is checked for expiry before reuse; an expired or
undecodable token triggers a fresh login whose token replaces the cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
import webbrowser
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import jwt

from artifact_sql.settings import ARTIFACT_MANAGER_SERVICE, Settings

try:
    from hypha_rpc import connect_to_server, login
except Exception as exc:
    raise RuntimeError(
        "The 'hypha-rpc' package is required for the Hypha connection. Install with: pip install hypha-rpc"
    ) from exc

logger = logging.getLogger(__name__)

ConnectFn = Callable[[Dict[str, Any]], Awaitable[Any]]
LoginFn = Callable[[Dict[str, Any]], Awaitable[str]]


def token_expiry(token: str) -> Optional[float]:
    """Return the `exp` claim of a JWT without verifying its signature."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = payload.get("exp")
    try:
        return float(exp) if exp is not None else None
    except (TypeError, ValueError):
        return None


def is_token_expired(token: Optional[str], *, now: Optional[float] = None) -> bool:
    """True when the token is missing, undecodable, lacks `exp`, or is past it."""
    if not token:
        return True
    exp = token_expiry(token)
    if exp is None:
        return True
    current = time.time() if now is None else now
    return current > exp


class TokenCache:
    """Single-token file cache; a None path keeps the token in memory only."""

    def __init__(self, path: Optional[Path]) -> None:
        self.path = path.expanduser() if path is not None else None
        self._memory: Optional[str] = None

    def load(self) -> Optional[str]:
        if self.path is None:
            return self._memory
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read token cache %s: %s", self.path, exc)
            return None
        return token or None

    def save(self, token: str) -> None:
        self._memory = token
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError as exc:
            logger.debug("Cannot restrict permissions of %s: %s", self.path, exc)

    def clear(self) -> None:
        self._memory = None
        if self.path is not None:
            self.path.unlink(missing_ok=True)


async def _open_login_page(context: Dict[str, Any]) -> None:
    url = context.get("login_url")
    logger.warning("Log in to Hypha at: %s", url)
    if url:
        webbrowser.open(url)


class SessionConnection:
    """Hypha server handle for one session.

    Concurrent callers share the in-flight connection attempt.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[TokenCache] = None,
        connect: Optional[ConnectFn] = None,
        login_fn: Optional[LoginFn] = None,
    ) -> None:
        self._settings = settings
        if cache is None:
            cache = TokenCache(Path(settings.token_cache) if settings.token_cache else None)
        self.cache = cache
        self._connect = connect or connect_to_server
        self._login = login_fn or login
        self._server: Optional[Any] = None
        self._artifact_manager: Optional[Any] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def connected(self) -> bool:
        return self._server is not None

    async def ensure_token(self) -> str:
        """Return a non-expired token, logging in when needed."""
        token = self._settings.token or self.cache.load()
        if token and not is_token_expired(token):
            return token
        if token:
            logger.info("Cached token expired; logging in again")
        token = await self._login(
            {"server_url": self._settings.server_url, "login_callback": _open_login_page}
        )
        self.cache.save(token)
        return token

    async def server(self) -> Any:
        if self._server is not None:
            return self._server
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._establish())
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None

    async def _establish(self) -> Any:
        logger.info("Connecting to Hypha at %s", self._settings.server_url)
        token = await self.ensure_token()
        server = await self._connect(
            {
                "server_url": self._settings.server_url,
                "token": token,
                "workspace": self._settings.workspace or None,
                "method_timeout": self._settings.method_timeout,
            }
        )
        self._server = server
        logger.info("Connected: %s", self._settings.server_url)
        return server

    async def get_service(self, name: str) -> Any:
        server = await self.server()
        return await server.get_service(name)

    async def artifact_manager(self) -> Any:
        if self._artifact_manager is None:
            self._artifact_manager = await self.get_service(ARTIFACT_MANAGER_SERVICE)
        return self._artifact_manager

    async def disconnect(self) -> None:
        server, self._server = self._server, None
        self._artifact_manager = None
        if server is not None and hasattr(server, "disconnect"):
            await server.disconnect()


__all__ = ["SessionConnection", "TokenCache", "is_token_expired", "token_expiry"]
