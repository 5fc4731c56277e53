"""Optional engine capability (remote-file streaming via an extension).

The capability is a soft dependency: a failed install is logged and left
alone. Later remote reads may then fail with the engine's own error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from artifact_sql.core.errors import CapabilityInstallError

from .adapter import EngineConnection

logger = logging.getLogger(__name__)


class CapabilityLoader:
    """Install and load one extension on a connection, at most once per session.

    Attributes:
        extension: Extension name (e.g., "httpfs"); None disables the loader.
        installed: Monotonic for one engine; False → True only until `reset`.
        attempted: Set after the first attempt, successful or not.
    """

    def __init__(self, extension: Optional[str]) -> None:
        self.extension = extension
        self.installed = False
        self.attempted = False
        self._pending: Optional[asyncio.Future] = None

    async def ensure(self, connection: EngineConnection) -> None:
        if self.installed or self.attempted or not self.extension:
            return
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._install(connection))
        await asyncio.shield(self._pending)

    def reset(self) -> None:
        """Forget the previous attempt; the next engine installs again."""
        self.installed = False
        self.attempted = False
        self._pending = None

    async def _install(self, connection: EngineConnection) -> None:
        try:
            await self._install_or_raise(connection)
        except CapabilityInstallError as exc:
            logger.warning("%s", exc)
        finally:
            self.attempted = True
            self._pending = None

    async def _install_or_raise(self, connection: EngineConnection) -> None:
        name = str(self.extension)
        try:
            await connection.install_extension(name)
            await connection.load_extension(name)
        except Exception as exc:  # noqa: BLE001
            raise CapabilityInstallError(
                f"{name} extension not available or failed to load: {exc}"
            ) from exc
        self.installed = True
        logger.info("Extension loaded: %s", name)


__all__ = ["CapabilityLoader"]
