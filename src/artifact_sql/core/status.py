"""Process-wide engine status indicator.

The indicator replaces the status dot of a UI: components set it, display
layers (CLI, service logs) subscribe to it.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .enums import RuntimeStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[RuntimeStatus, str], None]


class StatusIndicator:
    """Current engine status plus a short human message."""

    def __init__(self) -> None:
        self.state: Optional[RuntimeStatus] = None
        self.message: str = ""
        self._listeners: List[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def set(self, state: RuntimeStatus, message: str = "") -> None:
        self.state = state
        self.message = message
        if state is RuntimeStatus.FAILED:
            logger.error("Engine status: %s %s", state.value, message)
        else:
            logger.info("Engine status: %s %s", state.value, message)
        for listener in list(self._listeners):
            listener(state, message)


__all__ = ["StatusIndicator", "StatusListener"]
