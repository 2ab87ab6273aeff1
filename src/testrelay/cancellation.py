# src/testrelay/cancellation.py

"""
Cooperative cancellation shared between a test run and its child processes.
"""

import asyncio

import structlog

from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cancellation")


class CancellationToken:
    """A one-shot flag that running work checks and can await."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if not self._event.is_set():
            log.info("Cancellation requested", emoji_key="cancel")
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

# 🔼⚙️
