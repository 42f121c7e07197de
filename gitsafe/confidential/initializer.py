"""
gitsafe/confidential/initializer.py
Once-per-session initialization of the confidential value service.

Encryption and decryption must never run before the service is set up for
the connected account, and setup must not be launched twice while an attempt
is still in flight. ConfidentialSessionGuard owns that rule:

- The first caller starts initialize() as a shared task.
- Concurrent callers await the same task.
- A failure is reported once, raised as InitializationFailure, and forgotten,
  so the next call starts a fresh attempt.
- Switching accounts resets the guard. An attempt still running for the
  previous account is waited out before the new account's attempt starts,
  and its failure is not reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from gitsafe.confidential.service import ConfidentialValueService
from gitsafe.errors import InitializationFailure
from gitsafe.status.notifier import StatusPhase, TransactionStatusNotifier

logger = logging.getLogger(__name__)

INIT_FAILED_MESSAGE = "Confidential subsystem initialization failed"


class ConfidentialSessionGuard:
    def __init__(self, service: ConfidentialValueService, notifier: Optional[TransactionStatusNotifier] = None):
        self.service = service
        self.notifier = notifier or TransactionStatusNotifier.instance()
        self._account: Optional[str] = None
        self._ready = False
        self._in_flight: Optional[asyncio.Task] = None
        self._in_flight_account: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_initializing(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def reset(self) -> None:
        """Forget the current session (account switched or disconnected)."""
        # The in-flight task is kept so the next attempt can wait for it
        self._account = None
        self._ready = False

    async def ensure_ready(self, account: str) -> None:
        """Initialize for `account` unless already done; share in-flight attempts."""
        if account != self._account:
            self.reset()
            self._account = account

        while not self._ready:
            task = self._in_flight
            if task is None or task.done():
                logger.info(f"[ConfidentialGuard] Initializing confidential service for {account}")
                task = asyncio.ensure_future(self._initialize(account))
                self._in_flight = task
                self._in_flight_account = account
            elif self._in_flight_account != account:
                logger.info(
                    f"[ConfidentialGuard] Waiting for the attempt of {self._in_flight_account} to finish"
                )
                await asyncio.wait({task})
                continue

            try:
                await asyncio.shield(task)
            finally:
                if task.done() and self._in_flight is task:
                    self._in_flight = None
            return

    async def _initialize(self, account: str) -> None:
        try:
            if not self.service.is_initialized:
                await self.service.initialize()
        except Exception as e:
            logger.error(f"[ConfidentialGuard] Initialization failed for {account}: {e}")
            if account == self._account:
                self.notifier.report(StatusPhase.ERROR, INIT_FAILED_MESSAGE)
            raise InitializationFailure(INIT_FAILED_MESSAGE, details={"reason": str(e)}) from e
        if account == self._account:
            self._ready = True
            logger.info("[ConfidentialGuard] Confidential service ready")
