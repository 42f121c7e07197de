"""
gitsafe/status/notifier.py
Process-wide single-slot transaction status.

PURPOSE:
Both workflows report progress ("pending"), completion ("success") and
failure ("error") here. Exactly one status is observable at any moment; a new
report replaces the previous one and cancels its pending auto-clear.

LIFECYCLE:
    report(SUCCESS, ...) -> visible for StatusConfig.success_clear_seconds
    report(ERROR, ...)   -> visible for StatusConfig.error_clear_seconds
    report(PENDING, ...) -> visible until superseded or clear()ed

Auto-clear is tracked with a generation counter: a timer only clears the
status it was scheduled for, so a late timer from an older report can never
wipe a newer one. Timers run on a daemon thread and outlive the event loop
that reported, so a loop shutting down cannot leave a status stuck on screen.

USAGE:
    from gitsafe.status.notifier import TransactionStatusNotifier, StatusPhase

    notifier = TransactionStatusNotifier.instance()
    notifier.changed.connect(lambda status: print(status.message))
    notifier.report(StatusPhase.PENDING, "Waiting for transaction confirmation...")
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from gitsafe.base.config import StatusConfig, get_config
from gitsafe.utils.observer import Signal

logger = logging.getLogger(__name__)


class StatusPhase(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TransactionStatus:
    visible: bool
    phase: StatusPhase
    message: str

    @classmethod
    def hidden(cls) -> "TransactionStatus":
        return cls(visible=False, phase=StatusPhase.PENDING, message="")


class TransactionStatusNotifier:
    """
    Single-slot, last-write-wins status publisher.

    Subscribers of `changed` receive the new TransactionStatus on every report
    and on every clear (manual or automatic).
    """

    _instance: Optional["TransactionStatusNotifier"] = None

    @staticmethod
    def instance() -> "TransactionStatusNotifier":
        """Get the process-wide notifier (created on first use)."""
        if TransactionStatusNotifier._instance is None:
            TransactionStatusNotifier._instance = TransactionStatusNotifier()
        return TransactionStatusNotifier._instance

    @staticmethod
    def reset_instance() -> None:
        """Drop the process-wide notifier. Tests only."""
        if TransactionStatusNotifier._instance is not None:
            TransactionStatusNotifier._instance._cancel_timer()
        TransactionStatusNotifier._instance = None

    def __init__(self, config: Optional[StatusConfig] = None):
        self.config = config or get_config().status
        self.changed = Signal("transaction_status")
        self._status = TransactionStatus.hidden()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def current(self) -> TransactionStatus:
        return self._status

    def report(self, phase: Union[StatusPhase, str], message: str) -> TransactionStatus:
        """
        Replace the active status and (re)schedule its auto-clear.

        Args:
            phase: pending / success / error
            message: Human-readable text for the user

        Returns:
            The status that is now active
        """
        phase = StatusPhase(phase)
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            self._status = TransactionStatus(visible=True, phase=phase, message=message)
            status = self._status

        delay = self._clear_delay(phase)
        if delay is not None:
            self._schedule_clear(delay, generation)

        log = logger.warning if phase is StatusPhase.ERROR else logger.info
        log(f"[Status] {phase.value}: {message}")
        self.changed.emit(status)
        return status

    def clear(self) -> None:
        """Reset to the invisible status immediately."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._status = TransactionStatus.hidden()
            status = self._status
        self.changed.emit(status)

    # ============================================================================
    # Auto-clear
    # ============================================================================

    def _clear_delay(self, phase: StatusPhase) -> Optional[float]:
        if phase is StatusPhase.SUCCESS:
            return self.config.success_clear_seconds
        if phase is StatusPhase.ERROR:
            return self.config.error_clear_seconds
        return None

    def _schedule_clear(self, delay: float, generation: int) -> None:
        try:
            loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        timer = threading.Timer(delay, self._on_timer, args=(generation, loop))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self, generation: int, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """
        Timer thread entry point.

        While the reporting loop is still running the expiry is handed to it,
        so subscribers are notified on the loop's thread. Once that loop has
        stopped or closed the status is cleared from the timer thread.
        """
        if loop is not None and loop.is_running():
            try:
                loop.call_soon_threadsafe(self._expire, generation)
                return
            except RuntimeError:
                # Loop closed between the check and the hand-off
                logger.debug("[Status] Reporting loop closed, clearing from timer thread")
        self._expire(generation)

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            self._status = TransactionStatus.hidden()
            status = self._status
        self.changed.emit(status)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
