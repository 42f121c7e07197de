"""Module observer: minimal synchronous publish/subscribe primitive."""
#
# PURPOSE:
# Lets the record synchronizer and the status notifier push state changes to
# presentation code without knowing who is listening.
#

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """
    A simple pure-Python signal. Subscribers are called in subscription order.
    """
    def __init__(self, name: str = "signal"):
        self.name = name
        self._observers: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]):
        """Subscribe a callback function."""
        if callback not in self._observers:
            self._observers.append(callback)

    def disconnect(self, callback: Callable[..., Any]):
        """Unsubscribe a callback function."""
        if callback in self._observers:
            self._observers.remove(callback)

    def emit(self, *args, **kwargs):
        """Notify all subscribers."""
        for callback in list(self._observers):
            try:
                callback(*args, **kwargs)
            except Exception:
                # One broken subscriber must not starve the rest
                logger.exception(f"[Signal:{self.name}] Error in observer callback")
