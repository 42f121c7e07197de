"""Module session: the connected account for this client process."""
#
# PURPOSE:
# Wallet management lives outside the core. The presentation layer tells the
# session which account is active; workflows ask the session for it and fail
# with ConnectionRequired when nothing is connected.
#

import logging
from typing import Optional

from gitsafe.errors import ConnectionRequired
from gitsafe.utils.observer import Signal

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "Please connect wallet first"


class AccountSession:
    """
    Holds the active account address, if any.

    `account_changed` fires with the new address (or None) whenever the
    connected account changes.
    """

    def __init__(self, account: Optional[str] = None):
        self.account_changed = Signal("account_changed")
        self._account: Optional[str] = None
        if account:
            self.connect(account)

    @property
    def account(self) -> Optional[str]:
        return self._account

    @property
    def is_connected(self) -> bool:
        return self._account is not None

    def connect(self, account: str) -> None:
        account = (account or "").strip()
        if not account:
            raise ConnectionRequired("Account address must not be empty")
        if account == self._account:
            return
        self._account = account
        logger.info(f"[Session] Connected account {account}")
        self.account_changed.emit(account)

    def disconnect(self) -> None:
        if self._account is None:
            return
        logger.info(f"[Session] Disconnected account {self._account}")
        self._account = None
        self.account_changed.emit(None)

    def require_account(self) -> str:
        """Return the active account or raise ConnectionRequired."""
        if self._account is None:
            raise ConnectionRequired(NOT_CONNECTED_MESSAGE)
        return self._account
