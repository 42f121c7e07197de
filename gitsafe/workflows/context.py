"""
gitsafe/workflows/context.py
Collaborators shared by the submission and reveal workflows.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from gitsafe.base.session import AccountSession
from gitsafe.confidential.initializer import ConfidentialSessionGuard
from gitsafe.confidential.service import ConfidentialValueService
from gitsafe.errors import ConnectionRequired, SyncError
from gitsafe.ledger.gateway import LedgerGateway
from gitsafe.records.synchronizer import RecordSynchronizer
from gitsafe.status.notifier import StatusPhase, TransactionStatusNotifier

logger = logging.getLogger(__name__)


@dataclass
class WorkflowContext:
    """Created once per client. Holds the session, the ledger, the confidential service and the shared status slot."""
    session: AccountSession
    gateway: LedgerGateway
    confidential: ConfidentialValueService
    synchronizer: RecordSynchronizer
    notifier: TransactionStatusNotifier = field(default_factory=TransactionStatusNotifier.instance)
    guard: Optional[ConfidentialSessionGuard] = None

    def __post_init__(self):
        if self.guard is None:
            self.guard = ConfidentialSessionGuard(self.confidential, self.notifier)

    @property
    def contract_address(self) -> str:
        return self.gateway.contract_address

    def require_account(self) -> str:
        """Active account, or report and raise ConnectionRequired."""
        try:
            return self.session.require_account()
        except ConnectionRequired as e:
            self.notifier.report(StatusPhase.ERROR, e.message)
            raise

    async def refresh_after_commit(self) -> None:
        """
        Refresh once a ledger write is confirmed.

        The write already happened, so a failed refresh is logged and left for
        the next pass instead of failing the workflow.
        """
        try:
            await self.synchronizer.refresh()
        except SyncError as e:
            logger.warning(f"[Workflow] Post-commit refresh failed: {e.message}")
