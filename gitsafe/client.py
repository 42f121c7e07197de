"""
gitsafe/client.py
Entry point for presentation code.

GitSafeClient wires one account session, one ledger gateway, one confidential
service, the record synchronizer and the shared status notifier together and
exposes the operations a UI needs:

    client = GitSafeClient.from_config()
    await client.connect("0xabc...")           # init confidential service, load records
    rid = await client.submit_form("lib-a", "1024", "12", "x")
    size = await client.reveal_size(rid)
    page = client.page(1, search="lib")
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from gitsafe.base.config import GitSafeConfig, get_config
from gitsafe.base.session import AccountSession
from gitsafe.confidential.initializer import ConfidentialSessionGuard
from gitsafe.confidential.relayer import RelayerConfidentialService
from gitsafe.confidential.service import ConfidentialValueService
from gitsafe.errors import InitializationFailure, SyncError
from gitsafe.ledger.gateway import LedgerGateway
from gitsafe.ledger.rpc import JsonRpcLedgerGateway
from gitsafe.records.models import RepositoryRecord
from gitsafe.records.synchronizer import RecordSynchronizer
from gitsafe.records import views
from gitsafe.status.notifier import StatusPhase, TransactionStatusNotifier
from gitsafe.workflows.context import WorkflowContext
from gitsafe.workflows.reveal import RevealWorkflow
from gitsafe.workflows.submission import SubmissionWorkflow

logger = logging.getLogger(__name__)


class GitSafeClient:
    def __init__(
        self,
        gateway: LedgerGateway,
        confidential: ConfidentialValueService,
        config: Optional[GitSafeConfig] = None,
        notifier: Optional[TransactionStatusNotifier] = None,
        session: Optional[AccountSession] = None,
    ):
        self.config = config or get_config()
        self.notifier = notifier or TransactionStatusNotifier.instance()
        self.session = session or AccountSession()
        self.synchronizer = RecordSynchronizer(gateway, self.config.sync)
        self.context = WorkflowContext(
            session=self.session,
            gateway=gateway,
            confidential=confidential,
            synchronizer=self.synchronizer,
            notifier=self.notifier,
            guard=ConfidentialSessionGuard(confidential, self.notifier),
        )
        self.submission = SubmissionWorkflow(self.context)
        self.reveal = RevealWorkflow(self.context)
        self.session.account_changed.connect(self._on_account_changed)

    @classmethod
    def from_config(cls, config: Optional[GitSafeConfig] = None) -> "GitSafeClient":
        """Client backed by the JSON-RPC ledger gateway and the HTTP relayer."""
        cfg = config or get_config()
        return cls(
            gateway=JsonRpcLedgerGateway(cfg.ledger),
            confidential=RelayerConfidentialService(cfg.confidential),
            config=cfg,
        )

    # ============================================================================
    # Session
    # ============================================================================

    async def connect(self, account: str) -> Tuple[RepositoryRecord, ...]:
        """
        Attach `account`, initialize the confidential service for it and load
        the record set.

        The record set is loaded even when initialization fails; reading
        records does not touch the confidential service.

        Raises:
            InitializationFailure: Confidential service setup failed
        """
        self.session.connect(account)
        try:
            await self.context.guard.ensure_ready(account)
        except InitializationFailure:
            try:
                await self.refresh()
            except SyncError as e:
                logger.error(f"[Client] Record load after failed initialization also failed: {e}")
            raise
        return await self.refresh()

    def disconnect(self) -> None:
        self.session.disconnect()

    def _on_account_changed(self, account: Optional[str]) -> None:
        self.context.guard.reset()

    # ============================================================================
    # Operations
    # ============================================================================

    async def refresh(self) -> Tuple[RepositoryRecord, ...]:
        try:
            return await self.synchronizer.refresh()
        except SyncError as e:
            self.notifier.report(StatusPhase.ERROR, e.message)
            raise

    async def submit(self, name: str, description: str, plaintext_size: int, file_count: int) -> str:
        return await self.submission.submit(name, description, plaintext_size, file_count)

    async def submit_form(self, name: str, size: str, files: str, description: str = "") -> str:
        return await self.submission.submit_form(name, size, files, description)

    async def reveal_size(self, identifier: str) -> Optional[int]:
        return await self.reveal.reveal_size(identifier)

    async def check_availability(self) -> bool:
        """Probe the contract; report success when it answers true."""
        try:
            available = await self.context.gateway.probe_availability()
        except Exception as e:
            logger.error(f"[Client] Availability check failed: {e}")
            return False
        if available:
            self.notifier.report(StatusPhase.SUCCESS, "FHE system is available!")
        return available

    # ============================================================================
    # Views
    # ============================================================================

    @property
    def records(self) -> Tuple[RepositoryRecord, ...]:
        return self.synchronizer.records

    def page(self, page: int = 1, search: str = "") -> views.RecordPage:
        matches = views.filter_records(self.records, search)
        return views.paginate(matches, page, self.config.sync.page_size)

    def stats(self) -> views.RecordStats:
        return views.compute_stats(self.records)

    async def aclose(self) -> None:
        for resource in (self.context.gateway, self.context.confidential):
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()
