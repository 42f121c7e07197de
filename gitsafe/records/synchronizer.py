"""
gitsafe/records/synchronizer.py
Rebuilds the local record set from the ledger.

PURPOSE:
The synchronizer is the only writer of the local record set. Each refresh()
lists every identifier, fetches every record, and swaps the finished tuple in
one assignment, so readers see either the previous snapshot or the new one.

FAILURE POLICY:
- Listing identifiers fails  -> SyncError, previous snapshot kept
- One getRecord call fails   -> logged, that record skipped, pass continues
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from gitsafe.base.config import SyncConfig, get_config
from gitsafe.errors import ErrorCode, SyncError
from gitsafe.ledger.gateway import LedgerGateway
from gitsafe.records.models import RepositoryRecord
from gitsafe.utils.observer import Signal

logger = logging.getLogger(__name__)


class RecordSynchronizer:
    def __init__(self, gateway: LedgerGateway, config: Optional[SyncConfig] = None):
        self.gateway = gateway
        self.config = config or get_config().sync
        self.records_changed = Signal("records_changed")
        self._records: Tuple[RepositoryRecord, ...] = ()
        self._lock = asyncio.Lock()
        self._refreshing = False
        self.last_skipped: Tuple[str, ...] = ()

    @property
    def records(self) -> Tuple[RepositoryRecord, ...]:
        """The latest complete snapshot."""
        return self._records

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    def get(self, identifier: str) -> Optional[RepositoryRecord]:
        for record in self._records:
            if record.identifier == identifier:
                return record
        return None

    async def refresh(self) -> Tuple[RepositoryRecord, ...]:
        """
        Run one synchronization pass.

        Passes are serialized; a caller arriving mid-pass waits for it and
        then runs its own, so its result is never older than its call.

        Returns:
            The new snapshot, in the ledger's listing order

        Raises:
            SyncError: If the identifier listing cannot be fetched
        """
        async with self._lock:
            self._refreshing = True
            try:
                snapshot, skipped = await self._collect()
            finally:
                self._refreshing = False

            self._records = snapshot
            self.last_skipped = skipped

        logger.info(f"[Synchronizer] Loaded {len(snapshot)} record(s), skipped {len(skipped)}")
        self.records_changed.emit(snapshot)
        return snapshot

    async def _collect(self) -> Tuple[Tuple[RepositoryRecord, ...], Tuple[str, ...]]:
        try:
            identifiers = await self.gateway.list_record_identifiers()
        except Exception as e:
            logger.error(f"[Synchronizer] Failed to list record identifiers: {e}")
            raise SyncError(
                "Failed to load data",
                code=ErrorCode.SYNC_LIST_FAILED,
                details={"reason": str(e)},
            ) from e

        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrent_fetches))

        async def fetch(identifier: str) -> RepositoryRecord:
            async with semaphore:
                data = await self.gateway.get_record(identifier)
            return RepositoryRecord.from_ledger(identifier, data)

        results = await asyncio.gather(*(fetch(i) for i in identifiers), return_exceptions=True)

        records: List[RepositoryRecord] = []
        skipped: List[str] = []
        for identifier, result in zip(identifiers, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"[Synchronizer] Skipping record {identifier}: {result}")
                skipped.append(identifier)
                continue
            records.append(result)
        return tuple(records), tuple(skipped)
