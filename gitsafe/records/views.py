"""
gitsafe/records/views.py
Read-only projections over a record snapshot: search, paging, dashboard
statistics and the size label shown for one record.

Nothing here mutates records; every function takes a snapshot and returns a
new value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from gitsafe.records.models import RepositoryRecord


@dataclass(frozen=True)
class RecordPage:
    records: List[RepositoryRecord]
    page: int
    total_pages: int
    total_items: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class RecordStats:
    total_records: int
    total_files: int
    average_files: int
    active_creators: int
    verified_records: int


def filter_records(records: Sequence[RepositoryRecord], term: str) -> List[RepositoryRecord]:
    """Case-insensitive substring match on name or description."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(records)
    return [
        r for r in records
        if needle in r.name.lower() or needle in r.description.lower()
    ]


def sort_records(records: Sequence[RepositoryRecord], newest_first: bool = True) -> List[RepositoryRecord]:
    # identifier breaks timestamp ties so the order is total
    return sorted(records, key=lambda r: (r.timestamp, r.identifier), reverse=newest_first)


def paginate(records: Sequence[RepositoryRecord], page: int, page_size: int = 5) -> RecordPage:
    """
    Slice one page out of `records`.

    `page` is 1-based and clamped into [1, total_pages]; an empty input yields
    a single empty page.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")
    total_items = len(records)
    total_pages = max(1, math.ceil(total_items / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return RecordPage(
        records=list(records[start:start + page_size]),
        page=page,
        total_pages=total_pages,
        total_items=total_items,
    )


def compute_stats(records: Sequence[RepositoryRecord]) -> RecordStats:
    total = len(records)
    total_files = sum(r.file_count for r in records)
    return RecordStats(
        total_records=total,
        total_files=total_files,
        average_files=round(total_files / total) if total else 0,
        active_creators=len({r.creator for r in records if r.creator}),
        verified_records=sum(1 for r in records if r.verified),
    )


def size_label(record: RepositoryRecord, local_value: Optional[int] = None) -> str:
    """
    Text for the confidential size of `record`.

    `local_value` is an ephemeral decrypted number the client holds but the
    ledger has not confirmed; it is labelled as such and never as verified.
    """
    if record.verified and record.revealed_size is not None:
        return f"{record.revealed_size} KB (Verified)"
    if local_value is not None:
        return f"{local_value} KB (Decrypted)"
    return "Encrypted"
