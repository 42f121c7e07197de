from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gitsafe.ledger.gateway import LedgerRecordData


class RepositoryRecord(BaseModel):
    """
    One registered repository as seen by the client.

    `revealed_size` is only ever set when `verified` is true; an unverified
    record never carries a size value, whatever the ledger tuple contained.
    """
    model_config = ConfigDict(frozen=True)

    identifier: str = Field(min_length=1)
    name: str
    description: str = ""
    file_count: int = Field(default=0, ge=0)
    timestamp: int = Field(default=0, ge=0)
    creator: str = ""
    verified: bool = False
    revealed_size: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _drop_unverified_size(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("verified"):
            data = {**data, "revealed_size": None}
        return data

    @classmethod
    def from_ledger(cls, identifier: str, data: LedgerRecordData) -> "RepositoryRecord":
        return cls(
            identifier=identifier,
            name=data.name,
            description=data.description,
            file_count=data.file_count,
            timestamp=data.timestamp,
            creator=data.creator,
            verified=data.is_verified,
            revealed_size=data.revealed_value if data.is_verified else None,
        )
