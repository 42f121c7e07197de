"""
gitsafe/ledger/gateway.py
Contract surface the client core consumes from the ledger.

The gateway is an async RPC boundary: any call may fail or stall. Reads go
through the gateway directly; mutating calls need a signing handle obtained
with `with_signer(account)` and return a PendingTransaction whose `wait()`
must complete before the workflow proceeds.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _hex_quantity(v: Any) -> Any:
    # JSON-RPC nodes encode integers as "0x"-prefixed hex strings
    if isinstance(v, str) and v.startswith("0x"):
        return int(v, 16)
    return v


class LedgerRecordData(BaseModel):
    """Raw record tuple as returned by the contract's getBusinessData."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = ""
    description: str = ""
    timestamp: int = Field(default=0, ge=0)
    creator: str = ""
    file_count: int = Field(default=0, ge=0, alias="publicValue1")
    reserved: int = Field(default=0, ge=0, alias="publicValue2")
    is_verified: bool = Field(default=False, alias="isVerified")
    revealed_value: int = Field(default=0, ge=0, alias="decryptedValue")

    @field_validator("timestamp", "file_count", "reserved", "revealed_value", mode="before")
    @classmethod
    def _parse_quantities(cls, v: Any) -> Any:
        return _hex_quantity(v)


class TransactionReceipt(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tx_hash: str = Field(alias="transactionHash")
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    success: bool = Field(default=True, alias="status")
    revert_reason: Optional[str] = Field(default=None, alias="revertReason")

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block_number(cls, v: Any) -> Any:
        return _hex_quantity(v)

    @field_validator("success", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> Any:
        # Nodes report "0x1" / "0x0"
        if isinstance(v, str) and v.startswith("0x"):
            return _hex_quantity(v) == 1
        return v


@runtime_checkable
class PendingTransaction(Protocol):
    tx_hash: str

    async def wait(self) -> TransactionReceipt:
        """Suspend until the transaction is included in a block."""
        ...


@runtime_checkable
class LedgerGateway(Protocol):
    @property
    def contract_address(self) -> str: ...

    def with_signer(self, account: str) -> "LedgerGateway": ...

    async def list_record_identifiers(self) -> List[str]: ...

    async def get_record(self, identifier: str) -> LedgerRecordData: ...

    async def get_encrypted_field_handle(self, identifier: str) -> str: ...

    async def create_record(
        self,
        identifier: str,
        name: str,
        ciphertext: str,
        proof: str,
        file_count: int,
        reserved: int,
        description: str,
    ) -> PendingTransaction: ...

    async def submit_verification(
        self, identifier: str, clear_values: str, proof: str
    ) -> PendingTransaction: ...

    async def probe_availability(self) -> bool: ...
