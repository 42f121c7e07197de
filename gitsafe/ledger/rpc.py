"""
gitsafe/ledger/rpc.py
JSON-RPC ledger gateway over httpx.

All ledger traffic from the client goes through JsonRpcLedgerGateway. Reads use
the `contract_call` method; writes use `contract_send` (signed by the node-side
wallet bridge for the `from` account) and return an RpcPendingTransaction that
polls `tx_receipt` until the transaction is mined.

Wire format (JSON-RPC 2.0):
    {"jsonrpc": "2.0", "id": 7, "method": "contract_call",
     "params": {"to": "0xabc...", "function": "getBusinessData", "args": ["repo-1"]}}
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from gitsafe.base.config import LedgerConfig, get_config
from gitsafe.errors import ErrorCode, LedgerError
from gitsafe.ledger.gateway import LedgerRecordData, TransactionReceipt

logger = logging.getLogger(__name__)


class RpcPendingTransaction:
    """A submitted transaction; `wait()` polls until a receipt appears."""

    def __init__(self, gateway: "JsonRpcLedgerGateway", tx_hash: str):
        self.gateway = gateway
        self.tx_hash = tx_hash

    async def wait(self) -> TransactionReceipt:
        # No deadline: block inclusion may take arbitrarily long and the caller
        # is free to abandon the await.
        interval = self.gateway.config.confirmation_poll_interval
        while True:
            raw = await self.gateway._rpc("tx_receipt", {"hash": self.tx_hash})
            if raw is not None:
                break
            await asyncio.sleep(interval)

        receipt = TransactionReceipt.model_validate({"transactionHash": self.tx_hash, **raw})
        if not receipt.success:
            raise LedgerError(
                receipt.revert_reason or "Transaction reverted",
                code=ErrorCode.LEDGER_TX_REVERTED,
                details={"tx_hash": self.tx_hash},
            )
        logger.info(f"[Ledger] Transaction {self.tx_hash} confirmed in block {receipt.block_number}")
        return receipt

    def __repr__(self) -> str:
        return f"RpcPendingTransaction({self.tx_hash!r})"


class JsonRpcLedgerGateway:
    """
    Read-only or signing handle to the repository registry contract.

    A gateway built without an account can only read. `with_signer()` returns
    a sibling handle that shares the same HTTP client and sends transactions
    from the given account.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        account: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config().ledger
        self.account = account
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.config.request_timeout)
        self._ids = itertools.count(1)

    @property
    def contract_address(self) -> str:
        return self.config.contract_address

    def with_signer(self, account: str) -> "JsonRpcLedgerGateway":
        signer = JsonRpcLedgerGateway(self.config, account=account, client=self.client)
        signer._ids = self._ids
        return signer

    # ============================================================================
    # Transport
    # ============================================================================

    async def _rpc(self, method: str, params: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self.client.post(self.config.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise LedgerError(
                f"Ledger RPC {method} failed: {e}",
                details={"method": method, "original_type": type(e).__name__},
            ) from e
        except ValueError as e:
            raise LedgerError(f"Ledger RPC {method} returned invalid JSON", details={"method": method}) from e

        if not isinstance(body, dict):
            raise LedgerError(
                f"Ledger RPC {method} returned a non-object response",
                details={"method": method, "body": body},
            )

        error = body.get("error")
        if error:
            if not isinstance(error, dict):
                # Some nodes send a bare string instead of {code, message, data}
                error = {"message": str(error)}
            raise LedgerError(
                error.get("message") or "Unknown ledger error",
                details={"method": method, "rpc_code": error.get("code"), "data": error.get("data")},
            )
        return body.get("result")

    async def _call(self, function: str, *args: Any) -> Any:
        return await self._rpc(
            "contract_call",
            {"to": self.contract_address, "function": function, "args": list(args)},
        )

    async def _send(self, function: str, *args: Any) -> RpcPendingTransaction:
        if not self.account:
            raise LedgerError(
                f"Cannot send {function} from a read-only gateway",
                code=ErrorCode.LEDGER_SIGNER_MISSING,
            )
        tx_hash = await self._rpc(
            "contract_send",
            {
                "from": self.account,
                "to": self.contract_address,
                "function": function,
                "args": list(args),
            },
        )
        logger.debug(f"[Ledger] {function} submitted as {tx_hash}")
        return RpcPendingTransaction(self, tx_hash)

    # ============================================================================
    # Contract Surface
    # ============================================================================

    async def list_record_identifiers(self) -> List[str]:
        result = await self._call("getAllBusinessIds")
        return [str(x) for x in (result or [])]

    async def get_record(self, identifier: str) -> LedgerRecordData:
        result: Dict[str, Any] = await self._call("getBusinessData", identifier)
        if not isinstance(result, dict):
            raise LedgerError(
                f"Malformed record payload for {identifier}",
                details={"identifier": identifier},
            )
        return LedgerRecordData.model_validate(result)

    async def get_encrypted_field_handle(self, identifier: str) -> str:
        return str(await self._call("getEncryptedValue", identifier))

    async def create_record(
        self,
        identifier: str,
        name: str,
        ciphertext: str,
        proof: str,
        file_count: int,
        reserved: int,
        description: str,
    ) -> RpcPendingTransaction:
        return await self._send(
            "createBusinessData",
            identifier, name, ciphertext, proof, file_count, reserved, description,
        )

    async def submit_verification(self, identifier: str, clear_values: str, proof: str) -> RpcPendingTransaction:
        return await self._send("verifyDecryption", identifier, clear_values, proof)

    async def probe_availability(self) -> bool:
        return bool(await self._call("isAvailable"))

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()
