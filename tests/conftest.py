"""Pytest configuration and in-memory collaborators for the GitSafe client core."""
import asyncio
import copy
from typing import Any, Callable, Dict, List, Optional

import pytest

from gitsafe.base.config import GitSafeConfig, StatusConfig, SyncConfig, LedgerConfig, set_config
from gitsafe.base.session import AccountSession
from gitsafe.confidential.service import DecryptionResult, EncryptedInput, VerifiedDecryption
from gitsafe.errors import LedgerError
from gitsafe.ledger.gateway import LedgerRecordData, TransactionReceipt
from gitsafe.records.synchronizer import RecordSynchronizer
from gitsafe.status.notifier import TransactionStatusNotifier
from gitsafe.workflows.context import WorkflowContext

CONTRACT = "0xC0FFEE0000000000000000000000000000000001"
ACCOUNT = "0xA11CE00000000000000000000000000000000002"


# ============================================================================
# Fake ledger
# ============================================================================

class FakePendingTransaction:
    def __init__(self, tx_hash: str, apply: Callable[[], None], fail: Optional[Exception] = None):
        self.tx_hash = tx_hash
        self._apply = apply
        self._fail = fail
        self.waited = False

    async def wait(self) -> TransactionReceipt:
        await asyncio.sleep(0)
        self.waited = True
        if self._fail is not None:
            raise self._fail
        self._apply()
        return TransactionReceipt(transactionHash=self.tx_hash, blockNumber=1, status=True)


class FakeLedger:
    """
    In-memory registry contract.

    Writes only take effect when the returned transaction is awaited, like
    block inclusion on a real ledger.
    """

    def __init__(self):
        self.state: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.failing_records: set = set()
        self.list_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.available = True
        self.account: Optional[str] = None
        self._tx = 0

    @property
    def contract_address(self) -> str:
        return CONTRACT

    def with_signer(self, account: str) -> "FakeLedger":
        signer = copy.copy(self)
        signer.account = account
        return signer

    def seed(self, identifier: str, name: str = "seed", *, file_count: int = 1, size: int = 0,
             verified: bool = False, handle: Optional[str] = None, creator: str = ACCOUNT,
             timestamp: int = 1_700_000_000, description: str = "") -> None:
        self.state[identifier] = {
            "name": name,
            "description": description,
            "timestamp": timestamp,
            "creator": creator,
            "publicValue1": file_count,
            "publicValue2": 0,
            "isVerified": verified,
            "decryptedValue": size if verified else 0,
            "handle": handle or f"0xhandle-{identifier}",
        }

    def mark_verified(self, identifier: str, value: int) -> None:
        self.state[identifier]["isVerified"] = True
        self.state[identifier]["decryptedValue"] = value

    def _next_hash(self) -> str:
        self._tx += 1
        return f"0xtx{self._tx}"

    async def list_record_identifiers(self) -> List[str]:
        self.calls.append("list_record_identifiers")
        await asyncio.sleep(0)
        if self.list_error is not None:
            raise self.list_error
        return list(self.state)

    async def get_record(self, identifier: str) -> LedgerRecordData:
        self.calls.append("get_record")
        await asyncio.sleep(0)
        if identifier in self.failing_records:
            raise LedgerError(f"could not decode record {identifier}")
        if identifier not in self.state:
            raise LedgerError("Business data does not exist")
        raw = {k: v for k, v in self.state[identifier].items() if k != "handle"}
        return LedgerRecordData.model_validate(raw)

    async def get_encrypted_field_handle(self, identifier: str) -> str:
        self.calls.append("get_encrypted_field_handle")
        return self.state[identifier]["handle"]

    async def create_record(self, identifier, name, ciphertext, proof, file_count, reserved, description):
        self.calls.append("create_record")
        if self.send_error is not None:
            raise self.send_error
        creator = self.account

        def apply():
            if identifier in self.state:
                raise LedgerError("Business data already exists")
            self.state[identifier] = {
                "name": name,
                "description": description,
                "timestamp": 1_700_000_000,
                "creator": creator,
                "publicValue1": file_count,
                "publicValue2": reserved,
                "isVerified": False,
                "decryptedValue": 0,
                "handle": ciphertext,
            }

        return FakePendingTransaction(self._next_hash(), apply, self.wait_error)

    async def submit_verification(self, identifier, clear_values, proof):
        self.calls.append("submit_verification")
        if self.send_error is not None:
            raise self.send_error

        def apply():
            if self.state[identifier]["isVerified"]:
                raise LedgerError("Data already verified")
            self.mark_verified(identifier, int(clear_values))

        return FakePendingTransaction(self._next_hash(), apply, self.wait_error)

    async def probe_availability(self) -> bool:
        self.calls.append("probe_availability")
        return self.available


# ============================================================================
# Fake confidential value service
# ============================================================================

class FakeConfidentialService:
    def __init__(self):
        self.is_initialized = False
        self.init_calls = 0
        self.init_error: Optional[Exception] = None
        self.init_delay = 0.0
        self.encrypt_error: Optional[Exception] = None
        self.decrypt_calls = 0
        self.encrypt_calls: List[tuple] = []
        self.plaintexts: Dict[str, int] = {}
        self.before_proof: Optional[Callable[[], None]] = None
        self.drop_handles = False

    async def initialize(self) -> None:
        self.init_calls += 1
        await asyncio.sleep(self.init_delay)
        if self.init_error is not None:
            raise self.init_error
        self.is_initialized = True

    async def encrypt(self, contract_address: str, account_address: str, plaintext: int) -> EncryptedInput:
        self.encrypt_calls.append((contract_address, account_address, plaintext))
        await asyncio.sleep(0)
        if self.encrypt_error is not None:
            raise self.encrypt_error
        handle = f"0xHANDLE{len(self.encrypt_calls):04d}"
        self.plaintexts[handle] = plaintext
        return EncryptedInput(ciphertext=handle, proof="0xinputproof")

    async def verify_decryption(self, handles, contract_address, on_proof_ready) -> VerifiedDecryption:
        self.decrypt_calls += 1
        clear = {} if self.drop_handles else {h: self.plaintexts.get(h, 0) for h in handles}
        if self.before_proof is not None:
            self.before_proof()
        value = clear.get(handles[0], self.plaintexts.get(handles[0], 0))
        receipt = await on_proof_ready(str(value), "0xdecryptionproof")
        return VerifiedDecryption(
            decryption_result=DecryptionResult(clear_values=clear),
            callback_result=receipt,
        )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_config():
    config = GitSafeConfig(
        ledger=LedgerConfig(contract_address=CONTRACT, confirmation_poll_interval=0.0),
        status=StatusConfig(success_clear_seconds=0.05, error_clear_seconds=0.08),
        sync=SyncConfig(max_concurrent_fetches=4, page_size=5),
    )
    set_config(config)
    TransactionStatusNotifier.reset_instance()
    yield config
    TransactionStatusNotifier.reset_instance()
    set_config(None)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def confidential():
    return FakeConfidentialService()


@pytest.fixture
def notifier(test_config):
    n = TransactionStatusNotifier(test_config.status)
    n.history = []
    n.changed.connect(n.history.append)
    return n


@pytest.fixture
def session():
    return AccountSession(ACCOUNT)


@pytest.fixture
def synchronizer(ledger, test_config):
    return RecordSynchronizer(ledger, test_config.sync)


@pytest.fixture
def context(session, ledger, confidential, synchronizer, notifier):
    return WorkflowContext(
        session=session,
        gateway=ledger,
        confidential=confidential,
        synchronizer=synchronizer,
        notifier=notifier,
    )
