"""
gitsafe/confidential/service.py
Contract of the confidential value service (encryption + verified decryption).

The service is opaque to the core: it turns a plaintext integer into a
ciphertext handle plus input proof, and turns ciphertext handles back into
cleartext values plus a decryption proof the ledger can check.

Verified decryption is a two-phase continuation. The caller hands the service
an `on_proof_ready(clear_bundle, proof)` coroutine function; the service calls
it once it holds the proof and only returns after that awaitable resolves.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# (abi-encoded clear values, decryption proof) -> awaitable ledger receipt
ProofCallback = Callable[[str, str], Awaitable[Any]]


class EncryptedInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    ciphertext: str
    proof: str


class DecryptionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    clear_values: Dict[str, int] = Field(default_factory=dict, alias="clearValues")
    abi_encoded_clear_values: str = Field(default="", alias="abiEncodedClearValues")
    decryption_proof: str = Field(default="", alias="decryptionProof")

    def value_for(self, handle: str) -> Optional[int]:
        """Clear value for a handle; hex handles are matched case-insensitively."""
        if handle in self.clear_values:
            return self.clear_values[handle]
        wanted = handle.lower()
        for key, value in self.clear_values.items():
            if key.lower() == wanted:
                return value
        return None


class VerifiedDecryption(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    decryption_result: DecryptionResult
    callback_result: Any = None


@runtime_checkable
class ConfidentialValueService(Protocol):
    @property
    def is_initialized(self) -> bool: ...

    async def initialize(self) -> None: ...

    async def encrypt(self, contract_address: str, account_address: str, plaintext: int) -> EncryptedInput: ...

    async def verify_decryption(
        self,
        handles: Sequence[str],
        contract_address: str,
        on_proof_ready: ProofCallback,
    ) -> VerifiedDecryption: ...
