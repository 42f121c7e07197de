"""
gitsafe/confidential/relayer.py
HTTP relayer client implementing ConfidentialValueService.

Endpoints:
    GET  /v1/keyurl           -> public key material (initialization)
    POST /v1/encrypt          -> {"handles": [...], "inputProof": "0x..."}
    POST /v1/public-decrypt   -> {"clearValues": {...}, "abiEncodedClearValues": "0x...",
                                  "decryptionProof": "0x..."}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from gitsafe.base.config import ConfidentialConfig, get_config
from gitsafe.confidential.service import (
    DecryptionResult,
    EncryptedInput,
    ProofCallback,
    VerifiedDecryption,
)
from gitsafe.errors import ConfidentialServiceError, ErrorCode

logger = logging.getLogger(__name__)


class RelayerConfidentialService:
    """Talks to a confidential-computation relayer over HTTP."""

    def __init__(self, config: Optional[ConfidentialConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or get_config().confidential
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.config.relayer_url,
            timeout=self.config.request_timeout,
        )
        self._key_info: Optional[Dict[str, Any]] = None

    @property
    def is_initialized(self) -> bool:
        return self._key_info is not None

    async def initialize(self) -> None:
        if self.is_initialized:
            return
        self._key_info = await self._request("GET", "/v1/keyurl")
        logger.info("[Relayer] Public key material loaded")

    async def encrypt(self, contract_address: str, account_address: str, plaintext: int) -> EncryptedInput:
        self._require_initialized()
        body = await self._request(
            "POST",
            "/v1/encrypt",
            json={
                "contractAddress": contract_address,
                "userAddress": account_address,
                "values": [{"type": self.config.value_type, "value": int(plaintext)}],
            },
        )
        handles = body.get("handles") or []
        if not handles or not body.get("inputProof"):
            raise ConfidentialServiceError("Relayer returned no ciphertext for encrypted input")
        return EncryptedInput(ciphertext=handles[0], proof=body["inputProof"])

    async def verify_decryption(
        self,
        handles: Sequence[str],
        contract_address: str,
        on_proof_ready: ProofCallback,
    ) -> VerifiedDecryption:
        self._require_initialized()
        body = await self._request(
            "POST",
            "/v1/public-decrypt",
            json={"handles": list(handles), "contractAddress": contract_address},
        )
        result = DecryptionResult.model_validate(body)
        logger.debug(f"[Relayer] Decrypted {len(result.clear_values)} handle(s), handing proof to ledger")
        callback_result = await on_proof_ready(result.abi_encoded_clear_values, result.decryption_proof)
        return VerifiedDecryption(decryption_result=result, callback_result=callback_result)

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    # ============================================================================
    # Internals
    # ============================================================================

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise ConfidentialServiceError(
                "Confidential value service used before initialization",
                code=ErrorCode.CONFIDENTIAL_NOT_INITIALIZED,
            )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ConfidentialServiceError(
                f"Relayer request {path} failed: {e}",
                details={"path": path, "original_type": type(e).__name__},
            ) from e

        if response.is_error:
            message = _error_message(response) or f"HTTP {response.status_code}"
            raise ConfidentialServiceError(message, details={"path": path, "status": response.status_code})
        try:
            return response.json()
        except ValueError as e:
            raise ConfidentialServiceError(f"Relayer returned invalid JSON for {path}") from e


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None
