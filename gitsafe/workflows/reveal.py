"""
gitsafe/workflows/reveal.py
Decryption & verification: reveal a record's confidential size on-chain.

STATE MACHINE:
    account check -> getBusinessData
        verified?  yes -> success("already verified"), return stored value
                   no  -> confidential init -> getEncryptedValue(handle)
                          -> verify_decryption([handle], on_proof_ready)
                               on_proof_ready: verifyDecryption tx -> wait
                          -> value for handle -> success -> refresh -> value

A ledger answer of "already verified" at any point after the first check
means somebody else won the race: the workflow refreshes and returns None
instead of failing. Re-running the workflow is always safe because the
verified check comes first.
"""

from __future__ import annotations

import logging
from typing import Optional

from gitsafe.errors import (
    ErrorCode,
    GitSafeError,
    VerificationError,
    is_already_verified,
)
from gitsafe.ledger.gateway import TransactionReceipt
from gitsafe.status.notifier import StatusPhase
from gitsafe.workflows.context import WorkflowContext

logger = logging.getLogger(__name__)


class RevealWorkflow:
    def __init__(self, context: WorkflowContext):
        self.context = context

    async def reveal_size(self, identifier: str) -> Optional[int]:
        """
        Decrypt and verify the confidential size of `identifier`.

        Returns:
            The revealed size; the stored value if the record was already
            verified; None if it got verified by someone else mid-flight

        Raises:
            ConnectionRequired: No account connected
            InitializationFailure: Confidential service could not be set up
            VerificationError: Any other failure
        """
        ctx = self.context
        account = ctx.require_account()

        try:
            data = await ctx.gateway.get_record(identifier)
        except Exception as e:
            raise self._fail(identifier, e) from e

        if data.is_verified:
            logger.info(f"[Reveal] {identifier} already verified, skipping decryption")
            ctx.notifier.report(StatusPhase.SUCCESS, "Data already verified on-chain")
            return data.revealed_value

        await ctx.guard.ensure_ready(account)

        try:
            handle = await ctx.gateway.get_encrypted_field_handle(identifier)
            signer = ctx.gateway.with_signer(account)

            async def on_proof_ready(clear_values: str, proof: str) -> TransactionReceipt:
                tx = await signer.submit_verification(identifier, clear_values, proof)
                ctx.notifier.report(StatusPhase.PENDING, "Verifying decryption on-chain...")
                return await tx.wait()

            result = await ctx.confidential.verify_decryption([handle], ctx.contract_address, on_proof_ready)
            value = result.decryption_result.value_for(handle)
            if value is None:
                raise VerificationError(
                    "Decryption result did not include the requested handle",
                    code=ErrorCode.VERIFICATION_VALUE_MISSING,
                    details={"handle": handle},
                )
        except Exception as e:
            if is_already_verified(e):
                logger.info(f"[Reveal] {identifier} was verified concurrently")
                await ctx.refresh_after_commit()
                ctx.notifier.report(StatusPhase.SUCCESS, "Data is already verified on-chain")
                return None
            raise self._fail(identifier, e) from e

        await ctx.refresh_after_commit()
        ctx.notifier.report(StatusPhase.SUCCESS, "Data decrypted and verified successfully!")
        logger.info(f"[Reveal] {identifier} verified")
        return int(value)

    def _fail(self, identifier: str, error: Exception) -> VerificationError:
        reason = error.message if isinstance(error, GitSafeError) else str(error)
        reason = reason or "Unknown error"
        logger.error(f"[Reveal] {identifier} failed: {reason}")
        failure = VerificationError(
            f"Decryption failed: {reason}",
            code=error.code if isinstance(error, VerificationError) else ErrorCode.VERIFICATION_FAILED,
            details={"identifier": identifier, "reason": reason},
        )
        self.context.notifier.report(StatusPhase.ERROR, failure.message)
        return failure
