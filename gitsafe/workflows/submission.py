"""
gitsafe/workflows/submission.py
Confidential submission: register a repository with an encrypted size.

STATE MACHINE:
    account check -> confidential init -> new identifier -> encrypt(size)
    -> createBusinessData tx -> wait for block -> success -> refresh

Encryption happens before anything touches the ledger, so an encryption
failure leaves no on-chain trace. Any failure ends the whole submission; a
retry starts over with a new identifier.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from gitsafe.errors import (
    ErrorCode,
    GitSafeError,
    SubmissionError,
    UserRejected,
    is_user_rejection,
)
from gitsafe.status.notifier import StatusPhase
from gitsafe.workflows.context import WorkflowContext

logger = logging.getLogger(__name__)

# The contract's second public slot is unused by repository records
RESERVED_PUBLIC_VALUE = 0


def generate_identifier(clock: Callable[[], float] = time.time) -> str:
    """Time-based record identifier, e.g. "repo-1700000000123"."""
    return f"repo-{int(clock() * 1000)}"


def sanitize_size(raw: Any) -> int:
    """Keep digits only ("1,024 KB" -> 1024); nothing left means 0."""
    digits = re.sub(r"[^\d]", "", str(raw if raw is not None else ""))
    return int(digits) if digits else 0


def parse_count(raw: Any) -> int:
    """Leading integer of the input ("12 files" -> 12); garbage means 0."""
    if isinstance(raw, int):
        return raw
    match = re.match(r"\s*([+-]?\d+)", str(raw if raw is not None else ""))
    return int(match.group(1)) if match else 0


class SubmissionRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    plaintext_size: int = Field(ge=0)
    file_count: int = Field(ge=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @classmethod
    def from_form(cls, name: str, size: Any, files: Any, description: str = "") -> "SubmissionRequest":
        """Build a request from raw form strings."""
        return cls(
            name=name or "",
            description=description or "",
            plaintext_size=sanitize_size(size),
            file_count=parse_count(files),
        )


class SubmissionWorkflow:
    def __init__(self, context: WorkflowContext, id_factory: Callable[[], str] = generate_identifier):
        self.context = context
        self.id_factory = id_factory

    async def submit_form(self, name: str, size: Any, files: Any, description: str = "") -> str:
        """submit() for raw form input; the size is stripped to digits first."""
        account = self.context.require_account()
        request = self._validate(lambda: SubmissionRequest.from_form(name, size, files, description))
        return await self._run(account, request)

    async def submit(self, name: str, description: str, plaintext_size: int, file_count: int) -> str:
        """
        Encrypt `plaintext_size`, register the record and refresh local state.

        Returns:
            The identifier of the new record

        Raises:
            ConnectionRequired: No account connected
            InitializationFailure: Confidential service could not be set up
            UserRejected: The account holder declined the signature
            SubmissionError: Any other failure
        """
        account = self.context.require_account()
        request = self._validate(
            lambda: SubmissionRequest(
                name=name,
                description=description,
                plaintext_size=plaintext_size,
                file_count=file_count,
            )
        )
        return await self._run(account, request)

    async def _run(self, account: str, request: SubmissionRequest) -> str:
        ctx = self.context
        await ctx.guard.ensure_ready(account)

        ctx.notifier.report(StatusPhase.PENDING, "Creating repository with FHE encryption...")
        identifier: Optional[str] = None
        try:
            identifier = self.id_factory()
            encrypted = await ctx.confidential.encrypt(ctx.contract_address, account, request.plaintext_size)

            signer = ctx.gateway.with_signer(account)
            tx = await signer.create_record(
                identifier,
                request.name,
                encrypted.ciphertext,
                encrypted.proof,
                request.file_count,
                RESERVED_PUBLIC_VALUE,
                request.description,
            )
            ctx.notifier.report(StatusPhase.PENDING, "Waiting for transaction confirmation...")
            await tx.wait()
        except Exception as e:
            error = self._wrap_failure(e, identifier)
            ctx.notifier.report(StatusPhase.ERROR, error.message)
            raise error from e

        logger.info(f"[Submission] Record {identifier} confirmed")
        ctx.notifier.report(StatusPhase.SUCCESS, "Repository created successfully!")
        await ctx.refresh_after_commit()
        return identifier

    def _validate(self, build: Callable[[], SubmissionRequest]) -> SubmissionRequest:
        try:
            return build()
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            error = SubmissionError(
                f"Submission failed: invalid {fields}",
                code=ErrorCode.SUBMISSION_INVALID_INPUT,
                details={"errors": e.errors(include_url=False)},
            )
            self.context.notifier.report(StatusPhase.ERROR, error.message)
            raise error from e

    @staticmethod
    def _wrap_failure(error: Exception, identifier: Optional[str]) -> SubmissionError:
        details = {"identifier": identifier}
        if is_user_rejection(error):
            logger.info(f"[Submission] Signature for {identifier} rejected by user")
            return UserRejected("Transaction rejected by user", details=details)

        reason = error.message if isinstance(error, GitSafeError) else str(error)
        reason = reason or "Unknown error"
        details["reason"] = reason
        logger.error(f"[Submission] Record {identifier} failed: {reason}")
        return SubmissionError(f"Submission failed: {reason}", details=details)
