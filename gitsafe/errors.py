"""Module errors: structured error taxonomy for the GitSafe client core."""
#
# PURPOSE:
# Every failure that crosses a workflow boundary is a GitSafeError carrying an
# ErrorCode, so presentation code can branch on the code and the notifier can
# show the human-readable message.
#
# ERROR CODE FORMAT:
# - ACCOUNT_XXX: Account / connection errors
# - FHE_XXX: Confidential value subsystem errors
# - SUBMIT_XXX: Record submission errors
# - SYNC_XXX: Record synchronization errors
# - VERIFY_XXX: Decryption / verification errors
# - LEDGER_XXX: Ledger gateway transport errors
# - CONFIG_XXX: Configuration errors
#
# USAGE:
#   from gitsafe.errors import SubmissionError, ErrorCode
#
#   raise SubmissionError(
#       "Submission failed: execution reverted",
#       details={"identifier": "repo-1700000000000"}
#   )
#
import json
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Account Errors
    ACCOUNT_NOT_CONNECTED = "ACCOUNT_001"

    # Confidential subsystem Errors
    CONFIDENTIAL_INIT_FAILED = "FHE_001"
    CONFIDENTIAL_SERVICE_ERROR = "FHE_002"
    CONFIDENTIAL_NOT_INITIALIZED = "FHE_003"

    # Submission Errors
    SUBMISSION_FAILED = "SUBMIT_001"
    SUBMISSION_REJECTED = "SUBMIT_002"
    SUBMISSION_INVALID_INPUT = "SUBMIT_003"

    # Synchronization Errors
    SYNC_LIST_FAILED = "SYNC_001"
    SYNC_RECORD_FAILED = "SYNC_002"

    # Verification Errors
    VERIFICATION_FAILED = "VERIFY_001"
    VERIFICATION_ALREADY_DONE = "VERIFY_002"
    VERIFICATION_VALUE_MISSING = "VERIFY_003"

    # Ledger Errors
    LEDGER_RPC_ERROR = "LEDGER_001"
    LEDGER_TX_REVERTED = "LEDGER_002"
    LEDGER_SIGNER_MISSING = "LEDGER_003"

    # Config Errors
    CONFIG_INVALID = "CONFIG_001"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


# Wallet providers report a user-declined signature with this JSON-RPC code.
USER_REJECTED_RPC_CODE = 4001


class GitSafeError(Exception):
    """
    Base exception class for GitSafe with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "SUBMIT_001")
        message: Human-readable error message, safe to show to the user
        details: Optional dictionary with additional context
    """

    default_code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}

        super().__init__(f"[{self.code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitSafeError":
        """
        Deserialize error from dictionary.

        Args:
            data: Dictionary with code, message, details

        Returns:
            Instance of the class this was called on
        """
        return cls(
            data["message"],
            code=ErrorCode(data["code"]),
            details=data.get("details", {}),
        )


# ============================================================================
# Workflow Taxonomy
# ============================================================================

class ConnectionRequired(GitSafeError):
    """Raised when an operation needs an active account and none is connected."""
    default_code = ErrorCode.ACCOUNT_NOT_CONNECTED


class InitializationFailure(GitSafeError):
    """Raised when the confidential value subsystem could not be set up."""
    default_code = ErrorCode.CONFIDENTIAL_INIT_FAILED


class SubmissionError(GitSafeError):
    """Raised when any step of record creation fails."""
    default_code = ErrorCode.SUBMISSION_FAILED


class UserRejected(SubmissionError):
    """The account holder declined to sign the creation transaction."""
    default_code = ErrorCode.SUBMISSION_REJECTED


class SyncError(GitSafeError):
    """Raised when the record identifier listing cannot be fetched."""
    default_code = ErrorCode.SYNC_LIST_FAILED


class VerificationError(GitSafeError):
    """Raised when decryption or on-chain verification fails."""
    default_code = ErrorCode.VERIFICATION_FAILED


class AlreadyVerified(VerificationError):
    """The confidential field was verified by another party first."""
    default_code = ErrorCode.VERIFICATION_ALREADY_DONE


# ============================================================================
# Adapter Errors
# ============================================================================

class LedgerError(GitSafeError):
    """Transport or execution failure reported by the ledger gateway."""
    default_code = ErrorCode.LEDGER_RPC_ERROR


class ConfidentialServiceError(GitSafeError):
    """Failure reported by the confidential value service."""
    default_code = ErrorCode.CONFIDENTIAL_SERVICE_ERROR


# ============================================================================
# Classifiers
# ============================================================================

def _message_of(error: BaseException) -> str:
    if isinstance(error, GitSafeError):
        return error.message
    return str(error)


def is_user_rejection(error: BaseException) -> bool:
    """True when the failure is the account holder declining a signature."""
    if isinstance(error, UserRejected):
        return True
    if isinstance(error, GitSafeError) and error.details.get("rpc_code") == USER_REJECTED_RPC_CODE:
        return True
    return "user rejected" in _message_of(error).lower()


def is_already_verified(error: BaseException) -> bool:
    """True when the ledger refused verification because it already happened."""
    if isinstance(error, AlreadyVerified):
        return True
    return "already verified" in _message_of(error).lower()


def handle_error(error: Exception, context: Optional[str] = None) -> GitSafeError:
    """
    Convert a generic exception to a GitSafeError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while fetching handle")

    Returns:
        The error itself if it is already a GitSafeError, otherwise a wrapper
    """
    if isinstance(error, GitSafeError):
        return error

    error_type = type(error).__name__
    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return GitSafeError(
        message,
        code=ErrorCode.SYSTEM_INTERNAL_ERROR,
        details={
            "original_type": error_type,
            "original_message": str(error),
        },
    )


__all__ = [
    "ErrorCode",
    "GitSafeError",
    "ConnectionRequired",
    "InitializationFailure",
    "SubmissionError",
    "UserRejected",
    "SyncError",
    "VerificationError",
    "AlreadyVerified",
    "LedgerError",
    "ConfidentialServiceError",
    "USER_REJECTED_RPC_CODE",
    "is_user_rejection",
    "is_already_verified",
    "handle_error",
]
