"""
stakepool/errors.py

Error taxonomy for the staking ledger.

Every failure a transition can produce is a StakingError subclass carrying
an ErrorKind. The kind is the stable, caller-visible code; the class groups
kinds by cause so callers can catch a whole family at once.
"""

from enum import Enum


class ErrorKind(Enum):
    """Caller-visible error codes."""
    # Authorization
    MISSING_SIGNATURE = "MissingSignature"
    OWNER_MISMATCH = "OwnerMismatch"
    # State
    UNINITIALIZED = "Uninitialized"
    NOT_OWNED_BY_PROGRAM = "NotOwnedByProgram"
    ALREADY_INITIALIZED = "AlreadyInitialized"
    ALREADY_CLAIMED = "AlreadyClaimed"
    NO_ACTIVE_EPOCH = "NoActiveEpoch"
    # Validation
    INVALID_ARGUMENT = "InvalidArgument"
    # Funds
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    # Arithmetic
    OVERFLOW = "Overflow"
    # Decode
    INVALID_OPERATION = "InvalidOperation"
    INVALID_INSTRUCTION = "InvalidInstruction"
    NOT_ENOUGH_ACCOUNTS = "NotEnoughAccounts"
    # Collaborators
    TRANSFER_FAILED = "TransferFailed"

    def __str__(self) -> str:
        return self.value


class StakingError(Exception):
    """Base class for all ledger errors."""

    default_kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str = "", kind: ErrorKind = None):
        self.kind = kind or self.default_kind
        super().__init__(message or str(self.kind))

    def to_dict(self) -> dict:
        return {
            'error': type(self).__name__,
            'kind': str(self.kind),
            'message': str(self),
        }


class AuthorizationError(StakingError):
    """Missing or invalid signer, or signer is not the recorded owner."""
    default_kind = ErrorKind.MISSING_SIGNATURE


class StateError(StakingError):
    """Record is in the wrong lifecycle state or not owned by this program."""
    default_kind = ErrorKind.UNINITIALIZED


class ValidationError(StakingError):
    """Malformed argument, e.g. an out-of-order epoch window."""
    default_kind = ErrorKind.INVALID_ARGUMENT


class InsufficientFundsError(StakingError):
    """Withdrawal exceeds the position balance."""
    default_kind = ErrorKind.INSUFFICIENT_FUNDS


class ArithmeticOverflowError(StakingError, ArithmeticError):
    """Checked arithmetic left the range of its integer width."""
    default_kind = ErrorKind.OVERFLOW


class DecodeError(StakingError):
    """Unrecognized opcode, truncated payload or missing accounts."""
    default_kind = ErrorKind.INVALID_INSTRUCTION


class TransferError(StakingError):
    """The asset transfer collaborator refused or failed a transfer."""
    default_kind = ErrorKind.TRANSFER_FAILED
