"""
stakepool/ledger/handlers.py

Transition handlers: one per instruction.

Each handler receives the pool as an explicit PoolRecord, the accounts that
follow the pool account, the decoded instruction and a TransitionContext.
Handlers follow the same order:

1. take accounts in their fixed order
2. run every check (signer, ownership, state, arithmetic)
3. invoke the transfer collaborator, if any
4. write records

Nothing is written before step 3 succeeds, so a refused transfer leaves
every record as it was.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from ..config import LedgerConfig, ClaimPolicy, U16_MAX
from ..errors import (
    AuthorizationError,
    DecodeError,
    ErrorKind,
    InsufficientFundsError,
    StateError,
    ValidationError,
)
from ..signing import Identity
from .addresses import (
    claim_receipt_address,
    position_address,
    reward_custody_address,
    stake_custody_address,
)
from .instruction import (
    ClaimInstruction,
    DepositInstruction,
    InitializeInstruction,
    StartEpochInstruction,
    WithdrawInstruction,
)
from .records import ClaimReceipt, PoolRecord, PositionRecord, checked_add, checked_sub
from .reward import calculate_reward
from .store import AccountInfo
from .transfer import AssetTransfer

logger = logging.getLogger("stakepool.ledger.handlers")


@dataclass
class TransitionContext:
    """Per-instruction collaborators and settings."""
    program_id: Identity
    pool_key: Identity
    transfer: AssetTransfer
    config: LedgerConfig


# ============================================================================
# ACCOUNT CHECKS
# ============================================================================

def _next_account(accounts: Iterator[AccountInfo], role: str) -> AccountInfo:
    account = next(accounts, None)
    if account is None:
        raise DecodeError(f"Missing {role} account", kind=ErrorKind.NOT_ENOUGH_ACCOUNTS)
    return account


def _require_signer(account: AccountInfo, role: str) -> None:
    if not account.is_signer:
        logger.warning(f"{role.capitalize()} {account.key.hex()[:16]} must be a signer")
        raise AuthorizationError(f"{role.capitalize()} must be a signer", kind=ErrorKind.MISSING_SIGNATURE)


def _require_program_owned(account: AccountInfo, ctx: TransitionContext, role: str) -> None:
    if account.owner != ctx.program_id:
        raise StateError(
            f"{role.capitalize()} account is not owned by this program",
            kind=ErrorKind.NOT_OWNED_BY_PROGRAM,
        )


def require_writable(account: AccountInfo, role: str) -> None:
    """Reject a record account the runtime would not persist."""
    if not account.is_writable:
        logger.warning(f"{role.capitalize()} account {account.key.hex()[:16]} passed read-only")
        raise ValidationError(
            f"{role.capitalize()} account must be writable",
            kind=ErrorKind.INVALID_ARGUMENT,
        )


def _require_address(account: AccountInfo, expected: Identity, role: str) -> None:
    if account.key != expected:
        raise ValidationError(
            f"Wrong {role} account: expected {expected.hex()[:16]}, got {account.key.hex()[:16]}",
            kind=ErrorKind.INVALID_ARGUMENT,
        )


def _require_record_owner(owner: Identity, participant: Identity, role: str) -> None:
    if owner != participant:
        raise AuthorizationError(
            f"{role.capitalize()} belongs to another participant",
            kind=ErrorKind.OWNER_MISMATCH,
        )


def _load_position(
    account: AccountInfo,
    participant: AccountInfo,
    ctx: TransitionContext,
    must_exist: bool,
) -> PositionRecord:
    _require_program_owned(account, ctx, "position")
    _require_address(account, position_address(ctx.pool_key, participant.key), "position")
    position = PositionRecord.unpack(account.data)
    if not position.initialized:
        if must_exist:
            raise StateError("Position is not initialized", kind=ErrorKind.UNINITIALIZED)
    else:
        _require_record_owner(position.owner, participant.key, "position")
    return position


# ============================================================================
# HANDLERS
# ============================================================================

def initialize(
    pool: PoolRecord,
    accounts: Sequence[AccountInfo],
    instruction: InitializeInstruction,
    ctx: TransitionContext,
) -> int:
    """Create the pool and bind its owner. Accounts: [owner]."""
    account_iter = iter(accounts)
    owner_account = _next_account(account_iter, "owner")

    _require_signer(owner_account, "owner")

    if pool.initialized:
        logger.warning("Pool is already initialized")
        raise StateError("Pool is already initialized", kind=ErrorKind.ALREADY_INITIALIZED)

    pool.initialized = True
    pool.owner = owner_account.key
    if instruction.stake_asset is not None:
        pool.stake_asset = instruction.stake_asset
    if instruction.reward_asset is not None:
        pool.reward_asset = instruction.reward_asset

    logger.info(f"Initialized pool {ctx.pool_key.hex()[:16]} owned by {pool.owner.hex()[:16]}")
    return 0


def deposit(
    pool: PoolRecord,
    accounts: Sequence[AccountInfo],
    instruction: DepositInstruction,
    ctx: TransitionContext,
) -> int:
    """Stake tokens. Accounts: [participant, pool custody, position]."""
    account_iter = iter(accounts)
    participant = _next_account(account_iter, "participant")
    custody = _next_account(account_iter, "custody")
    position_account = _next_account(account_iter, "position")

    _require_signer(participant, "participant")
    _require_address(custody, stake_custody_address(ctx.pool_key, pool.stake_asset), "custody")

    amount = instruction.amount
    require_writable(position_account, "position")
    position = _load_position(position_account, participant, ctx, must_exist=False)

    staked_amount = checked_add(position.staked_amount, amount, what="staked_amount")
    total_staked = checked_add(pool.total_staked, amount, what="total_staked")

    ctx.transfer.transfer(pool.stake_asset, participant.key, custody.key, amount)

    if not position.initialized:
        position.initialized = True
        position.owner = participant.key
    position.staked_amount = staked_amount
    position.pack_into(position_account.data)
    pool.total_staked = total_staked

    logger.info(f"Deposited {amount} tokens")
    return amount


def withdraw(
    pool: PoolRecord,
    accounts: Sequence[AccountInfo],
    instruction: WithdrawInstruction,
    ctx: TransitionContext,
) -> int:
    """Unstake tokens. Accounts: [participant, pool custody, position]."""
    account_iter = iter(accounts)
    participant = _next_account(account_iter, "participant")
    custody = _next_account(account_iter, "custody")
    position_account = _next_account(account_iter, "position")

    _require_signer(participant, "participant")
    _require_address(custody, stake_custody_address(ctx.pool_key, pool.stake_asset), "custody")

    amount = instruction.amount
    require_writable(position_account, "position")
    position = _load_position(position_account, participant, ctx, must_exist=True)

    if position.staked_amount < amount:
        logger.warning("Insufficient staked tokens")
        raise InsufficientFundsError(
            f"Insufficient staked tokens: have {position.staked_amount}, requested {amount}"
        )

    total_staked = checked_sub(pool.total_staked, amount, what="total_staked")

    ctx.transfer.transfer(pool.stake_asset, custody.key, participant.key, amount)

    position.staked_amount -= amount
    position.pack_into(position_account.data)
    pool.total_staked = total_staked

    logger.info(f"Unstaked {amount} tokens")
    return amount


def start_epoch(
    pool: PoolRecord,
    accounts: Sequence[AccountInfo],
    instruction: StartEpochInstruction,
    ctx: TransitionContext,
) -> int:
    """Open the next reward epoch. Accounts: [owner]."""
    account_iter = iter(accounts)
    owner_account = _next_account(account_iter, "owner")

    _require_signer(owner_account, "owner")
    if ctx.config.owner_gated_epochs and owner_account.key != pool.owner:
        logger.warning(f"Signer {owner_account.key.hex()[:16]} is not the pool owner")
        raise AuthorizationError("Only the pool owner may start an epoch", kind=ErrorKind.OWNER_MISMATCH)

    start_time = instruction.start_time
    end_time = instruction.end_time

    if start_time <= pool.epoch_end:
        raise ValidationError(
            f"Epoch start time {start_time} must be after the current epoch end time {pool.epoch_end}"
        )
    if end_time <= start_time:
        raise ValidationError(f"End time {end_time} must be after start time {start_time}")

    epoch_id = checked_add(pool.epoch_id, 1, limit=U16_MAX, what="epoch_id")

    pool.epoch_start = start_time
    pool.epoch_end = end_time
    pool.epoch_reward = instruction.reward_amount
    pool.epoch_id = epoch_id

    logger.info(f"Started new epoch with ID {pool.epoch_id}")
    return instruction.reward_amount


def claim(
    pool: PoolRecord,
    accounts: Sequence[AccountInfo],
    instruction: ClaimInstruction,
    ctx: TransitionContext,
) -> int:
    """
    Pay the participant's share of the current epoch reward.

    Accounts: [participant, reward custody, position] and, under the
    once-per-epoch claim policy, a trailing claim receipt.

    Never touches staked_amount or total_staked.
    """
    account_iter = iter(accounts)
    participant = _next_account(account_iter, "participant")
    custody = _next_account(account_iter, "custody")
    position_account = _next_account(account_iter, "position")

    once_per_epoch = ctx.config.claim_policy == ClaimPolicy.ONCE_PER_EPOCH
    receipt_account: Optional[AccountInfo] = None
    if once_per_epoch:
        receipt_account = _next_account(account_iter, "claim receipt")

    _require_signer(participant, "participant")
    _require_address(custody, reward_custody_address(ctx.pool_key, pool.reward_asset), "custody")

    position = _load_position(position_account, participant, ctx, must_exist=True)

    receipt: Optional[ClaimReceipt] = None
    if receipt_account is not None:
        _require_program_owned(receipt_account, ctx, "claim receipt")
        require_writable(receipt_account, "claim receipt")
        _require_address(
            receipt_account,
            claim_receipt_address(ctx.pool_key, participant.key),
            "claim receipt",
        )
        receipt = ClaimReceipt.unpack(receipt_account.data)
        if receipt.initialized:
            _require_record_owner(receipt.owner, participant.key, "claim receipt")
        if pool.epoch_id == 0:
            raise StateError("No epoch has been started", kind=ErrorKind.NO_ACTIVE_EPOCH)
        if receipt.has_claimed(pool.epoch_id):
            logger.warning(f"Reward for epoch {pool.epoch_id} already claimed")
            raise StateError(
                f"Reward for epoch {pool.epoch_id} already claimed",
                kind=ErrorKind.ALREADY_CLAIMED,
            )

    rewards = calculate_reward(position.staked_amount, pool.epoch_reward, pool.total_staked)

    if rewards > 0:
        ctx.transfer.transfer(pool.reward_asset, custody.key, participant.key, rewards)

    if receipt is not None:
        receipt.initialized = True
        receipt.owner = participant.key
        receipt.last_claimed_epoch = pool.epoch_id
        receipt.pack_into(receipt_account.data)

    logger.info(f"Claimed {rewards} rewards")
    return rewards
