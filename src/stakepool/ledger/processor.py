"""
stakepool/ledger/processor.py

Instruction dispatcher.

process_instruction() is the single entry point for a transition:

1. check the pool account belongs to this program and is writable
2. decode the opcode and payload
3. load the PoolRecord
4. require an initialized pool (except for initialize)
5. route to the handler
6. pack the PoolRecord back into the pool account

Accounts are AccountInfo working copies; the caller decides whether to
persist them (see runtime.Runtime).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Type

from ..config import LedgerConfig, OPCODE_NAMES
from ..errors import DecodeError, ErrorKind, StateError
from ..signing import Identity
from . import handlers
from .handlers import TransitionContext, require_writable
from .instruction import (
    ClaimInstruction,
    DepositInstruction,
    InitializeInstruction,
    StakeInstruction,
    StartEpochInstruction,
    WithdrawInstruction,
    decode_instruction,
)
from .records import PoolRecord
from .store import AccountInfo
from .transfer import AssetTransfer

logger = logging.getLogger("stakepool.ledger.processor")

Handler = Callable[[PoolRecord, Sequence[AccountInfo], StakeInstruction, TransitionContext], int]

HANDLERS: Dict[Type, Handler] = {
    InitializeInstruction: handlers.initialize,
    DepositInstruction: handlers.deposit,
    WithdrawInstruction: handlers.withdraw,
    StartEpochInstruction: handlers.start_epoch,
    ClaimInstruction: handlers.claim,
}


@dataclass
class TransitionResult:
    """Outcome of one successful instruction."""
    operation: str
    amount: int
    pool: PoolRecord

    def to_dict(self) -> dict:
        return {
            'operation': self.operation,
            'amount': self.amount,
            'pool': self.pool.to_dict(),
        }


def process_instruction(
    program_id: Identity,
    accounts: Sequence[AccountInfo],
    instruction_data: bytes,
    transfer: AssetTransfer,
    config: Optional[LedgerConfig] = None,
) -> TransitionResult:
    """
    Apply one instruction to the pool.

    Args:
        program_id: Identity of this ledger program
        accounts: Pool account first, then the operation's accounts
        instruction_data: Raw instruction buffer
        transfer: Asset transfer collaborator
        config: Ledger settings (defaults to LedgerConfig())

    Returns:
        TransitionResult with the updated pool

    Raises:
        StakingError: any validation failure; accounts may hold partial
            writes and must be discarded
    """
    config = config or LedgerConfig(program_id=program_id)

    if not accounts:
        raise DecodeError("Missing pool account", kind=ErrorKind.NOT_ENOUGH_ACCOUNTS)
    pool_account = accounts[0]

    if pool_account.owner != program_id:
        logger.warning("Pool account does not have the correct program id")
        raise StateError(
            "Pool account is not owned by this program",
            kind=ErrorKind.NOT_OWNED_BY_PROGRAM,
        )

    require_writable(pool_account, "pool")

    instruction = decode_instruction(instruction_data)
    operation = OPCODE_NAMES[instruction.OPCODE]

    pool = PoolRecord.unpack(pool_account.data)
    if not pool.initialized and not isinstance(instruction, InitializeInstruction):
        logger.warning("Pool is not initialized")
        raise StateError("Pool is not initialized", kind=ErrorKind.UNINITIALIZED)

    ctx = TransitionContext(
        program_id=program_id,
        pool_key=pool_account.key,
        transfer=transfer,
        config=config,
    )
    logger.debug(f"Dispatching {operation} on pool {pool_account.key.hex()[:16]}")
    amount = HANDLERS[type(instruction)](pool, accounts[1:], instruction, ctx)

    pool.pack_into(pool_account.data)
    return TransitionResult(operation=operation, amount=amount, pool=pool)
