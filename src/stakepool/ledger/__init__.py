"""
stakepool/ledger/

Staking pool ledger: records, handlers, dispatcher and host runtime.
"""

from .records import PoolRecord, PositionRecord, ClaimReceipt
from .reward import calculate_reward
from .instruction import (
    InitializeInstruction,
    DepositInstruction,
    WithdrawInstruction,
    StartEpochInstruction,
    ClaimInstruction,
    decode_instruction,
)
from .processor import process_instruction, TransitionResult
from .store import (
    AccountInfo,
    AccountStore,
    StoredAccount,
    MemoryAccountStore,
    FileAccountStore,
)
from .transfer import AssetTransfer, AssetBank, TransferRecord
from .addresses import (
    position_address,
    claim_receipt_address,
    stake_custody_address,
    reward_custody_address,
)
from .runtime import Runtime, Instruction, AccountMeta
from .client import (
    StakePoolClient,
    initialize_instruction,
    deposit_instruction,
    withdraw_instruction,
    start_epoch_instruction,
    claim_instruction,
    sign_instruction,
)

__all__ = [
    # Records
    "PoolRecord",
    "PositionRecord",
    "ClaimReceipt",
    "calculate_reward",
    # Instructions
    "InitializeInstruction",
    "DepositInstruction",
    "WithdrawInstruction",
    "StartEpochInstruction",
    "ClaimInstruction",
    "decode_instruction",
    # Dispatcher
    "process_instruction",
    "TransitionResult",
    # Collaborators
    "AccountInfo",
    "AccountStore",
    "StoredAccount",
    "MemoryAccountStore",
    "FileAccountStore",
    "AssetTransfer",
    "AssetBank",
    "TransferRecord",
    # Addresses
    "position_address",
    "claim_receipt_address",
    "stake_custody_address",
    "reward_custody_address",
    # Runtime & client
    "Runtime",
    "Instruction",
    "AccountMeta",
    "StakePoolClient",
    "initialize_instruction",
    "deposit_instruction",
    "withdraw_instruction",
    "start_epoch_instruction",
    "claim_instruction",
    "sign_instruction",
]
