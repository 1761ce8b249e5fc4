"""
stakepool - Single-pool staking ledger

A state machine over one Pool Record and per-participant Position Records:
- initialize, deposit, withdraw, start epoch, claim
- fixed-layout little-endian record and instruction codecs
- checked u64 accounting, proportional epoch rewards
- Ed25519 signer verification
- atomic execution against a pluggable account store and asset bank

Usage:
    from stakepool import (
        Keypair, Identity, MemoryAccountStore, AssetBank,
        Runtime, StakePoolClient,
    )

    runtime = Runtime(MemoryAccountStore(), AssetBank())
    client = StakePoolClient(runtime, pool_key)

    client.initialize(owner, stake_asset, reward_asset)
    client.deposit(alice, 250)
    client.start_epoch(owner, start_time=100, end_time=200, reward_amount=1_000)
    reward = client.claim(alice)

Metrics Usage:
    from stakepool.metrics import LedgerMetrics

    metrics = LedgerMetrics()
    runtime = Runtime(store, bank, metrics=metrics)
    prometheus_output = metrics.collect()
"""

from .signing import Identity, Keypair, verify_signature
from .config import LedgerConfig, ClaimPolicy
from .errors import (
    ErrorKind,
    StakingError,
    AuthorizationError,
    StateError,
    ValidationError,
    InsufficientFundsError,
    ArithmeticOverflowError,
    DecodeError,
    TransferError,
)
from .metrics import LedgerMetrics
from .ledger import (
    PoolRecord,
    PositionRecord,
    ClaimReceipt,
    calculate_reward,
    decode_instruction,
    process_instruction,
    TransitionResult,
    AccountInfo,
    MemoryAccountStore,
    FileAccountStore,
    AssetTransfer,
    AssetBank,
    Runtime,
    Instruction,
    AccountMeta,
    StakePoolClient,
)

__version__ = "1.0.0"
__all__ = [
    # Identity
    "Identity",
    "Keypair",
    "verify_signature",
    # Config
    "LedgerConfig",
    "ClaimPolicy",
    # Errors
    "ErrorKind",
    "StakingError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
    "InsufficientFundsError",
    "ArithmeticOverflowError",
    "DecodeError",
    "TransferError",
    # Metrics
    "LedgerMetrics",
    # Ledger
    "PoolRecord",
    "PositionRecord",
    "ClaimReceipt",
    "calculate_reward",
    "decode_instruction",
    "process_instruction",
    "TransitionResult",
    "AccountInfo",
    "MemoryAccountStore",
    "FileAccountStore",
    "AssetTransfer",
    "AssetBank",
    "Runtime",
    "Instruction",
    "AccountMeta",
    "StakePoolClient",
]
