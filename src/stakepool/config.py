"""
stakepool/config.py

Configuration constants and data classes for stakepool.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import logging
import os

from .signing import Identity

logger = logging.getLogger("stakepool.config")


# Instruction opcodes (byte 0 of every instruction buffer)
OP_INITIALIZE = 0
OP_DEPOSIT = 1
OP_WITHDRAW = 2
OP_START_EPOCH = 3
OP_CLAIM = 4

OPCODE_NAMES = {
    OP_INITIALIZE: "initialize",
    OP_DEPOSIT: "deposit",
    OP_WITHDRAW: "withdraw",
    OP_START_EPOCH: "start_epoch",
    OP_CLAIM: "claim",
}

# Persisted record sizes in bytes
POOL_RECORD_LEN = 1 + 32 + 32 + 32 + 8 + 8 + 8 + 8 + 2
POSITION_RECORD_LEN = 1 + 32 + 8
CLAIM_RECEIPT_LEN = 1 + 32 + 2

# Integer widths
U64_MAX = 2**64 - 1
U16_MAX = 2**16 - 1

# File store settings
DEFAULT_STORAGE_DIR = Path.home() / ".stakepool" / "accounts"

# Environment variables read by LedgerConfig.from_env()
ENV_PROGRAM_ID = "STAKEPOOL_PROGRAM_ID"
ENV_CLAIM_POLICY = "STAKEPOOL_CLAIM_POLICY"
ENV_OWNER_GATED_EPOCHS = "STAKEPOOL_OWNER_GATED_EPOCHS"
ENV_STORAGE_DIR = "STAKEPOOL_STORAGE_DIR"

# Program id used when none is configured
DEFAULT_PROGRAM_ID = Identity(b"StakePoolLedger".ljust(32, b"\x00"))


class ClaimPolicy(Enum):
    """
    How often a participant may claim the current epoch's reward.

    ONCE_PER_EPOCH: a claim receipt records the last epoch claimed and
        a second claim in the same epoch is rejected
    UNRESTRICTED: claims are repeatable (no receipt account involved)
    """
    ONCE_PER_EPOCH = "once-per-epoch"
    UNRESTRICTED = "unrestricted"

    @classmethod
    def from_string(cls, value: str) -> "ClaimPolicy":
        """Convert string to ClaimPolicy."""
        mapping = {
            'once_per_epoch': cls.ONCE_PER_EPOCH,
            'once': cls.ONCE_PER_EPOCH,
            'unrestricted': cls.UNRESTRICTED,
            'repeat': cls.UNRESTRICTED,
        }
        normalized = value.lower().strip().replace('-', '_').replace(' ', '_')
        if normalized in mapping:
            return mapping[normalized]
        raise ValueError(
            f"Invalid claim policy: {value}. "
            f"Valid options: once-per-epoch, unrestricted"
        )

    def __str__(self) -> str:
        return self.value


def _parse_bool(value: str) -> bool:
    normalized = value.lower().strip()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


@dataclass
class LedgerConfig:
    """Settings for one deployed pool."""
    program_id: Identity = DEFAULT_PROGRAM_ID
    claim_policy: ClaimPolicy = ClaimPolicy.ONCE_PER_EPOCH
    owner_gated_epochs: bool = True
    # FileAccountStore location used by Runtime.from_config (None: DEFAULT_STORAGE_DIR)
    storage_dir: Optional[Path] = field(default=None)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "LedgerConfig":
        """
        Build a config from environment variables.

        Unset variables fall back to the dataclass defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            LedgerConfig instance
        """
        env = os.environ if environ is None else environ
        config = cls()

        program_id = env.get(ENV_PROGRAM_ID)
        if program_id:
            config.program_id = Identity.from_hex(program_id)

        claim_policy = env.get(ENV_CLAIM_POLICY)
        if claim_policy:
            config.claim_policy = ClaimPolicy.from_string(claim_policy)

        gated = env.get(ENV_OWNER_GATED_EPOCHS)
        if gated:
            config.owner_gated_epochs = _parse_bool(gated)

        storage_dir = env.get(ENV_STORAGE_DIR)
        if storage_dir:
            config.storage_dir = Path(storage_dir)

        logger.debug(f"Loaded ledger config: {config.to_dict()}")
        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            'program_id': self.program_id.hex(),
            'claim_policy': str(self.claim_policy),
            'owner_gated_epochs': self.owner_gated_epochs,
            'storage_dir': str(self.storage_dir) if self.storage_dir else None,
        }
