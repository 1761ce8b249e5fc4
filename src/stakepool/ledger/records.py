"""
stakepool/ledger/records.py

Persisted ledger records and their fixed-layout binary codecs.

Layouts (little endian, no padding):

PoolRecord (131 bytes):
- 1 byte:   initialized
- 32 bytes: owner
- 32 bytes: stake asset
- 32 bytes: reward asset
- 8 bytes:  total staked
- 8 bytes:  epoch reward
- 8 bytes:  epoch start
- 8 bytes:  epoch end
- 2 bytes:  epoch id

PositionRecord (41 bytes):
- 1 byte:   initialized
- 32 bytes: owner
- 8 bytes:  staked amount

ClaimReceipt (35 bytes):
- 1 byte:   initialized
- 32 bytes: owner
- 2 bytes:  last claimed epoch id

Records are always packed whole; a buffer longer than the layout keeps
its trailing bytes untouched.
"""

import struct
from dataclasses import dataclass, field
from typing import Union

from ..config import (
    POOL_RECORD_LEN,
    POSITION_RECORD_LEN,
    CLAIM_RECEIPT_LEN,
    U64_MAX,
    U16_MAX,
)
from ..errors import ArithmeticOverflowError, DecodeError, ErrorKind
from ..signing import Identity

POOL_FORMAT = "<B32s32s32sQQQQH"
POSITION_FORMAT = "<B32sQ"
CLAIM_RECEIPT_FORMAT = "<B32sH"

Buffer = Union[bytes, bytearray, memoryview]


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def checked_add(a: int, b: int, limit: int = U64_MAX, what: str = "amount") -> int:
    """Add two unsigned values, raising instead of wrapping past limit."""
    result = a + b
    if result > limit:
        raise ArithmeticOverflowError(f"{what} overflow: {a} + {b} exceeds {limit}")
    return result


def checked_sub(a: int, b: int, what: str = "amount") -> int:
    """Subtract two unsigned values, raising instead of going below zero."""
    if b > a:
        raise ArithmeticOverflowError(f"{what} underflow: {a} - {b} is negative")
    return a - b


def _require_len(data: Buffer, size: int, name: str) -> None:
    if len(data) < size:
        raise DecodeError(
            f"{name} buffer too short: expected {size} bytes, got {len(data)}",
            kind=ErrorKind.INVALID_INSTRUCTION,
        )


def _write(dst: bytearray, packed: bytes) -> None:
    if len(dst) < len(packed):
        raise DecodeError(
            f"Destination buffer too short: need {len(packed)} bytes, got {len(dst)}",
            kind=ErrorKind.INVALID_INSTRUCTION,
        )
    dst[:len(packed)] = packed


# ============================================================================
# POOL RECORD
# ============================================================================

@dataclass
class PoolRecord:
    """Global pool configuration and epoch/reward state."""
    initialized: bool = False
    owner: Identity = field(default_factory=Identity.zero)
    stake_asset: Identity = field(default_factory=Identity.zero)
    reward_asset: Identity = field(default_factory=Identity.zero)
    total_staked: int = 0
    epoch_reward: int = 0
    epoch_start: int = 0
    epoch_end: int = 0
    epoch_id: int = 0

    LEN = POOL_RECORD_LEN

    def pack(self) -> bytes:
        if not 0 <= self.epoch_id <= U16_MAX:
            raise ArithmeticOverflowError(f"epoch_id {self.epoch_id} does not fit u16")
        return struct.pack(
            POOL_FORMAT,
            1 if self.initialized else 0,
            self.owner.raw,
            self.stake_asset.raw,
            self.reward_asset.raw,
            self.total_staked,
            self.epoch_reward,
            self.epoch_start,
            self.epoch_end,
            self.epoch_id,
        )

    def pack_into(self, dst: bytearray) -> None:
        _write(dst, self.pack())

    @classmethod
    def unpack(cls, data: Buffer) -> "PoolRecord":
        _require_len(data, POOL_RECORD_LEN, "Pool record")
        (
            initialized,
            owner,
            stake_asset,
            reward_asset,
            total_staked,
            epoch_reward,
            epoch_start,
            epoch_end,
            epoch_id,
        ) = struct.unpack_from(POOL_FORMAT, data)
        return cls(
            initialized=initialized != 0,
            owner=Identity(owner),
            stake_asset=Identity(stake_asset),
            reward_asset=Identity(reward_asset),
            total_staked=total_staked,
            epoch_reward=epoch_reward,
            epoch_start=epoch_start,
            epoch_end=epoch_end,
            epoch_id=epoch_id,
        )

    def to_dict(self) -> dict:
        return {
            'initialized': self.initialized,
            'owner': self.owner.hex(),
            'stake_asset': self.stake_asset.hex(),
            'reward_asset': self.reward_asset.hex(),
            'total_staked': self.total_staked,
            'epoch_reward': self.epoch_reward,
            'epoch_start': self.epoch_start,
            'epoch_end': self.epoch_end,
            'epoch_id': self.epoch_id,
        }


# ============================================================================
# POSITION RECORD
# ============================================================================

@dataclass
class PositionRecord:
    """A participant's staked balance."""
    initialized: bool = False
    owner: Identity = field(default_factory=Identity.zero)
    staked_amount: int = 0

    LEN = POSITION_RECORD_LEN

    def pack(self) -> bytes:
        return struct.pack(
            POSITION_FORMAT,
            1 if self.initialized else 0,
            self.owner.raw,
            self.staked_amount,
        )

    def pack_into(self, dst: bytearray) -> None:
        _write(dst, self.pack())

    @classmethod
    def unpack(cls, data: Buffer) -> "PositionRecord":
        _require_len(data, POSITION_RECORD_LEN, "Position record")
        initialized, owner, staked_amount = struct.unpack_from(POSITION_FORMAT, data)
        return cls(
            initialized=initialized != 0,
            owner=Identity(owner),
            staked_amount=staked_amount,
        )

    def to_dict(self) -> dict:
        return {
            'initialized': self.initialized,
            'owner': self.owner.hex(),
            'staked_amount': self.staked_amount,
        }


# ============================================================================
# CLAIM RECEIPT
# ============================================================================

@dataclass
class ClaimReceipt:
    """Last epoch a participant claimed its reward in (0 = never)."""
    initialized: bool = False
    owner: Identity = field(default_factory=Identity.zero)
    last_claimed_epoch: int = 0

    LEN = CLAIM_RECEIPT_LEN

    def has_claimed(self, epoch_id: int) -> bool:
        return self.initialized and self.last_claimed_epoch == epoch_id

    def pack(self) -> bytes:
        return struct.pack(
            CLAIM_RECEIPT_FORMAT,
            1 if self.initialized else 0,
            self.owner.raw,
            self.last_claimed_epoch,
        )

    def pack_into(self, dst: bytearray) -> None:
        _write(dst, self.pack())

    @classmethod
    def unpack(cls, data: Buffer) -> "ClaimReceipt":
        _require_len(data, CLAIM_RECEIPT_LEN, "Claim receipt")
        initialized, owner, last_claimed_epoch = struct.unpack_from(CLAIM_RECEIPT_FORMAT, data)
        return cls(
            initialized=initialized != 0,
            owner=Identity(owner),
            last_claimed_epoch=last_claimed_epoch,
        )

    def to_dict(self) -> dict:
        return {
            'initialized': self.initialized,
            'owner': self.owner.hex(),
            'last_claimed_epoch': self.last_claimed_epoch,
        }
