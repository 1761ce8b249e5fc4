"""
stakepool/ledger/instruction.py

Instruction buffer encoding and decoding.

Byte 0 is the opcode; the payload follows:
- initialize:  optional 32-byte stake asset + 32-byte reward asset; fewer
               than 64 payload bytes mean no assets
- deposit:     8-byte amount (u64 LE)
- withdraw:    8-byte amount (u64 LE)
- start_epoch: start_time, end_time, reward_amount (3 x u64 LE)
- claim:       no payload

Trailing bytes beyond a payload are ignored.
"""

import struct
import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..config import (
    OP_INITIALIZE,
    OP_DEPOSIT,
    OP_WITHDRAW,
    OP_START_EPOCH,
    OP_CLAIM,
    OPCODE_NAMES,
    U64_MAX,
)
from ..errors import DecodeError, ErrorKind, ValidationError
from ..signing import Identity, IDENTITY_LEN

logger = logging.getLogger("stakepool.ledger.instruction")

AMOUNT_FORMAT = "<Q"
EPOCH_FORMAT = "<QQQ"


def _check_u64(name: str, value: int) -> None:
    if not 0 <= value <= U64_MAX:
        raise ValidationError(f"{name} out of u64 range: {value}")


@dataclass
class InitializeInstruction:
    stake_asset: Optional[Identity] = None
    reward_asset: Optional[Identity] = None

    OPCODE = OP_INITIALIZE

    def encode(self) -> bytes:
        if self.stake_asset is None and self.reward_asset is None:
            return bytes([self.OPCODE])
        stake = self.stake_asset or Identity.zero()
        reward = self.reward_asset or Identity.zero()
        return bytes([self.OPCODE]) + stake.raw + reward.raw


@dataclass
class DepositInstruction:
    amount: int

    OPCODE = OP_DEPOSIT

    def encode(self) -> bytes:
        _check_u64("amount", self.amount)
        return bytes([self.OPCODE]) + struct.pack(AMOUNT_FORMAT, self.amount)


@dataclass
class WithdrawInstruction:
    amount: int

    OPCODE = OP_WITHDRAW

    def encode(self) -> bytes:
        _check_u64("amount", self.amount)
        return bytes([self.OPCODE]) + struct.pack(AMOUNT_FORMAT, self.amount)


@dataclass
class StartEpochInstruction:
    start_time: int
    end_time: int
    reward_amount: int

    OPCODE = OP_START_EPOCH

    def encode(self) -> bytes:
        _check_u64("start_time", self.start_time)
        _check_u64("end_time", self.end_time)
        _check_u64("reward_amount", self.reward_amount)
        return bytes([self.OPCODE]) + struct.pack(
            EPOCH_FORMAT, self.start_time, self.end_time, self.reward_amount
        )


@dataclass
class ClaimInstruction:
    OPCODE = OP_CLAIM

    def encode(self) -> bytes:
        return bytes([self.OPCODE])


StakeInstruction = Union[
    InitializeInstruction,
    DepositInstruction,
    WithdrawInstruction,
    StartEpochInstruction,
    ClaimInstruction,
]


def _payload(data: bytes, size: int, opcode: int) -> bytes:
    payload = data[1:1 + size]
    if len(payload) < size:
        raise DecodeError(
            f"Truncated {OPCODE_NAMES[opcode]} payload: expected {size} bytes, got {len(payload)}",
            kind=ErrorKind.INVALID_INSTRUCTION,
        )
    return payload


def decode_instruction(data: bytes) -> StakeInstruction:
    """
    Decode a raw instruction buffer.

    Args:
        data: Instruction bytes (opcode + payload)

    Returns:
        The decoded instruction

    Raises:
        DecodeError: empty buffer, unknown opcode or truncated payload
    """
    if not data:
        raise DecodeError("Empty instruction data", kind=ErrorKind.INVALID_INSTRUCTION)

    opcode = data[0]

    if opcode == OP_INITIALIZE:
        if len(data) < 1 + 2 * IDENTITY_LEN:
            return InitializeInstruction()
        payload = _payload(data, 2 * IDENTITY_LEN, opcode)
        return InitializeInstruction(
            stake_asset=Identity(payload[:IDENTITY_LEN]),
            reward_asset=Identity(payload[IDENTITY_LEN:]),
        )

    if opcode == OP_DEPOSIT:
        (amount,) = struct.unpack(AMOUNT_FORMAT, _payload(data, 8, opcode))
        return DepositInstruction(amount=amount)

    if opcode == OP_WITHDRAW:
        (amount,) = struct.unpack(AMOUNT_FORMAT, _payload(data, 8, opcode))
        return WithdrawInstruction(amount=amount)

    if opcode == OP_START_EPOCH:
        start_time, end_time, reward_amount = struct.unpack(
            EPOCH_FORMAT, _payload(data, 24, opcode)
        )
        return StartEpochInstruction(
            start_time=start_time,
            end_time=end_time,
            reward_amount=reward_amount,
        )

    if opcode == OP_CLAIM:
        return ClaimInstruction()

    logger.debug(f"Unknown opcode {opcode}")
    raise DecodeError(f"Unrecognized opcode: {opcode}", kind=ErrorKind.INVALID_OPERATION)
