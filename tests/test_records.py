"""
Tests for stakepool/ledger/records.py

Covers record layouts, lengths and the checked arithmetic helpers.
"""

import struct

import pytest

from stakepool.config import U16_MAX, U64_MAX
from stakepool.errors import ArithmeticOverflowError, DecodeError
from stakepool.signing import Identity
from stakepool.ledger.records import (
    ClaimReceipt,
    PoolRecord,
    PositionRecord,
    checked_add,
    checked_sub,
)


# ============================================================================
# TEST DATA
# ============================================================================

OWNER = Identity.derive("owner")
STAKE = Identity.derive("stake-asset")
REWARD = Identity.derive("reward-asset")


def create_pool(**kwargs) -> PoolRecord:
    defaults = dict(
        initialized=True,
        owner=OWNER,
        stake_asset=STAKE,
        reward_asset=REWARD,
        total_staked=1_000,
        epoch_reward=100,
        epoch_start=10,
        epoch_end=20,
        epoch_id=3,
    )
    defaults.update(kwargs)
    return PoolRecord(**defaults)


# ============================================================================
# POOL RECORD TESTS
# ============================================================================

class TestPoolRecord:
    """Tests for PoolRecord."""

    def test_length(self):
        """Test packed size."""
        assert PoolRecord.LEN == 131
        assert len(create_pool().pack()) == 131

    def test_roundtrip(self):
        """Test unpack inverts pack."""
        pool = create_pool(total_staked=U64_MAX, epoch_id=U16_MAX)
        assert PoolRecord.unpack(pool.pack()) == pool

    def test_field_offsets(self):
        """Test that fields sit at fixed little-endian offsets."""
        data = create_pool(total_staked=0x0102030405060708, epoch_id=0x0A0B).pack()
        assert data[0] == 1
        assert data[1:33] == OWNER.raw
        assert data[33:65] == STAKE.raw
        assert data[65:97] == REWARD.raw
        assert struct.unpack_from("<Q", data, 97)[0] == 0x0102030405060708
        assert data[97] == 0x08
        assert struct.unpack_from("<QQQ", data, 105) == (100, 10, 20)
        assert data[129:131] == b"\x0b\x0a"

    def test_zero_buffer_is_uninitialized(self):
        """Test that a fresh zero-filled account decodes as uninitialized."""
        pool = PoolRecord.unpack(bytes(131))
        assert pool.initialized is False
        assert pool.owner.is_zero()

    def test_any_nonzero_flag_is_initialized(self):
        """Test that any nonzero flag byte means initialized."""
        data = bytearray(131)
        data[0] = 7
        assert PoolRecord.unpack(data).initialized is True

    def test_short_buffer(self):
        """Test that short buffers are rejected."""
        with pytest.raises(DecodeError):
            PoolRecord.unpack(bytes(130))

    def test_pack_into_keeps_trailing_bytes(self):
        """Test that a longer buffer keeps its tail."""
        dst = bytearray(b"\xff" * 140)
        create_pool().pack_into(dst)
        assert dst[:131] == create_pool().pack()
        assert dst[131:] == b"\xff" * 9

    def test_pack_into_short_buffer(self):
        """Test that writing into a short buffer fails."""
        with pytest.raises(DecodeError):
            create_pool().pack_into(bytearray(10))

    def test_epoch_id_out_of_range(self):
        """Test that epoch ids beyond u16 cannot be packed."""
        with pytest.raises(ArithmeticOverflowError):
            create_pool(epoch_id=U16_MAX + 1).pack()

    def test_to_dict(self):
        """Test dictionary export."""
        d = create_pool().to_dict()
        assert d['owner'] == OWNER.hex()
        assert d['epoch_id'] == 3


# ============================================================================
# POSITION & RECEIPT TESTS
# ============================================================================

class TestPositionRecord:
    """Tests for PositionRecord."""

    def test_layout(self):
        """Test packed size and offsets."""
        data = PositionRecord(True, OWNER, 250).pack()
        assert len(data) == PositionRecord.LEN == 41
        assert data[0] == 1
        assert data[1:33] == OWNER.raw
        assert struct.unpack_from("<Q", data, 33)[0] == 250

    def test_roundtrip(self):
        """Test unpack inverts pack."""
        position = PositionRecord(True, OWNER, U64_MAX)
        assert PositionRecord.unpack(position.pack()) == position

    def test_short_buffer(self):
        """Test that short buffers are rejected."""
        with pytest.raises(DecodeError):
            PositionRecord.unpack(bytes(40))


class TestClaimReceipt:
    """Tests for ClaimReceipt."""

    def test_layout(self):
        """Test packed size and offsets."""
        data = ClaimReceipt(True, OWNER, 0x0102).pack()
        assert len(data) == ClaimReceipt.LEN == 35
        assert data[33:35] == b"\x02\x01"

    def test_has_claimed(self):
        """Test the receipt records exactly one epoch."""
        receipt = ClaimReceipt(True, OWNER, 4)
        assert receipt.has_claimed(4)
        assert not receipt.has_claimed(5)
        assert not ClaimReceipt().has_claimed(0)


# ============================================================================
# CHECKED ARITHMETIC TESTS
# ============================================================================

class TestCheckedArithmetic:
    """Tests for checked_add() and checked_sub()."""

    def test_add_at_limit(self):
        """Test that reaching the limit is allowed."""
        assert checked_add(U64_MAX - 1, 1) == U64_MAX

    def test_add_overflow(self):
        """Test that exceeding the limit raises."""
        with pytest.raises(ArithmeticOverflowError):
            checked_add(U64_MAX, 1)

    def test_add_custom_limit(self):
        """Test u16 limits."""
        with pytest.raises(ArithmeticOverflowError):
            checked_add(U16_MAX, 1, limit=U16_MAX)

    def test_sub_underflow(self):
        """Test that going below zero raises."""
        assert checked_sub(5, 5) == 0
        with pytest.raises(ArithmeticOverflowError):
            checked_sub(5, 6)

    def test_overflow_is_arithmetic_error(self):
        """Test that overflow can be caught as ArithmeticError."""
        with pytest.raises(ArithmeticError):
            checked_add(U64_MAX, U64_MAX)
