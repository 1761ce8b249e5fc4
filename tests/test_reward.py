"""
Tests for stakepool/ledger/reward.py
"""

import pytest

from stakepool.config import U64_MAX
from stakepool.errors import ArithmeticOverflowError, ValidationError
from stakepool.ledger.reward import calculate_reward


class TestCalculateReward:
    """Tests for calculate_reward()."""

    @pytest.mark.parametrize("user,expected", [
        (250, 25),
        (333, 33),
        (417, 41),
        (1_000, 100),
        (0, 0),
    ])
    def test_proportional_share(self, user, expected):
        """Test floor(user * reward / total) for a 100 reward over 1000 staked."""
        assert calculate_reward(user, 100, 1_000) == expected

    def test_empty_pool(self):
        """Test that nothing is paid when nothing is staked."""
        assert calculate_reward(500, 100, 0) == 0
        assert calculate_reward(0, 0, 0) == 0

    def test_zero_reward(self):
        """Test that an empty epoch pays nothing."""
        assert calculate_reward(500, 0, 1_000) == 0

    def test_full_stake_takes_whole_reward(self):
        """Test that the only staker receives the whole reward."""
        assert calculate_reward(777, 12_345, 777) == 12_345

    def test_wide_product(self):
        """Test that the intermediate product may exceed u64."""
        assert calculate_reward(U64_MAX, U64_MAX, U64_MAX) == U64_MAX
        assert calculate_reward(U64_MAX // 2, U64_MAX, U64_MAX) == U64_MAX // 2

    def test_monotonic_in_stake(self):
        """Test that more stake never earns less."""
        rewards = [calculate_reward(u, 997, 10_007) for u in range(0, 10_007, 501)]
        assert rewards == sorted(rewards)

    def test_shares_never_exceed_reward(self):
        """Test that truncation never over-pays."""
        stakes = [1, 2, 3, 5, 7, 11, 13]
        total = sum(stakes)
        paid = sum(calculate_reward(s, 1_000, total) for s in stakes)
        assert paid <= 1_000

    def test_share_overflow(self):
        """Test that a share beyond u64 raises."""
        with pytest.raises(ArithmeticOverflowError):
            calculate_reward(U64_MAX, U64_MAX, 1)

    @pytest.mark.parametrize("args", [
        (-1, 100, 1_000),
        (1, U64_MAX + 1, 1_000),
        (1, 100, -5),
        (1.5, 100, 1_000),
        (True, 100, 1_000),
    ])
    def test_rejects_non_u64(self, args):
        """Test that inputs outside u64 are rejected."""
        with pytest.raises(ValidationError):
            calculate_reward(*args)
