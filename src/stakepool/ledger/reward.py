"""
stakepool/ledger/reward.py

Proportional epoch reward calculation.

A participant's share of an epoch's reward is

    floor(user_staked * epoch_reward / total_staked)

The product of two u64 values can need up to 128 bits; Python integers are
arbitrary precision so the multiply happens exactly before the divide. The
remainder is truncated and never redistributed.
"""

from ..config import U64_MAX
from ..errors import ArithmeticOverflowError, ValidationError


def _require_u64(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= U64_MAX:
        raise ValidationError(f"{name} out of u64 range: {value}")


def calculate_reward(user_staked: int, epoch_reward: int, total_staked: int) -> int:
    """
    Compute a participant's share of the epoch reward.

    Args:
        user_staked: Participant's staked amount
        epoch_reward: Total reward allocated to the epoch
        total_staked: Pool-wide staked amount

    Returns:
        Reward in reward-asset units (0 when nothing is staked)

    Raises:
        ValidationError: an input is not a u64
        ArithmeticOverflowError: the share does not fit u64 (only possible
            when user_staked exceeds total_staked)
    """
    _require_u64("user_staked", user_staked)
    _require_u64("epoch_reward", epoch_reward)
    _require_u64("total_staked", total_staked)

    if total_staked == 0:
        return 0

    reward = (user_staked * epoch_reward) // total_staked
    if reward > U64_MAX:
        raise ArithmeticOverflowError(
            f"Reward {reward} does not fit u64 (user_staked={user_staked}, total_staked={total_staked})"
        )
    return reward
