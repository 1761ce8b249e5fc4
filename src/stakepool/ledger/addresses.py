"""
stakepool/ledger/addresses.py

Deterministic addresses for the accounts a pool uses.

Record and custody accounts never sign, so their identities are derived
from the pool key. Handlers recompute these addresses and reject accounts
that do not match, which stops a participant from substituting their own
wallet for a custody account or opening a fresh claim receipt per claim.

Stake and reward custody are seeded by role, so a pool whose stake and
reward asset are the same still keeps principal and rewards apart.
"""

from ..signing import Identity

POSITION_SEED = b"position"
CLAIM_RECEIPT_SEED = b"claim-receipt"
STAKE_CUSTODY_SEED = b"stake-custody"
REWARD_CUSTODY_SEED = b"reward-custody"


def position_address(pool_key: Identity, participant: Identity) -> Identity:
    return Identity.derive(POSITION_SEED, pool_key.raw, participant.raw)


def claim_receipt_address(pool_key: Identity, participant: Identity) -> Identity:
    return Identity.derive(CLAIM_RECEIPT_SEED, pool_key.raw, participant.raw)


def stake_custody_address(pool_key: Identity, asset: Identity) -> Identity:
    """Custody account holding staked principal of `asset`."""
    return Identity.derive(STAKE_CUSTODY_SEED, pool_key.raw, asset.raw)


def reward_custody_address(pool_key: Identity, asset: Identity) -> Identity:
    """Custody account funding epoch rewards in `asset`."""
    return Identity.derive(REWARD_CUSTODY_SEED, pool_key.raw, asset.raw)
