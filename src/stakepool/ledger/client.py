"""
stakepool/ledger/client.py

Instruction builders and a convenience client.

The builders put accounts in the order each handler expects, so callers
never assemble AccountMeta lists by hand:

    initialize  -> [pool, owner]
    deposit     -> [pool, participant, stake custody, position]
    withdraw    -> [pool, participant, stake custody, position]
    start_epoch -> [pool, owner]
    claim       -> [pool, participant, reward custody, position(, receipt)]

Usage:
    client = StakePoolClient(runtime, pool_key)
    client.initialize(owner_keypair, stake_asset, reward_asset)
    client.deposit(alice_keypair, 250)
    client.start_epoch(owner_keypair, 100, 200, 1_000)
    reward = client.claim(alice_keypair)
"""

import logging
from typing import Dict, Optional

from ..config import ClaimPolicy
from ..signing import Identity, Keypair
from .addresses import (
    claim_receipt_address,
    position_address,
    reward_custody_address,
    stake_custody_address,
)
from .instruction import (
    ClaimInstruction,
    DepositInstruction,
    InitializeInstruction,
    StartEpochInstruction,
    WithdrawInstruction,
)
from .processor import TransitionResult
from .records import PoolRecord, PositionRecord
from .runtime import AccountMeta, Instruction, Runtime

logger = logging.getLogger("stakepool.ledger.client")


# ============================================================================
# INSTRUCTION BUILDERS
# ============================================================================

def initialize_instruction(
    program_id: Identity,
    pool_key: Identity,
    owner: Identity,
    stake_asset: Optional[Identity] = None,
    reward_asset: Optional[Identity] = None,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(pool_key),
            AccountMeta(owner, is_signer=True, is_writable=False),
        ],
        data=InitializeInstruction(stake_asset, reward_asset).encode(),
    )


def _stake_accounts(pool_key: Identity, participant: Identity, stake_asset: Identity) -> list:
    return [
        AccountMeta(pool_key),
        AccountMeta(participant, is_signer=True),
        AccountMeta(stake_custody_address(pool_key, stake_asset)),
        AccountMeta(position_address(pool_key, participant)),
    ]


def deposit_instruction(
    program_id: Identity,
    pool_key: Identity,
    participant: Identity,
    stake_asset: Identity,
    amount: int,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=_stake_accounts(pool_key, participant, stake_asset),
        data=DepositInstruction(amount).encode(),
    )


def withdraw_instruction(
    program_id: Identity,
    pool_key: Identity,
    participant: Identity,
    stake_asset: Identity,
    amount: int,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=_stake_accounts(pool_key, participant, stake_asset),
        data=WithdrawInstruction(amount).encode(),
    )


def start_epoch_instruction(
    program_id: Identity,
    pool_key: Identity,
    owner: Identity,
    start_time: int,
    end_time: int,
    reward_amount: int,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(pool_key),
            AccountMeta(owner, is_signer=True, is_writable=False),
        ],
        data=StartEpochInstruction(start_time, end_time, reward_amount).encode(),
    )


def claim_instruction(
    program_id: Identity,
    pool_key: Identity,
    participant: Identity,
    reward_asset: Identity,
    with_receipt: bool = True,
) -> Instruction:
    accounts = [
        AccountMeta(pool_key),
        AccountMeta(participant, is_signer=True),
        AccountMeta(reward_custody_address(pool_key, reward_asset)),
        AccountMeta(position_address(pool_key, participant)),
    ]
    if with_receipt:
        accounts.append(AccountMeta(claim_receipt_address(pool_key, participant)))
    return Instruction(
        program_id=program_id,
        accounts=accounts,
        data=ClaimInstruction().encode(),
    )


def sign_instruction(instruction: Instruction, *keypairs: Keypair) -> Dict[Identity, bytes]:
    """Sign an instruction's message with each keypair."""
    message = instruction.message()
    return {kp.identity: kp.sign(message) for kp in keypairs}


# ============================================================================
# CLIENT
# ============================================================================

class StakePoolClient:
    """
    Builds, signs and executes instructions for one pool.

    Reads asset ids and custody addresses from the stored pool, so callers
    only supply keypairs and amounts.
    """

    def __init__(self, runtime: Runtime, pool_key: Identity):
        self.runtime = runtime
        self.pool_key = pool_key

    @property
    def program_id(self) -> Identity:
        return self.runtime.program_id

    def pool(self) -> PoolRecord:
        return self.runtime.read_pool(self.pool_key)

    def position(self, participant: Identity) -> PositionRecord:
        return self.runtime.read_position(self.pool_key, participant)

    def stake_custody(self) -> Identity:
        return stake_custody_address(self.pool_key, self.pool().stake_asset)

    def reward_custody(self) -> Identity:
        return reward_custody_address(self.pool_key, self.pool().reward_asset)

    def _run(self, instruction: Instruction, *signers: Keypair) -> TransitionResult:
        return self.runtime.execute(instruction, sign_instruction(instruction, *signers))

    def initialize(
        self,
        owner: Keypair,
        stake_asset: Optional[Identity] = None,
        reward_asset: Optional[Identity] = None,
    ) -> TransitionResult:
        self.runtime.create_pool(self.pool_key)
        instruction = initialize_instruction(
            self.program_id, self.pool_key, owner.identity, stake_asset, reward_asset
        )
        return self._run(instruction, owner)

    def deposit(self, participant: Keypair, amount: int) -> TransitionResult:
        self.runtime.open_position(self.pool_key, participant.identity)
        instruction = deposit_instruction(
            self.program_id, self.pool_key, participant.identity, self.pool().stake_asset, amount
        )
        return self._run(instruction, participant)

    def withdraw(self, participant: Keypair, amount: int) -> TransitionResult:
        instruction = withdraw_instruction(
            self.program_id, self.pool_key, participant.identity, self.pool().stake_asset, amount
        )
        return self._run(instruction, participant)

    def start_epoch(
        self,
        owner: Keypair,
        start_time: int,
        end_time: int,
        reward_amount: int,
    ) -> TransitionResult:
        instruction = start_epoch_instruction(
            self.program_id, self.pool_key, owner.identity, start_time, end_time, reward_amount
        )
        return self._run(instruction, owner)

    def claim(self, participant: Keypair) -> int:
        """Claim the current epoch reward; returns the amount paid."""
        with_receipt = self.runtime.config.claim_policy == ClaimPolicy.ONCE_PER_EPOCH
        instruction = claim_instruction(
            self.program_id,
            self.pool_key,
            participant.identity,
            self.pool().reward_asset,
            with_receipt=with_receipt,
        )
        return self._run(instruction, participant).amount
