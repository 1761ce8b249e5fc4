"""
stakepool/ledger/transfer.py

Asset transfer collaborator.

The ledger moves stake and reward assets between participants and custody
accounts through an AssetTransfer implementation. Handlers call it as the
last fallible step of a transition, so a refused transfer aborts the
transition before any record is persisted.

Subclass AssetTransfer to plug in a real settlement backend; AssetBank is
the in-process implementation used by tests and embedded hosts.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from collections import deque
from typing import Deque, Dict, Tuple

from ..config import U64_MAX
from ..errors import ErrorKind, TransferError
from ..signing import Identity

logger = logging.getLogger("stakepool.ledger.transfer")

DEFAULT_MAX_HISTORY = 10_000


@dataclass
class TransferRecord:
    """A completed transfer."""
    asset: Identity
    source: Identity
    destination: Identity
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'asset': self.asset.hex(),
            'source': self.source.hex(),
            'destination': self.destination.hex(),
            'amount': self.amount,
            'timestamp': self.timestamp,
        }


class AssetTransfer(ABC):
    """Abstract base class for asset transfer backends."""

    @abstractmethod
    def transfer(
        self,
        asset: Identity,
        source: Identity,
        destination: Identity,
        amount: int,
    ) -> None:
        """
        Move `amount` of `asset` from `source` to `destination`.

        Raises:
            TransferError: the transfer was refused; no balance changed
        """


class AssetBank(AssetTransfer):
    """
    In-memory multi-asset balance book.

    Usage:
        bank = AssetBank()
        bank.mint(stake_asset, alice, 1_000)
        bank.transfer(stake_asset, alice, custody, 250)
        bank.balance_of(stake_asset, custody)  # 250

    Only the most recent max_history transfers are kept in history.
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        self._balances: Dict[Tuple[Identity, Identity], int] = {}
        self.history: Deque[TransferRecord] = deque(maxlen=max_history)

    def balance_of(self, asset: Identity, account: Identity) -> int:
        return self._balances.get((asset, account), 0)

    def mint(self, asset: Identity, account: Identity, amount: int) -> None:
        """Credit freshly issued units to an account."""
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        new_balance = self.balance_of(asset, account) + amount
        if new_balance > U64_MAX:
            raise TransferError(
                f"Mint would overflow balance of {account.hex()[:16]}",
                kind=ErrorKind.TRANSFER_FAILED,
            )
        self._balances[(asset, account)] = new_balance

    def transfer(
        self,
        asset: Identity,
        source: Identity,
        destination: Identity,
        amount: int,
    ) -> None:
        if amount < 0:
            raise TransferError(f"Negative transfer amount: {amount}")

        available = self.balance_of(asset, source)
        if available < amount:
            logger.warning(
                f"Transfer refused: {source.hex()[:16]} holds {available}, needs {amount}"
            )
            raise TransferError(
                f"Insufficient {asset.hex()[:16]} balance: have {available}, need {amount}"
            )

        credited = self.balance_of(asset, destination) + amount
        if source != destination and credited > U64_MAX:
            raise TransferError(f"Transfer would overflow balance of {destination.hex()[:16]}")

        self._balances[(asset, source)] = available - amount
        self._balances[(asset, destination)] = self.balance_of(asset, destination) + amount
        self.history.append(TransferRecord(asset, source, destination, amount))
        logger.debug(f"Transferred {amount} {asset.hex()[:16]} {source.hex()[:16]} -> {destination.hex()[:16]}")
