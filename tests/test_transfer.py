"""
Tests for stakepool/ledger/transfer.py
"""

import pytest

from stakepool.config import U64_MAX
from stakepool.errors import TransferError
from stakepool.signing import Identity
from stakepool.ledger.transfer import AssetBank


ASSET = Identity.derive("asset")
OTHER_ASSET = Identity.derive("other-asset")
ALICE = Identity.derive("alice")
BOB = Identity.derive("bob")


@pytest.fixture
def bank():
    bank = AssetBank()
    bank.mint(ASSET, ALICE, 100)
    return bank


class TestAssetBank:
    """Tests for AssetBank."""

    def test_mint(self, bank):
        """Test minting credits an account."""
        assert bank.balance_of(ASSET, ALICE) == 100
        assert bank.balance_of(ASSET, BOB) == 0

    def test_mint_negative(self, bank):
        """Test that negative mints are refused."""
        with pytest.raises(ValueError):
            bank.mint(ASSET, ALICE, -1)

    def test_mint_overflow(self, bank):
        """Test that balances stay within u64."""
        with pytest.raises(TransferError):
            bank.mint(ASSET, ALICE, U64_MAX)

    def test_transfer(self, bank):
        """Test moving units between accounts."""
        bank.transfer(ASSET, ALICE, BOB, 40)
        assert bank.balance_of(ASSET, ALICE) == 60
        assert bank.balance_of(ASSET, BOB) == 40
        assert len(bank.history) == 1
        assert bank.history[0].to_dict()['amount'] == 40

    def test_transfer_exact_balance(self, bank):
        """Test that the whole balance can be moved."""
        bank.transfer(ASSET, ALICE, BOB, 100)
        assert bank.balance_of(ASSET, ALICE) == 0

    def test_insufficient_balance(self, bank):
        """Test that overdrafts are refused without changes."""
        with pytest.raises(TransferError):
            bank.transfer(ASSET, ALICE, BOB, 101)
        assert bank.balance_of(ASSET, ALICE) == 100
        assert len(bank.history) == 0

    def test_assets_are_separate(self, bank):
        """Test that balances are per asset."""
        with pytest.raises(TransferError):
            bank.transfer(OTHER_ASSET, ALICE, BOB, 1)

    def test_negative_amount(self, bank):
        """Test that negative transfers are refused."""
        with pytest.raises(TransferError):
            bank.transfer(ASSET, ALICE, BOB, -5)

    def test_destination_overflow(self, bank):
        """Test that a credit beyond u64 is refused."""
        bank.mint(ASSET, BOB, U64_MAX)
        with pytest.raises(TransferError):
            bank.transfer(ASSET, ALICE, BOB, 1)
        assert bank.balance_of(ASSET, ALICE) == 100

    def test_self_transfer(self, bank):
        """Test that moving to the same account leaves the balance unchanged."""
        bank.transfer(ASSET, ALICE, ALICE, 50)
        assert bank.balance_of(ASSET, ALICE) == 100

    def test_history_is_capped(self):
        """Test that only the most recent transfers are kept."""
        bank = AssetBank(max_history=2)
        bank.mint(ASSET, ALICE, 10)
        for amount in (1, 2, 3):
            bank.transfer(ASSET, ALICE, BOB, amount)
        assert [record.amount for record in bank.history] == [2, 3]
        assert bank.balance_of(ASSET, BOB) == 6
