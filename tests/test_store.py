"""
Tests for stakepool/ledger/store.py
"""

import pytest

from stakepool.signing import Identity
from stakepool.ledger.store import (
    AccountInfo,
    FileAccountStore,
    MemoryAccountStore,
    StoredAccount,
)


# ============================================================================
# TEST DATA
# ============================================================================

PROGRAM = Identity.derive("test-program")
KEY = Identity.derive("account")
OTHER = Identity.derive("other")


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryAccountStore()
    return FileAccountStore(tmp_path / "accounts")


# ============================================================================
# BACKEND TESTS
# ============================================================================

class TestAccountStore:
    """Behaviour shared by every backend."""

    def test_get_missing(self, store):
        """Test that unknown keys return None."""
        assert store.get(KEY) is None

    def test_put_get(self, store):
        """Test storing and retrieving an account."""
        store.put(KEY, StoredAccount(owner=PROGRAM, data=b"\x01\x02"))
        stored = store.get(KEY)
        assert stored.owner == PROGRAM
        assert stored.data == b"\x01\x02"

    def test_put_replaces(self, store):
        """Test that put overwrites previous contents."""
        store.put(KEY, StoredAccount(owner=PROGRAM, data=b"\x01"))
        store.put(KEY, StoredAccount(owner=PROGRAM, data=b"\x02\x03"))
        assert store.get(KEY).data == b"\x02\x03"

    def test_delete(self, store):
        """Test deleting accounts."""
        store.put(KEY, StoredAccount(owner=PROGRAM))
        assert store.delete(KEY) is True
        assert store.get(KEY) is None
        assert store.delete(KEY) is False

    def test_list_keys(self, store):
        """Test listing keys."""
        store.put(KEY, StoredAccount(owner=PROGRAM))
        store.put(OTHER, StoredAccount(owner=PROGRAM))
        assert set(store.list_keys()) == {KEY, OTHER}

    def test_allocate_zero_filled(self, store):
        """Test that allocation creates a zeroed, owned account."""
        account = store.allocate(KEY, PROGRAM, 41)
        assert account.owner == PROGRAM
        assert store.get(KEY).data == bytes(41)

    def test_allocate_is_idempotent(self, store):
        """Test that allocation never clobbers existing data."""
        store.put(KEY, StoredAccount(owner=PROGRAM, data=b"\x01" * 41))
        store.allocate(KEY, PROGRAM, 41)
        assert store.get(KEY).data == b"\x01" * 41

    def test_load_unknown(self, store):
        """Test that unknown keys load as unowned empty accounts."""
        info = store.load(KEY)
        assert info.key == KEY
        assert info.owner.is_zero()
        assert info.data == bytearray()

    def test_load_is_a_copy(self, store):
        """Test that mutating a loaded account does not touch the store."""
        store.allocate(KEY, PROGRAM, 4)
        info = store.load(KEY)
        info.data[0] = 0xFF
        assert store.get(KEY).data == bytes(4)


class TestFileAccountStore:
    """Tests specific to FileAccountStore."""

    def test_persists_across_instances(self, tmp_path):
        """Test that a new instance sees earlier writes."""
        FileAccountStore(tmp_path).put(KEY, StoredAccount(owner=PROGRAM, data=b"abc"))
        reopened = FileAccountStore(tmp_path)
        assert reopened.get(KEY) == StoredAccount(owner=PROGRAM, data=b"abc")
        assert (tmp_path / "metadata.json").exists()

    def test_missing_data_file(self, tmp_path):
        """Test that an indexed account without data reads as missing."""
        store = FileAccountStore(tmp_path)
        store.put(KEY, StoredAccount(owner=PROGRAM, data=b"abc"))
        store._key_to_path(KEY).unlink()
        assert store.get(KEY) is None


class TestAccountInfo:
    """Tests for AccountInfo."""

    def test_to_stored(self):
        """Test conversion to an at-rest account."""
        info = AccountInfo(key=KEY, owner=PROGRAM, data=bytearray(b"\x05"))
        stored = info.to_stored()
        assert stored == StoredAccount(owner=PROGRAM, data=b"\x05")
        assert isinstance(stored.data, bytes)
