"""
stakepool/ledger/store.py

Persistent account storage.

Every account is a byte buffer tagged with the identity of the program that
owns it. The ledger never touches storage directly: the runtime loads
copies of the accounts an instruction references and writes them back only
after the instruction succeeds.

Backends:
1. MemoryAccountStore - volatile, used by tests and embedded hosts
2. FileAccountStore - one .dat file per account plus a JSON metadata index
"""

import json
import time
import logging
import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..config import DEFAULT_STORAGE_DIR
from ..signing import Identity

logger = logging.getLogger("stakepool.ledger.store")


# ============================================================================
# ACCOUNT TYPES
# ============================================================================

@dataclass
class StoredAccount:
    """An account at rest: owning program tag plus raw data."""
    owner: Identity
    data: bytes = b""


@dataclass
class AccountInfo:
    """
    An account as seen by one instruction.

    `data` is a private mutable copy; handlers write records into it and
    the runtime persists it only if the whole instruction succeeds.
    """
    key: Identity
    owner: Identity = field(default_factory=Identity.zero)
    data: bytearray = field(default_factory=bytearray)
    is_signer: bool = False
    is_writable: bool = True

    def to_stored(self) -> StoredAccount:
        return StoredAccount(owner=self.owner, data=bytes(self.data))


# ============================================================================
# STORAGE BACKENDS
# ============================================================================

class AccountStore(ABC):
    """Abstract base class for account stores."""

    @abstractmethod
    def get(self, key: Identity) -> Optional[StoredAccount]:
        """Get an account by key."""

    @abstractmethod
    def put(self, key: Identity, account: StoredAccount) -> None:
        """Store an account, replacing any previous contents."""

    @abstractmethod
    def delete(self, key: Identity) -> bool:
        """Delete an account."""

    @abstractmethod
    def list_keys(self) -> List[Identity]:
        """List all stored account keys."""

    def allocate(self, key: Identity, owner: Identity, size: int) -> StoredAccount:
        """
        Create a zero-filled account owned by `owner` if none exists.

        Existing accounts are returned unchanged.
        """
        existing = self.get(key)
        if existing is not None:
            return existing
        account = StoredAccount(owner=owner, data=bytes(size))
        self.put(key, account)
        logger.debug(f"Allocated {size}-byte account {key.hex()[:16]}")
        return account

    def load(self, key: Identity) -> AccountInfo:
        """
        Load a private working copy of an account.

        Unknown keys load as an empty, unowned account (a plain wallet).
        """
        stored = self.get(key)
        if stored is None:
            return AccountInfo(key=key)
        return AccountInfo(key=key, owner=stored.owner, data=bytearray(stored.data))


class MemoryAccountStore(AccountStore):
    """In-memory account store."""

    def __init__(self):
        self._accounts: Dict[Identity, StoredAccount] = {}

    def get(self, key: Identity) -> Optional[StoredAccount]:
        account = self._accounts.get(key)
        if account is None:
            return None
        return StoredAccount(owner=account.owner, data=bytes(account.data))

    def put(self, key: Identity, account: StoredAccount) -> None:
        self._accounts[key] = StoredAccount(owner=account.owner, data=bytes(account.data))

    def delete(self, key: Identity) -> bool:
        if key in self._accounts:
            del self._accounts[key]
            return True
        return False

    def list_keys(self) -> List[Identity]:
        return list(self._accounts.keys())


class FileAccountStore(AccountStore):
    """Local file account store."""

    def __init__(self, storage_dir: Path = None):
        self.storage_dir = Path(storage_dir) if storage_dir else DEFAULT_STORAGE_DIR
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._metadata_file = self.storage_dir / "metadata.json"
        self._metadata: Dict[str, dict] = self._load_metadata()

    def _load_metadata(self) -> Dict[str, dict]:
        """Load metadata from disk."""
        if not self._metadata_file.exists():
            return {}
        with open(self._metadata_file, "r") as f:
            return json.load(f)

    def _save_metadata(self) -> None:
        """Save metadata to disk, replacing the previous index atomically."""
        tmp_file = self._metadata_file.with_suffix(".tmp")
        with open(tmp_file, "w") as f:
            json.dump(self._metadata, f)
        tmp_file.replace(self._metadata_file)

    def _key_to_path(self, key: Identity) -> Path:
        """Convert key to file path."""
        hash_name = hashlib.sha256(key.raw).hexdigest()[:32]
        return self.storage_dir / f"{hash_name}.dat"

    def get(self, key: Identity) -> Optional[StoredAccount]:
        meta = self._metadata.get(key.hex())
        if not meta:
            return None

        path = self._key_to_path(key)
        if not path.exists():
            logger.warning(f"Account {key.hex()[:16]} indexed but data file missing")
            return None
        return StoredAccount(owner=Identity.from_hex(meta["owner"]), data=path.read_bytes())

    def put(self, key: Identity, account: StoredAccount) -> None:
        path = self._key_to_path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(account.data)
        tmp_path.replace(path)
        self._metadata[key.hex()] = {
            "owner": account.owner.hex(),
            "size": len(account.data),
            "updated_at": time.time(),
        }
        self._save_metadata()

    def delete(self, key: Identity) -> bool:
        if key.hex() not in self._metadata:
            return False

        path = self._key_to_path(key)
        if path.exists():
            path.unlink()
        del self._metadata[key.hex()]
        self._save_metadata()
        return True

    def list_keys(self) -> List[Identity]:
        return [Identity.from_hex(k) for k in self._metadata]
