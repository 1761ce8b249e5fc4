"""
stakepool/ledger/runtime.py

Host runtime: executes signed instructions against an account store.

For each instruction the runtime
- verifies signatures and marks only verified keys as signers,
- loads private copies of every referenced account,
- runs process_instruction(),
- writes program-owned accounts back only if the instruction succeeded.

Instructions are serialised with a lock, so no two instructions ever hold
the same pool or position at once. A failed instruction leaves the store
exactly as it was.

Usage:
    store = MemoryAccountStore()
    bank = AssetBank()
    runtime = Runtime(store, bank)

    runtime.create_pool(pool_key)
    result = runtime.execute(instruction, signatures)

    # File-backed, honouring STAKEPOOL_STORAGE_DIR and friends
    runtime = Runtime.from_config(bank)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..config import (
    LedgerConfig,
    OPCODE_NAMES,
    POOL_RECORD_LEN,
    POSITION_RECORD_LEN,
    CLAIM_RECEIPT_LEN,
)
from ..errors import StakingError, StateError, ErrorKind
from ..metrics import LedgerMetrics
from ..signing import Identity, verify_signature
from .addresses import claim_receipt_address, position_address
from .processor import TransitionResult, process_instruction
from .records import PoolRecord, PositionRecord, ClaimReceipt
from .store import AccountInfo, AccountStore, FileAccountStore, StoredAccount
from .transfer import AssetTransfer

logger = logging.getLogger("stakepool.ledger.runtime")


@dataclass
class AccountMeta:
    """An account reference inside an instruction."""
    key: Identity
    is_signer: bool = False
    is_writable: bool = True


@dataclass
class Instruction:
    """A ledger instruction addressed to one program."""
    program_id: Identity
    accounts: List[AccountMeta] = field(default_factory=list)
    data: bytes = b""

    def message(self) -> bytes:
        """Deterministic bytes that signers sign."""
        parts = [self.program_id.raw, len(self.accounts).to_bytes(2, "little")]
        for meta in self.accounts:
            flags = (1 if meta.is_signer else 0) | (2 if meta.is_writable else 0)
            parts.append(meta.key.raw + bytes([flags]))
        parts.append(self.data)
        return b"".join(parts)


class Runtime:
    """
    Executes instructions for one program against a store and bank.
    """

    def __init__(
        self,
        store: AccountStore,
        transfer: AssetTransfer,
        config: Optional[LedgerConfig] = None,
        metrics: Optional[LedgerMetrics] = None,
    ):
        """
        Initialize Runtime.

        Args:
            store: Persistent account store
            transfer: Asset transfer collaborator
            config: Ledger settings (defaults to LedgerConfig())
            metrics: Optional metrics collector
        """
        self.store = store
        self.transfer = transfer
        self.config = config or LedgerConfig()
        self.metrics = metrics
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        transfer: AssetTransfer,
        config: Optional[LedgerConfig] = None,
        metrics: Optional[LedgerMetrics] = None,
    ) -> "Runtime":
        """
        Build a runtime persisting to a FileAccountStore.

        The store lives at config.storage_dir (DEFAULT_STORAGE_DIR when
        unset). Without a config, settings are read from the environment.
        """
        config = config or LedgerConfig.from_env()
        return cls(FileAccountStore(config.storage_dir), transfer, config, metrics)

    @property
    def program_id(self) -> Identity:
        return self.config.program_id

    # ========================================================================
    # ACCOUNT ALLOCATION
    # ========================================================================

    def create_pool(self, pool_key: Identity) -> StoredAccount:
        """Allocate an empty program-owned pool account."""
        return self.store.allocate(pool_key, self.program_id, POOL_RECORD_LEN)

    def open_position(self, pool_key: Identity, participant: Identity) -> Identity:
        """
        Allocate the position (and claim receipt) accounts for a participant.

        Returns:
            The position account key
        """
        key = position_address(pool_key, participant)
        self.store.allocate(key, self.program_id, POSITION_RECORD_LEN)
        self.store.allocate(
            claim_receipt_address(pool_key, participant),
            self.program_id,
            CLAIM_RECEIPT_LEN,
        )
        return key

    # ========================================================================
    # READS
    # ========================================================================

    def read_pool(self, pool_key: Identity) -> PoolRecord:
        stored = self.store.get(pool_key)
        if stored is None:
            raise StateError("Pool account does not exist", kind=ErrorKind.UNINITIALIZED)
        return PoolRecord.unpack(stored.data)

    def read_position(self, pool_key: Identity, participant: Identity) -> PositionRecord:
        stored = self.store.get(position_address(pool_key, participant))
        if stored is None:
            return PositionRecord()
        return PositionRecord.unpack(stored.data)

    def read_claim_receipt(self, pool_key: Identity, participant: Identity) -> ClaimReceipt:
        stored = self.store.get(claim_receipt_address(pool_key, participant))
        if stored is None:
            return ClaimReceipt()
        return ClaimReceipt.unpack(stored.data)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def _load_accounts(
        self,
        instruction: Instruction,
        signatures: Mapping[Identity, bytes],
    ) -> List[AccountInfo]:
        message = instruction.message()
        loaded: Dict[Identity, AccountInfo] = {}
        infos = []
        for meta in instruction.accounts:
            info = loaded.get(meta.key)
            if info is None:
                info = self.store.load(meta.key)
                info.is_writable = meta.is_writable
                loaded[meta.key] = info
            else:
                # Repeated keys share one working copy; any read-only reference wins
                info.is_writable = info.is_writable and meta.is_writable
            if meta.is_signer and not info.is_signer:
                signature = signatures.get(meta.key)
                info.is_signer = signature is not None and verify_signature(meta.key, message, signature)
                if not info.is_signer:
                    logger.debug(f"No valid signature for {meta.key.hex()[:16]}")
            infos.append(info)
        return infos

    def _commit(self, accounts: List[AccountInfo]) -> None:
        seen = set()
        for info in accounts:
            if info.key in seen:
                continue
            seen.add(info.key)
            if info.is_writable and info.owner == self.program_id:
                self.store.put(info.key, info.to_stored())

    def execute(
        self,
        instruction: Instruction,
        signatures: Optional[Mapping[Identity, bytes]] = None,
    ) -> TransitionResult:
        """
        Execute one instruction atomically.

        Args:
            instruction: Instruction to run
            signatures: identity -> signature over instruction.message()

        Returns:
            TransitionResult of the committed transition

        Raises:
            StakingError: the instruction was rejected; nothing was persisted
        """
        signatures = signatures or {}
        operation = OPCODE_NAMES.get(instruction.data[0], "unknown") if instruction.data else "unknown"

        with self._lock:
            try:
                if instruction.program_id != self.program_id:
                    raise StateError(
                        "Instruction addressed to another program",
                        kind=ErrorKind.NOT_OWNED_BY_PROGRAM,
                    )
                accounts = self._load_accounts(instruction, signatures)
                result = process_instruction(
                    self.program_id,
                    accounts,
                    instruction.data,
                    self.transfer,
                    self.config,
                )
            except StakingError as e:
                logger.warning(f"Rejected {operation}: {e.kind}: {e}")
                if self.metrics:
                    self.metrics.record_failure(operation, str(e.kind))
                raise

            self._commit(accounts)

        if self.metrics:
            self.metrics.record_success(result.operation, result.amount, result.pool)
        return result
