"""
Ledger Storage Module

Provides the abstract ledger repository interface and a thread-safe in-memory
implementation. Each account has its own lock so that work on one account
never blocks another.
"""

from abc import ABC, abstractmethod
from typing import ContextManager, Dict, Iterator, List, Optional, Set
from dataclasses import dataclass, field
from contextlib import contextmanager
import threading

from .models import Transaction


class LedgerStorage(ABC):
    """Abstract interface for ledger repositories"""

    @abstractmethod
    def append_transaction(self, account_id: str, tx: Transaction) -> None:
        """Append a transaction to the account's sequence"""
        pass

    @abstractmethod
    def check_and_add_idempotency(self, account_id: str, reference_id: Optional[str]) -> bool:
        """Register a reference id. Returns True if new, False if already present"""
        pass

    @abstractmethod
    def release_idempotency(self, account_id: str, reference_id: Optional[str]) -> None:
        """Forget a reference id registered by a request that then failed"""
        pass

    @abstractmethod
    def find_by_reference(self, account_id: str, reference_id: str) -> Optional[Transaction]:
        """Find the transaction recorded with the given reference id"""
        pass

    @abstractmethod
    def get_transactions_for_account(self, account_id: str) -> List[Transaction]:
        """Snapshot of the account's transactions in append order"""
        pass

    @abstractmethod
    def get_all_transactions(self) -> List[Transaction]:
        """Snapshot of all transactions across all accounts"""
        pass

    @abstractmethod
    def get_currency(self, account_id: str) -> Optional[str]:
        """Get the currency bound to an account"""
        pass

    @abstractmethod
    def set_currency(self, account_id: str, currency: str) -> None:
        """Bind a currency to an account unless one is already bound"""
        pass

    @abstractmethod
    def account_exists(self, account_id: str) -> bool:
        """Check if any transaction has been appended for the account"""
        pass

    @abstractmethod
    def account_lock(self, account_id: str) -> ContextManager[None]:
        """Exclusive section serializing all work on one account"""
        pass


@dataclass
class _AccountSlot:
    """Mutable per-account state, guarded by its own lock"""
    lock: threading.RLock = field(default_factory=threading.RLock)
    transactions: List[Transaction] = field(default_factory=list)
    references: Set[str] = field(default_factory=set)
    currency: Optional[str] = None
    has_transactions: bool = False
    users: int = 0  # callers currently holding a reference, guarded by the registry lock

    @property
    def is_empty(self) -> bool:
        return not self.transactions and not self.references and self.currency is None


class InMemoryLedgerStorage(LedgerStorage):
    """In-memory ledger storage with per-account locking"""

    def __init__(self):
        self._accounts: Dict[str, _AccountSlot] = {}
        # Guards the slot registry only, never held during per-account work
        self._registry_lock = threading.Lock()

    @contextmanager
    def _acquire(self, account_id: str) -> Iterator[_AccountSlot]:
        """
        Use the account's slot, creating it if needed.
        A slot left holding nothing is dropped once its last user is done.
        """
        with self._registry_lock:
            slot = self._accounts.get(account_id)
            if slot is None:
                slot = _AccountSlot()
                self._accounts[account_id] = slot
            slot.users += 1
        try:
            yield slot
        finally:
            with self._registry_lock:
                slot.users -= 1
                if slot.users == 0 and slot.is_empty and self._accounts.get(account_id) is slot:
                    del self._accounts[account_id]

    def _existing_slot(self, account_id: str) -> Optional[_AccountSlot]:
        """Get the account's slot without creating one"""
        with self._registry_lock:
            return self._accounts.get(account_id)

    @contextmanager
    def account_lock(self, account_id: str) -> Iterator[None]:
        """Hold the account's lock for the duration of the block"""
        with self._acquire(account_id) as slot:
            with slot.lock:
                yield

    def append_transaction(self, account_id: str, tx: Transaction) -> None:
        """Append a transaction; no validation is performed here"""
        with self._acquire(account_id) as slot:
            with slot.lock:
                slot.transactions.append(tx)
                slot.has_transactions = True

    def check_and_add_idempotency(self, account_id: str, reference_id: Optional[str]) -> bool:
        """
        Atomically test and register a reference id

        Args:
            account_id: Account the reference belongs to
            reference_id: Client idempotency key, may be empty

        Returns:
            True if the key was newly added or no key was given,
            False if the key was already registered
        """
        if reference_id is None or not reference_id.strip():
            return True

        with self._acquire(account_id) as slot:
            with slot.lock:
                if reference_id in slot.references:
                    return False
                slot.references.add(reference_id)
                return True

    def release_idempotency(self, account_id: str, reference_id: Optional[str]) -> None:
        """Remove a registered reference id if present"""
        if reference_id is None or not reference_id.strip():
            return

        if self._existing_slot(account_id) is None:
            return
        with self._acquire(account_id) as slot:
            with slot.lock:
                slot.references.discard(reference_id)

    def find_by_reference(self, account_id: str, reference_id: str) -> Optional[Transaction]:
        """Linear scan of the account's transactions for a reference id"""
        slot = self._existing_slot(account_id)
        if slot is None:
            return None
        with slot.lock:
            for tx in slot.transactions:
                if tx.reference_id == reference_id:
                    return tx
        return None

    def get_transactions_for_account(self, account_id: str) -> List[Transaction]:
        """Copy of the account's transactions in append order"""
        slot = self._existing_slot(account_id)
        if slot is None:
            return []
        with slot.lock:
            return list(slot.transactions)

    def get_all_transactions(self) -> List[Transaction]:
        """Flattened copy of every account's transactions"""
        with self._registry_lock:
            slots = list(self._accounts.values())

        result: List[Transaction] = []
        for slot in slots:
            with slot.lock:
                result.extend(slot.transactions)
        return result

    def get_currency(self, account_id: str) -> Optional[str]:
        """Get the bound currency, or None if the account has none"""
        slot = self._existing_slot(account_id)
        if slot is None:
            return None
        with slot.lock:
            return slot.currency

    def set_currency(self, account_id: str, currency: str) -> None:
        """Bind a currency; the first writer wins and later calls are no-ops"""
        with self._acquire(account_id) as slot:
            with slot.lock:
                if slot.currency is None:
                    slot.currency = currency.upper()

    def account_exists(self, account_id: str) -> bool:
        """Check if the account has at least one appended transaction"""
        slot = self._existing_slot(account_id)
        if slot is None:
            return False
        with slot.lock:
            return slot.has_transactions
