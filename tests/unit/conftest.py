"""In-memory stores with the same atomicity as the SQL they stand in for.

Each conditional check-and-write runs without an await in between, the way a
single UPDATE ... WHERE runs atomically in PostgreSQL. Awaits are placed
between statements so concurrent tasks interleave. FakeSession keeps an undo
log so rollback discards everything the session wrote since its last commit.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bd_bidcoin.domain.models import (
    DuplicateEntryError,
    LedgerEntry,
    LedgerEntryDraft,
    Wallet,
)
from src.bd_common.errors import InsufficientFundsError
from src.bd_payment.domain.models import Auction, Payment
from src.bd_referral.domain.models import ReferralClaim, ReferralCode


class FakeSession:
    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] = []
        self.commits = 0
        self.rollbacks = 0

    def on_rollback(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def in_transaction(self) -> bool:
        return bool(self._undo)

    async def commit(self) -> None:
        self._undo.clear()
        self.commits += 1

    async def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
        self.rollbacks += 1


def replay_entries(entries: list[LedgerEntry]) -> int:
    """Rebuild a balance from entries in insertion order, checking each snapshot."""
    balance = 0
    for entry in sorted(entries, key=lambda e: e.id):
        balance += entry.delta
        if balance != entry.resulting_balance:
            raise AssertionError(
                f"entry {entry.id}: replayed balance {balance} "
                f"!= recorded {entry.resulting_balance}"
            )
    return balance


class InMemoryLedgerStore:
    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.entries: list[LedgerEntry] = []
        self._next_id = 1

    def seed(self, user_id: str, balance: int) -> None:
        entry = LedgerEntry(
            id=self._next_id,
            user_id=user_id,
            delta=balance,
            transaction_type="adjustment",
            resulting_balance=balance,
        )
        self._next_id += 1
        self.entries.append(entry)
        self.balances[user_id] = balance

    async def get_wallet(self, db, user_id: str) -> Wallet | None:
        await asyncio.sleep(0)
        if user_id not in self.balances:
            return None
        return Wallet(user_id=user_id, balance=self.balances[user_id], version=1)

    async def read_balance(self, db, user_id: str) -> int:
        await asyncio.sleep(0)
        return self.balances.get(user_id, 0)

    async def apply_delta(self, db, user_id: str, delta: int, draft: LedgerEntryDraft):
        await asyncio.sleep(0)
        current = self.balances.get(user_id)
        if delta < 0 and (current is None or current + delta < 0):
            raise InsufficientFundsError(-delta, current or 0)
        existed = current is not None
        self.balances[user_id] = (current or 0) + delta
        new_balance = self.balances[user_id]

        def undo_balance() -> None:
            if existed:
                self.balances[user_id] -= delta
            else:
                self.balances.pop(user_id, None)

        db.on_rollback(undo_balance)

        await asyncio.sleep(0)
        key = draft.idempotency_key
        if key is not None and any(e.idempotency_key == key for e in self.entries):
            raise DuplicateEntryError(key)
        entry = LedgerEntry(
            id=self._next_id,
            user_id=user_id,
            delta=delta,
            transaction_type=draft.transaction_type,
            resulting_balance=new_balance,
            reference_id=draft.reference_id,
            reference_table=draft.reference_table,
            metadata=dict(draft.metadata),
            idempotency_key=key,
            created_at=datetime.now(UTC),
        )
        self._next_id += 1
        self.entries.append(entry)
        db.on_rollback(lambda: self.entries.remove(entry))
        return Wallet(user_id=user_id, balance=new_balance, version=1), entry

    async def find_by_idempotency_key(self, db, idempotency_key: str) -> LedgerEntry | None:
        await asyncio.sleep(0)
        return next((e for e in self.entries if e.idempotency_key == idempotency_key), None)

    async def list_entries(self, db, user_id, cursor_id, limit, transaction_type):
        rows = [
            e
            for e in sorted(self.entries, key=lambda e: e.id, reverse=True)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (transaction_type is None or e.transaction_type == transaction_type)
        ]
        return rows[:limit]

    async def ledger_sum(self, db, user_id: str) -> int:
        return sum(e.delta for e in self.entries if e.user_id == user_id)

    def entries_for(self, user_id: str) -> list[LedgerEntry]:
        return [e for e in self.entries if e.user_id == user_id]


class InMemoryReferralStore:
    def __init__(self) -> None:
        self.codes: dict[str, ReferralCode] = {}
        self.claims: dict[str, ReferralClaim] = {}

    def add_code(self, code: str, owner: str, **kwargs) -> ReferralCode:
        referral = ReferralCode(code=code, owner_user_id=owner, **kwargs)
        self.codes[code] = referral
        return referral

    async def get_code(self, db, code: str) -> ReferralCode | None:
        await asyncio.sleep(0)
        return self.codes.get(code)

    async def get_code_by_owner(self, db, owner_user_id: str) -> ReferralCode | None:
        await asyncio.sleep(0)
        return next((c for c in self.codes.values() if c.owner_user_id == owner_user_id), None)

    async def insert_code(self, db, code: ReferralCode) -> bool:
        await asyncio.sleep(0)
        if code.code in self.codes or any(
            c.owner_user_id == code.owner_user_id for c in self.codes.values()
        ):
            return False
        self.codes[code.code] = code
        db.on_rollback(lambda: self.codes.pop(code.code, None))
        return True

    async def insert_claim(self, db, claim: ReferralClaim) -> bool:
        await asyncio.sleep(0)
        if claim.user_id in self.claims:
            return False
        claim.claimed_at = datetime.now(UTC)
        self.claims[claim.user_id] = claim
        db.on_rollback(lambda: self.claims.pop(claim.user_id, None))
        return True

    async def consume_code(self, db, code: str, max_claims: int | None) -> bool:
        await asyncio.sleep(0)
        referral = self.codes.get(code)
        if referral is None or not referral.is_active:
            return False
        if max_claims is not None and referral.claim_count >= max_claims:
            return False
        referral.claim_count += 1

        def undo() -> None:
            referral.claim_count -= 1

        db.on_rollback(undo)
        return True

    async def list_claims_by_referrer(self, db, referrer_id: str) -> list[ReferralClaim]:
        return [c for c in self.claims.values() if c.referrer_id == referrer_id]

    async def referrer_earnings(self, db, referrer_id: str) -> dict[str, int]:
        return {}


class InMemoryPaymentStore:
    """Payments + auctions with the guarded transitions of the SQL repositories."""

    def __init__(self) -> None:
        self.payments: dict[str, Payment] = {}
        self.auctions: dict[str, Auction] = {}
        self.mark_paid_calls = 0

    def add_payment(self, payment: Payment) -> None:
        self.payments[payment.id] = payment

    def by_intent(self, intent_id: str) -> Payment | None:
        return next(
            (p for p in self.payments.values() if p.processor_intent_id == intent_id), None
        )

    async def get_by_id(self, db, payment_id: str) -> Payment | None:
        await asyncio.sleep(0)
        return self.payments.get(payment_id)

    async def get_by_intent_id(self, db, processor_intent_id: str) -> Payment | None:
        await asyncio.sleep(0)
        return self.by_intent(processor_intent_id)

    async def mark_succeeded(self, db, processor_intent_id: str) -> Payment | None:
        await asyncio.sleep(0)
        payment = self.by_intent(processor_intent_id)
        if payment is None or payment.status in ("succeeded", "refunded"):
            return None
        previous = payment.status
        payment.status = "succeeded"

        def undo() -> None:
            payment.status = previous

        db.on_rollback(undo)
        return payment

    async def get(self, db, auction_id: str) -> Auction | None:
        return self.auctions.get(auction_id)

    async def mark_paid(self, db, auction_id: str) -> bool:
        await asyncio.sleep(0)
        self.mark_paid_calls += 1
        auction = self.auctions.get(auction_id)
        if auction is None or auction.status != "ended":
            return False
        auction.status = "paid"
        return True


def make_db() -> AsyncMock:
    """AsyncSession stand-in with no open transaction."""
    db = AsyncMock()
    db.in_transaction = MagicMock(return_value=False)
    return db


@pytest.fixture
def db() -> AsyncMock:
    return make_db()


@pytest.fixture
def ledger() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def referral_store() -> InMemoryReferralStore:
    return InMemoryReferralStore()


@pytest.fixture
def payment_store() -> InMemoryPaymentStore:
    return InMemoryPaymentStore()


@pytest.fixture
def allow_all_throttle() -> MagicMock:
    throttle = MagicMock()
    throttle.allow = AsyncMock(return_value=True)
    return throttle
