"""
TransferEngine - moves balance between two accounts as one logical unit.

Transfer flow:
1. Validate input (amount, currency, self-transfer)
2. Resolve sender and receiver
3. Replay a completed request with the same idempotency key
4. Check the sender's balance
5. Claim the idempotency key
6. Debit sender, credit receiver, append one ledger entry
7. Settle the idempotency claim

Step 6 runs either inside a MongoDB transaction (all or nothing by
construction) or as three independently atomic writes with an explicit
reversal of the debit when the credit fails. Steps 5-7 are shielded
from caller cancellation once started.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from wallet.core.config import settings
from wallet.core.errors import (
    AccountNotFoundError,
    CompensationFailedError,
    IdempotencyConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    LedgerWriteFailedError,
    Outcome,
    OutcomeUnknownError,
    ReceiverNotFoundError,
    SelfTransferError,
    SenderNotFoundError,
    StoreUnavailableError,
    TransferInProgressError,
    UnsupportedCurrencyError,
    WalletError,
)
from wallet.core.logging_config import RECONCILIATION_LOGGER, get_logger
from wallet.models.account import Account
from wallet.models.ledger import HistoryEntry, IdempotencyRecord, IdempotencyStatus, LedgerEntry
from wallet.repositories.account_repo import AccountRepository
from wallet.repositories.idempotency_repo import IdempotencyRepository
from wallet.repositories.ledger_repo import LedgerRepository
from wallet.utils.money import format_amount
from wallet.utils.qr_payload import build_receive_payload, parse_payload

logger = get_logger("wallet.services.transfer")
reconciliation_logger = get_logger(RECONCILIATION_LOGGER)


class TransferStrategy(str, Enum):
    TRANSACTION = "transaction"
    COMPENSATING = "compensating"


class TransferResult(BaseModel):
    entry: LedgerEntry
    replayed: bool = False


class TransferEngine:
    """Executes transfers and serves history and recipient lookups."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        accounts: Optional[AccountRepository] = None,
        ledger: Optional[LedgerRepository] = None,
        idempotency: Optional[IdempotencyRepository] = None,
        strategy: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.db = db
        self.accounts = accounts or AccountRepository(db)
        self.ledger = ledger or LedgerRepository(db)
        self.idempotency = idempotency or IdempotencyRepository(db)
        self.strategy = TransferStrategy(strategy or settings.TRANSFER_STRATEGY)
        self.currency = (currency or settings.CURRENCY).upper()

    # ===== TRANSFER =====

    async def transfer(
        self,
        sender_id: str,
        receiver_id: str,
        amount_cents: int,
        note: Optional[str] = None,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransferResult:
        """
        Move amount_cents from sender to receiver and record it once.

        sender_id / receiver_id accept anything resolve_identifier accepts.
        Raises a WalletError subclass on failure; see wallet.core.errors.
        """
        # 1. Input checks, in order
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise InvalidAmountError()
        if currency and currency.strip().upper() != self.currency:
            raise UnsupportedCurrencyError(f"Only {self.currency} transfers are supported")
        if sender_id and receiver_id and sender_id.strip().lower() == receiver_id.strip().lower():
            raise SelfTransferError()

        # 2. Resolve both sides
        sender = await self.accounts.resolve_identifier(sender_id)
        if sender is None:
            raise SenderNotFoundError()
        receiver = await self.accounts.resolve_identifier(receiver_id)
        if receiver is None:
            raise ReceiverNotFoundError()
        if sender.id == receiver.id:
            raise SelfTransferError()

        key = idempotency_key.strip() if idempotency_key else None

        # 3. Replay
        if key:
            replay = await self._replay(sender.id, key, receiver.id, amount_cents)
            if replay is not None:
                return replay

        # 4. Balance (may be stale by execution time; the debit re-checks)
        if sender.balance_cents < amount_cents:
            raise self._insufficient(sender.balance_cents)

        note = (note or "").strip() or f"Transfer from {sender.display_name} to {receiver.display_name}"

        # 5-7. Past this point the caller can no longer cancel us halfway,
        # so a claimed key is always completed, released or marked
        return await asyncio.shield(self._run(sender, receiver, amount_cents, note, key))

    async def _run(self, sender: Account, receiver: Account, amount_cents: int, note: str, key: Optional[str]) -> TransferResult:
        if key:
            claimed = await self.idempotency.claim(sender.id, key, receiver.id, amount_cents)
            if claimed is None:
                replay = await self._replay(sender.id, key, receiver.id, amount_cents)
                if replay is not None:
                    return replay
                raise TransferInProgressError()

        try:
            if self.strategy is TransferStrategy.TRANSACTION:
                entry = await self._execute_in_transaction(sender, receiver, amount_cents, note, key)
            else:
                entry = await self._execute_with_compensation(sender, receiver, amount_cents, note, key)
        except WalletError as exc:
            if key:
                await self._settle_claim_after_failure(sender.id, key, exc)
            raise

        logger.info(
            "Transfer %s: %s -> %s amount=%s %s",
            entry.id, sender.id, receiver.id, amount_cents, self.currency
        )
        if key:
            await self._settle_claim(sender.id, key, IdempotencyStatus.COMPLETED, entry.id)
        return TransferResult(entry=entry)

    async def _execute_in_transaction(self, sender: Account, receiver: Account, amount_cents: int, note: str, key: Optional[str]) -> LedgerEntry:
        async def callback(session):
            try:
                await self.accounts.apply_delta(sender.id, -amount_cents, session=session)
            except InsufficientFundsError as exc:
                raise self._insufficient(exc.available_cents) from exc
            except AccountNotFoundError as exc:
                raise SenderNotFoundError() from exc

            try:
                await self.accounts.apply_delta(receiver.id, amount_cents, session=session)
            except AccountNotFoundError as exc:
                raise ReceiverNotFoundError() from exc

            return await self.ledger.insert_entry(
                self._new_entry(sender, receiver, amount_cents, note, key),
                session=session
            )

        try:
            async with await self.db.client.start_session() as session:
                return await session.with_transaction(
                    callback,
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                )
        except PyMongoError as exc:
            if exc.has_error_label("UnknownTransactionCommitResult"):
                self._report_unconfirmed("commit result unknown", sender, receiver, amount_cents, key, exc)
                raise OutcomeUnknownError() from exc
            logger.warning("Transfer transaction aborted: %s", exc)
            raise StoreUnavailableError() from exc

    async def _execute_with_compensation(self, sender: Account, receiver: Account, amount_cents: int, note: str, key: Optional[str]) -> LedgerEntry:
        # a. Debit
        try:
            await self.accounts.apply_delta(sender.id, -amount_cents)
        except InsufficientFundsError as exc:
            raise self._insufficient(exc.available_cents) from exc
        except AccountNotFoundError as exc:
            raise SenderNotFoundError() from exc
        except StoreUnavailableError as exc:
            # The write may or may not have landed
            self._report_unconfirmed("debit result unknown", sender, receiver, amount_cents, key, exc)
            raise OutcomeUnknownError() from exc

        # b. Credit, reversing the debit on any failure
        try:
            await self.accounts.apply_delta(receiver.id, amount_cents)
        except Exception as exc:
            await self._reverse_debit(sender, receiver, amount_cents, key, exc)
            if isinstance(exc, AccountNotFoundError):
                raise ReceiverNotFoundError() from exc
            raise

        # c. Record
        try:
            return await self.ledger.insert_entry(self._new_entry(sender, receiver, amount_cents, note, key))
        except StoreUnavailableError as exc:
            self._report_unconfirmed("ledger write failed after balances moved", sender, receiver, amount_cents, key, exc)
            raise LedgerWriteFailedError(
                sender_id=sender.id,
                receiver_id=receiver.id,
                amount_cents=amount_cents
            ) from exc

    async def _reverse_debit(self, sender: Account, receiver: Account, amount_cents: int, key: Optional[str], cause: Exception):
        try:
            await self.accounts.apply_delta(sender.id, amount_cents)
        except Exception as exc:
            reconciliation_logger.critical(
                "COMPENSATION FAILED: sender=%s debited %s %s, receiver=%s not credited, key=%s, "
                "credit error=%r, reversal error=%r",
                sender.id, amount_cents, self.currency, receiver.id, key, cause, exc
            )
            raise CompensationFailedError(
                sender_id=sender.id,
                receiver_id=receiver.id,
                amount_cents=amount_cents
            ) from exc
        logger.warning(
            "Credit to %s failed (%r); debit of %s on %s reversed",
            receiver.id, cause, amount_cents, sender.id
        )

    # ===== IDEMPOTENCY =====

    async def _replay(self, sender_id: str, key: str, receiver_id: str, amount_cents: int) -> Optional[TransferResult]:
        record = await self.idempotency.get(sender_id, key)
        if record is None:
            return None

        if record.receiver_id != receiver_id or record.amount_cents != amount_cents:
            raise IdempotencyConflictError()

        if record.status is IdempotencyStatus.PENDING:
            raise TransferInProgressError()
        if record.status is IdempotencyStatus.UNCONFIRMED:
            raise IdempotencyConflictError(
                "A previous request with this key could not be confirmed and is being reconciled. "
                "Do not send again."
            )

        entry = await self.ledger.get_entry(record.entry_id) if record.entry_id else None
        if entry is None:
            raise IdempotencyConflictError("The original transfer for this key could not be found")
        logger.info("Replayed transfer %s for key=%s", entry.id, key)
        return TransferResult(entry=entry, replayed=True)

    async def _settle_claim_after_failure(self, sender_id: str, key: str, exc: WalletError):
        if exc.outcome is Outcome.UNCONFIRMED:
            await self._settle_claim(sender_id, key, IdempotencyStatus.UNCONFIRMED)
            return
        try:
            await self.idempotency.release(sender_id, key)
        except StoreUnavailableError:
            logger.warning("Could not release idempotency key %s for %s", key, sender_id)

    async def _settle_claim(self, sender_id: str, key: str, status: IdempotencyStatus, entry_id: Optional[str] = None) -> Optional[IdempotencyRecord]:
        try:
            return await self.idempotency.mark(sender_id, key, status, entry_id=entry_id)
        except StoreUnavailableError:
            reconciliation_logger.error(
                "Could not mark idempotency key %s for %s as %s (entry=%s)",
                key, sender_id, status.value, entry_id
            )
            return None

    # ===== READ PATHS =====

    async def iter_history(self, account_id: str, limit: Optional[int] = None) -> AsyncIterator[HistoryEntry]:
        """Lazily yield the account's entries, newest first, annotated with perspective."""
        async for entry in self.ledger.iter_for_account(account_id, self._clamp_limit(limit)):
            yield HistoryEntry.for_account(entry, account_id)

    async def get_history(self, account_id: str, limit: Optional[int] = None) -> List[HistoryEntry]:
        return [entry async for entry in self.iter_history(account_id, limit)]

    async def resolve_recipient(self, identifier: str) -> Account:
        account = await self.accounts.resolve_identifier(identifier)
        if account is None:
            raise ReceiverNotFoundError()
        return account

    async def resolve_qr_recipient(self, raw_payload: str) -> Account:
        payload = parse_payload(raw_payload)
        return await self.resolve_recipient(payload.user_id)

    async def get_account(self, account_id: str) -> Account:
        account = await self.accounts.get_account(account_id)
        if account is None:
            raise AccountNotFoundError()
        return account

    async def receive_payload(self, account_id: str) -> str:
        account = await self.get_account(account_id)
        return build_receive_payload(account.id, account.handle)

    # ===== HELPERS =====

    def _new_entry(self, sender: Account, receiver: Account, amount_cents: int, note: str, key: Optional[str]) -> LedgerEntry:
        return LedgerEntry(
            sender_id=sender.id,
            receiver_id=receiver.id,
            amount_cents=amount_cents,
            currency=self.currency,
            note=note,
            idempotency_key=key
        )

    def _insufficient(self, available_cents: Optional[int]) -> InsufficientFundsError:
        if available_cents is None:
            return InsufficientFundsError()
        return InsufficientFundsError(
            f"Insufficient balance. Available: {format_amount(available_cents, self.currency)}",
            available_cents=available_cents
        )

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return settings.HISTORY_DEFAULT_LIMIT
        return max(1, min(limit, settings.HISTORY_MAX_LIMIT))

    def _report_unconfirmed(self, reason: str, sender: Account, receiver: Account, amount_cents: int, key: Optional[str], exc: Exception):
        reconciliation_logger.error(
            "Transfer needs reconciliation (%s): sender=%s receiver=%s amount=%s %s key=%s error=%r",
            reason, sender.id, receiver.id, amount_cents, self.currency, key, exc
        )
