"""
AccountRepository - balances and recipient lookup.

The only write path for a balance is apply_delta: one conditional
find_one_and_update ($inc guarded by balance_cents >= -delta), so
concurrent callers on the same account can never drive it negative
or lose an update.
"""

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from wallet.core.config import settings
from wallet.core.errors import AccountNotFoundError, InsufficientFundsError, StoreUnavailableError
from wallet.core.logging_config import get_logger
from wallet.db.mongo import ACCOUNTS
from wallet.models.account import Account
from wallet.models.base import _utcnow
from wallet.utils.identifiers import (
    ResolutionStrategy,
    normalize_handle,
    resolution_plan,
    strip_handle_prefix,
)

logger = get_logger("wallet.repositories.accounts")

# Errors carrying these labels belong to an open transaction; the driver's
# with_transaction loop needs to see them untranslated.
TRANSACTION_ERROR_LABELS = ("TransientTransactionError", "UnknownTransactionCommitResult")


@contextmanager
def store_errors(operation: str):
    """Translate driver failures into StoreUnavailableError."""
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as exc:
        if any(exc.has_error_label(label) for label in TRANSACTION_ERROR_LABELS):
            raise
        logger.warning("Store failure during %s: %s", operation, exc)
        raise StoreUnavailableError() from exc


def session_kwargs(session) -> Dict[str, Any]:
    return {"session": session} if session is not None else {}


class AccountRepository:
    """Repository for account balances."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[ACCOUNTS]

    async def create_account(
        self,
        display_name: str,
        handle: str,
        balance_cents: int = 0,
        account_id: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Account:
        """Create an account. Raises DuplicateKeyError if the handle is taken."""
        if balance_cents < 0:
            raise ValueError("Opening balance cannot be negative")

        now = _utcnow()
        doc = {
            "_id": (account_id or str(uuid.uuid4())).lower(),
            "display_name": display_name,
            "handle": strip_handle_prefix(handle),
            "handle_normalized": normalize_handle(handle),
            "balance_cents": balance_cents,
            "currency": currency or settings.CURRENCY,
            "created_at": now,
            "updated_at": now,
        }
        with store_errors("create_account"):
            await self.collection.insert_one(doc)
        return Account.from_doc(doc)

    async def get_account(self, account_id: str, session=None) -> Optional[Account]:
        """Get account by id."""
        with store_errors("get_account"):
            doc = await self.collection.find_one({"_id": account_id}, **session_kwargs(session))
        if doc:
            return Account.from_doc(doc)
        return None

    async def get_account_by_handle(self, handle: str) -> Optional[Account]:
        """Get account by handle (case-insensitive, "@" optional)."""
        normalized = normalize_handle(handle)
        if not normalized:
            return None
        with store_errors("get_account_by_handle"):
            doc = await self.collection.find_one({"handle_normalized": normalized})
        if doc:
            return Account.from_doc(doc)
        return None

    async def resolve_identifier(self, identifier: str) -> Optional[Account]:
        """
        Resolve a raw account id, "@handle" or bare handle to an account.

        Tries ById (UUID-shaped input only), then ByHandle.
        """
        for strategy, value in resolution_plan(identifier):
            if strategy is ResolutionStrategy.BY_ID:
                account = await self.get_account(value)
            else:
                account = await self.get_account_by_handle(value)
            if account:
                return account
        return None

    async def apply_delta(self, account_id: str, delta_cents: int, session=None) -> Account:
        """
        Atomically add delta_cents to the balance and return the updated account.

        Raises:
        - InsufficientFundsError if the result would be negative (nothing written)
        - AccountNotFoundError if the account does not exist
        - StoreUnavailableError on infrastructure failure
        """
        query: Dict[str, Any] = {"_id": account_id}
        if delta_cents < 0:
            query["balance_cents"] = {"$gte": -delta_cents}

        current = None
        with store_errors("apply_delta"):
            doc = await self.collection.find_one_and_update(
                query,
                {
                    "$inc": {"balance_cents": delta_cents},
                    "$set": {"updated_at": _utcnow()}
                },
                return_document=ReturnDocument.AFTER,
                **session_kwargs(session)
            )
            if doc is None:
                # Either missing or the guard failed; find out which
                current = await self.collection.find_one({"_id": account_id}, **session_kwargs(session))

        if doc is not None:
            return Account.from_doc(doc)
        if current is None:
            raise AccountNotFoundError()
        raise InsufficientFundsError(available_cents=current["balance_cents"])
