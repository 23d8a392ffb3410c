from decimal import Decimal

from pydantic import BaseModel, Field

from wallet.models.account import Account


class AccountResponse(BaseModel):
    """The caller's own account, balance included."""
    id: str
    display_name: str
    handle: str
    balance: Decimal
    balance_cents: int
    currency: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            display_name=account.display_name,
            handle=account.handle,
            balance=account.balance,
            balance_cents=account.balance_cents,
            currency=account.currency
        )


class RecipientResponse(BaseModel):
    """Public view of another account; never exposes the balance."""
    id: str
    display_name: str
    handle: str

    @classmethod
    def from_account(cls, account: Account) -> "RecipientResponse":
        return cls(id=account.id, display_name=account.display_name, handle=account.handle)


class QRResolveRequest(BaseModel):
    payload: str = Field(..., min_length=1)


class QRPayloadResponse(BaseModel):
    payload: str
