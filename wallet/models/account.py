"""
Account model - balance holder for transfers.

Design principles:
- Balance in integer minor units (centavos), never floats
- balance_cents >= 0 at all times; enforced by AccountRepository.apply_delta
- handle_normalized is the lookup key for "@handle" resolution
"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from wallet.models.base import MongoModel, _utcnow
from wallet.utils.money import from_minor_units


class Account(MongoModel):
    display_name: str
    handle: str
    handle_normalized: str = ""
    balance_cents: int = Field(default=0, ge=0)
    currency: str = "PHP"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def balance(self) -> Decimal:
        return from_minor_units(self.balance_cents)
