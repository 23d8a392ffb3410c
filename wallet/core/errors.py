"""
Wallet error taxonomy.

Every failure the transfer path can produce is a WalletError subclass
carrying a stable code, the HTTP status the API maps it to, and an
outcome:

- rejected: nothing happened; the caller may fix the input (or retry,
  when retryable is set).
- unconfirmed: money may have moved; the caller must not retry blindly.
"""

from enum import Enum
from typing import Any, Dict, Optional


class Outcome(str, Enum):
    REJECTED = "rejected"
    UNCONFIRMED = "unconfirmed"


class WalletError(Exception):
    """Base class for all wallet errors."""

    code: str = "WALLET_ERROR"
    status_code: int = 400
    outcome: Outcome = Outcome.REJECTED
    retryable: bool = False
    default_message: str = "The request could not be completed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "outcome": self.outcome.value,
            "retryable": self.retryable,
        }


# ===== VALIDATION (nothing happened) =====

class InvalidAmountError(WalletError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than zero"


class UnsupportedCurrencyError(WalletError):
    code = "UNSUPPORTED_CURRENCY"
    default_message = "Currency is not supported by this wallet"


class SelfTransferError(WalletError):
    code = "SELF_TRANSFER"
    default_message = "Cannot send funds to yourself"


class ForbiddenSenderError(WalletError):
    code = "FORBIDDEN_SENDER"
    status_code = 403
    default_message = "You can only send funds from your own account"


class AccountNotFoundError(WalletError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404
    default_message = "Account not found"


class SenderNotFoundError(AccountNotFoundError):
    code = "SENDER_NOT_FOUND"
    default_message = "Sender account not found"


class ReceiverNotFoundError(AccountNotFoundError):
    code = "RECEIVER_NOT_FOUND"
    default_message = "Receiver account not found"


class InsufficientFundsError(WalletError):
    code = "INSUFFICIENT_FUNDS"
    status_code = 409
    default_message = "Insufficient balance"

    def __init__(self, message: Optional[str] = None, available_cents: Optional[int] = None, **details: Any):
        self.available_cents = available_cents
        super().__init__(message, available_cents=available_cents, **details)


class InvalidQRPayloadError(WalletError):
    code = "INVALID_QR_PAYLOAD"
    default_message = "Invalid QR code. Please scan a valid wallet QR code."


class IdempotencyConflictError(WalletError):
    code = "IDEMPOTENCY_CONFLICT"
    status_code = 409
    default_message = "Idempotency key was already used for a different request"


class TransferInProgressError(WalletError):
    code = "TRANSFER_IN_PROGRESS"
    status_code = 409
    retryable = True
    default_message = "A transfer with this idempotency key is still being processed"


class StoreUnavailableError(WalletError):
    code = "STORE_UNAVAILABLE"
    status_code = 503
    retryable = True
    default_message = "The wallet is temporarily unavailable. No funds were moved; please try again."


# ===== UNCONFIRMED (something may have happened) =====

class LedgerWriteFailedError(WalletError):
    """Balances moved but the ledger entry could not be written."""

    code = "LEDGER_WRITE_FAILED"
    status_code = 500
    outcome = Outcome.UNCONFIRMED
    default_message = (
        "Your funds were sent but the transaction record could not be saved. "
        "Do not send again; the transfer will be reconciled."
    )


class CompensationFailedError(WalletError):
    """Debit applied, credit failed, and reversing the debit failed too."""

    code = "COMPENSATION_FAILED"
    status_code = 500
    outcome = Outcome.UNCONFIRMED
    default_message = (
        "We could not confirm the state of this transfer. "
        "Do not send again; our team has been alerted and will reconcile your balance."
    )


class OutcomeUnknownError(WalletError):
    """The store could not confirm whether a write was applied."""

    code = "OUTCOME_UNKNOWN"
    status_code = 504
    outcome = Outcome.UNCONFIRMED
    default_message = (
        "We could not confirm whether this transfer went through. "
        "Check your transaction history before sending again."
    )
