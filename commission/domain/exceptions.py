class CommissionError(Exception):
    """Base class for commission engine exceptions."""

    code = "commission_error"


class CommissionValidationError(CommissionError):
    """Raised when input to a commission or payout operation is invalid."""

    code = "validation_error"


class PayoutValidationError(CommissionValidationError):
    """Raised when a payout amount is not a positive two-decimal value."""

    code = "invalid_payout_amount"


class InsufficientBalance(CommissionValidationError):
    """Raised when a store cannot cover the requested payout."""

    code = "insufficient_balance"

    def __init__(self, store_id, requested, available):
        self.store_id = store_id
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient balance for store {store_id}: requested {requested}, available {available}")


class InvalidPayoutState(CommissionValidationError):
    """Raised when a payout request is missing or not in a processable state."""

    code = "invalid_payout_state"


class LedgerUpdateError(CommissionError):
    """
    Raised when the earnings ledger could not be updated.
    Callers must treat this as retryable; the order's commission is not recorded.
    """

    code = "ledger_update_failed"


class PayoutProviderError(CommissionError):
    """Raised when the payment provider rejects an account or transfer call."""

    code = "payout_provider_error"
