"""
Domain errors for the treasury.

Every failure a caller can act on has its own exception type
with a stable code and the HTTP status the API layer maps it to.
Services raise these; routers translate them into responses.
"""

from decimal import Decimal


class TreasuryError(Exception):
    """Base class for all domain errors."""

    code: str = "TREASURY_ERROR"
    http_status: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InsufficientFunds(TreasuryError):
    """A credit mutation would drive a currency balance below zero."""

    code = "INSUFFICIENT_FUNDS"
    http_status = 422

    def __init__(
        self, currency_code: str, required: Decimal, available: Decimal
    ) -> None:
        self.currency_code = currency_code
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {currency_code} balance: "
            f"required={required}, available={available}"
        )


class NotFound(TreasuryError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, identifier) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class InvalidInput(TreasuryError):
    code = "INVALID_INPUT"
    http_status = 400


class AlreadySettled(TreasuryError):
    """Payment attempted on a debt in a terminal state."""

    code = "ALREADY_SETTLED"
    http_status = 409

    def __init__(self, debt_id: int, status: str) -> None:
        self.debt_id = debt_id
        self.status = status
        super().__init__(f"Debt {debt_id} is already settled ({status})")


class InvalidPaymentAmount(TreasuryError):
    code = "INVALID_PAYMENT_AMOUNT"
    http_status = 400

    def __init__(self, amount: Decimal, remaining: Decimal) -> None:
        self.amount = amount
        self.remaining = remaining
        if amount <= 0:
            message = f"Payment amount must be positive, got {amount}"
        else:
            message = (
                f"Payment amount {amount} exceeds remaining amount {remaining}"
            )
        super().__init__(message)


class NotActive(TreasuryError):
    code = "NOT_ACTIVE"
    http_status = 409

    def __init__(self, entity: str, identifier, status: str) -> None:
        self.entity = entity
        self.identifier = identifier
        self.status = status
        super().__init__(
            f"{entity} {identifier} cannot be deleted (status: {status})"
        )


class CurrencyNotEmpty(TreasuryError):
    code = "CURRENCY_NOT_EMPTY"
    http_status = 409

    def __init__(self, currency_code: str, balance: Decimal) -> None:
        self.currency_code = currency_code
        self.balance = balance
        super().__init__(
            f"Currency {currency_code} still holds a balance of {balance}"
        )


class ConcurrencyConflict(TreasuryError):
    """Serialization failure that outlived the retry budget."""

    code = "CONCURRENCY_CONFLICT"
    http_status = 409

    def __init__(self, attempts: int, detail: str = "") -> None:
        self.attempts = attempts
        message = f"Transaction conflicted after {attempts} attempt(s)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
