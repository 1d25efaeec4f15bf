class LedgerError(Exception):
    """Base for errors that are shown to the user as a flash message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(LedgerError):
    pass


class InvalidInput(LedgerError):
    pass


class InsufficientStock(LedgerError):
    def __init__(self, available: int):
        super().__init__(f"Only {available} units available in stock")
        self.available = available


class PaymentRejected(LedgerError):
    pass


class AuthError(LedgerError):
    pass


class NotificationError(LedgerError):
    pass


class LoginRequired(Exception):
    """Raised by the auth dependency; the app turns it into a redirect to /login."""
