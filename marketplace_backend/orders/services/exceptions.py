# orders/services/exceptions.py

"""
CHECKOUT DOMAIN ERRORS

Every error carries:
- code: stable machine-readable string (clients branch on it)
- status_code: HTTP status the API layer returns for it
"""


class CheckoutError(Exception):
    """Base checkout exception"""

    code = "CHECKOUT_ERROR"
    status_code = 400

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        if code:
            self.code = code

    @property
    def detail(self) -> str:
        return str(self)


class CheckoutValidationError(CheckoutError):
    """Invalid checkout request"""

    code = "VALIDATION_ERROR"


class NotFoundError(CheckoutError):
    """Not found"""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(CheckoutError):
    """Conflicting booking"""

    code = "SLOT_UNAVAILABLE"
    status_code = 409


class PaymentVerificationError(CheckoutError):
    """Invalid payment signature"""

    code = "INVALID_SIGNATURE"


class GatewayError(CheckoutError):
    """Payment provider error"""

    code = "GATEWAY_ERROR"
    status_code = 500


class InvalidAmountError(GatewayError):
    """Invalid payment amount"""

    code = "INVALID_AMOUNT"
    status_code = 400


class PersistenceError(CheckoutError):
    """Could not save order"""

    code = "PERSISTENCE_ERROR"
    status_code = 500
