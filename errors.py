"""Error taxonomy shared by the storefront components.

Each error carries the HTTP status it maps to; main.py turns them into
{"detail": message} responses.
"""


class StoreError(Exception):
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(StoreError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(StoreError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(StoreError):
    status_code = 404
    default_message = "Not found"


class InvalidState(StoreError):
    status_code = 400
    default_message = "Invalid state"


class EmptyCart(InvalidState):
    default_message = "Cart is empty"


class Internal(StoreError):
    status_code = 500
    default_message = "Internal error"
