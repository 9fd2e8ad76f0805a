from typing import Any


class TablesideError(Exception):
    pass


class StorageError(TablesideError):
    """A storage backend could not read or write a value."""


class ApiError(TablesideError):
    """Non-success response from the REST boundary."""

    def __init__(self, status: int, message: str, body: Any = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.body = body

    def __repr__(self):
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class NetworkError(ApiError):
    """The request never produced a response (DNS, refused, timeout)."""

    def __init__(self, message: str):
        super().__init__(0, message, None)


class TokenResolutionError(TablesideError):
    """The table token is invalid or expired; the diner has to rescan."""


class SessionExpiredError(TablesideError):
    """A resolved table session can no longer be used for new orders."""


class MissingSessionSecretError(TablesideError):
    pass


class EmptyCartError(TablesideError):
    pass
