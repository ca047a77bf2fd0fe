"""Typed exceptions for lobbytap."""


class LobbytapError(Exception):
    """Base exception for all lobbytap errors."""


class BridgeNotBound(LobbytapError):
    """A bridge endpoint was called or removed while nothing is bound."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Bridge function {name!r} is not bound")


class SessionClosed(LobbytapError):
    """The session was used after exit() closed it."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: session is closed")


class BrowserLaunchFailed(LobbytapError):
    """The browser engine could not be imported or launched."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Browser launch failed: {reason}")
