"""lobbytap -- keep a challenge-protected page alive and relay one API feed."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lobbytap")
except PackageNotFoundError:
    __version__ = "0.0.0"

from lobbytap._bridge import StatusMessage
from lobbytap._challenge import GateResult, is_challenge_title, wait_for_clearance
from lobbytap._config import Settings
from lobbytap._console import OperatorConsole, StatusSink
from lobbytap._cookies import CookieStore
from lobbytap._errors import (
    BridgeNotBound,
    BrowserLaunchFailed,
    LobbytapError,
    SessionClosed,
)
from lobbytap._lifecycle import Phase, SessionLifecycleManager, SessionState

__all__ = [
    "__version__",
    "SessionLifecycleManager",
    "SessionState",
    "Phase",
    "Settings",
    "CookieStore",
    "StatusMessage",
    "StatusSink",
    "OperatorConsole",
    "GateResult",
    "wait_for_clearance",
    "is_challenge_title",
    "LobbytapError",
    "BridgeNotBound",
    "SessionClosed",
    "BrowserLaunchFailed",
]

# Silent by default; the CLI (or the caller) configures handlers.
logging.getLogger("lobbytap").addHandler(logging.NullHandler())
