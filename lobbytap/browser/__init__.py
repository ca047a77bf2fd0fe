"""Browser-side pieces: patchright page adapter and in-page interceptor."""

from lobbytap.browser._intercept import INTERCEPT_SCRIPT, inject
from lobbytap.browser._session import PageSession, launch

__all__ = [
    "INTERCEPT_SCRIPT",
    "PageSession",
    "inject",
    "launch",
]
