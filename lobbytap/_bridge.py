"""Bridge between page script and controller.

Two named callables are exposed into the page: ``updateStatus`` for
status reports and ``reload`` for page-requested recovery.  Each clearance
cycle replaces both endpoints, so only the current cycle's handlers are
ever reachable from the page.
"""

import logging
from dataclasses import dataclass

from lobbytap._errors import BridgeNotBound

logger = logging.getLogger("lobbytap")

STATUS_FUNCTION = "updateStatus"
RELOAD_FUNCTION = "reload"
BRIDGE_FUNCTIONS = (STATUS_FUNCTION, RELOAD_FUNCTION)


@dataclass
class StatusMessage:
    """A status report sent from the page.

    Either field may be missing; a message can update the working flag,
    the last log line, or both.
    """

    working: bool | None = None
    last_log: str | None = None

    @classmethod
    def from_page(cls, data) -> "StatusMessage":
        """Build from the ``{working, lastLog}`` object the page sends."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            return cls(last_log=str(data))
        working = data.get("working")
        last_log = data.get("lastLog")
        return cls(
            working=working if isinstance(working, bool) else None,
            last_log=None if last_log in (None, "") else str(last_log),
        )


async def rebind(
    session,
    times_loaded: int,
    on_status,
    on_reload_requested,
) -> None:
    """Replace the bridge endpoints exposed into the page.

    On the first cycle (``times_loaded == 0``) nothing has been exposed
    yet, so teardown is skipped.  Later cycles remove the previous
    endpoints first; an endpoint that is already gone counts as removed.
    """
    if times_loaded > 0:
        for name in BRIDGE_FUNCTIONS:
            try:
                await session.remove_exposed_function(name)
            except BridgeNotBound:
                logger.debug("Bridge function %s was not bound", name)

    def _update_status(data=None):
        on_status(StatusMessage.from_page(data))

    def _reload():
        logger.info("Reload requested from page")
        on_reload_requested()

    await session.expose_function(STATUS_FUNCTION, _update_status)
    await session.expose_function(RELOAD_FUNCTION, _reload)
    logger.debug(
        "Bridge bound (%s), cycle %d",
        ", ".join(BRIDGE_FUNCTIONS),
        times_loaded + 1,
    )
