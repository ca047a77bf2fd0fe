"""Challenge gate: wait out an interstitial verification page.

Pure polling over ``session.title()``.  The gate never fails: a timeout
just means the caller carries on with whatever page is showing.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from lobbytap._config import (
    DEFAULT_CHALLENGE_TIMEOUT_MS,
    DEFAULT_IDLE_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL,
)

logger = logging.getLogger("lobbytap")

# Exact titles of the interstitial page.
CHALLENGE_TITLES = frozenset({"Just a moment..."})

# Substrings of older "checking your browser" interstitials.
CHALLENGE_TITLE_FRAGMENTS = ("Checking your browser",)


def is_challenge_title(title: str) -> bool:
    """Check whether a page title belongs to a challenge screen."""
    if title in CHALLENGE_TITLES:
        return True
    return any(frag in title for frag in CHALLENGE_TITLE_FRAGMENTS)


async def _read_title(session) -> str | None:
    """Read the title, or None while the page is mid-navigation."""
    try:
        return await session.title()
    except Exception:
        logger.debug("Title read failed during challenge wait", exc_info=True)
        return None


def _still_challenged(title: str | None) -> bool:
    return title is None or is_challenge_title(title)


@dataclass
class GateResult:
    """Outcome of one pass through the gate."""

    title: str
    cleared: bool
    elapsed: float


async def wait_for_clearance(
    session,
    timeout_ms: int = DEFAULT_CHALLENGE_TIMEOUT_MS,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    idle_timeout_ms: int = DEFAULT_IDLE_TIMEOUT_MS,
    on_poll=None,
) -> GateResult:
    """Poll the page title until the challenge is gone or time runs out.

    Args:
        session: Anything with async ``title()`` and
            ``wait_for_navigation()`` (see ``PageSession``).
        timeout_ms: Give up waiting after this long.  Not an error.
        poll_interval: Seconds between title reads.
        idle_timeout_ms: Budget for the best-effort network-idle wait
            that follows the polling loop.
        on_poll: Optional coroutine function awaited before each sleep
            while the page is still challenged.  Each call is cut off
            after one poll interval (or the time left, if less); its
            failures are logged and ignored.

    Returns:
        GateResult with the title current when polling stopped.
    """
    logger.info("Waiting for possible challenge...")
    start = time.monotonic()
    deadline = start + timeout_ms / 1000

    title = await _read_title(session)
    while _still_challenged(title) and time.monotonic() < deadline:
        poll_start = time.monotonic()
        delay = poll_interval
        if on_poll is not None:
            budget = max(0.0, min(poll_interval, deadline - poll_start))
            try:
                await asyncio.wait_for(on_poll(), budget)
            except asyncio.TimeoutError:
                logger.debug("Challenge poll hook ran past %.2fs", budget)
            except Exception:
                logger.debug("Challenge poll hook failed", exc_info=True)
            # The hook's time counts toward this poll.
            delay = max(0.0, poll_interval - (time.monotonic() - poll_start))
        await asyncio.sleep(delay)
        title = await _read_title(session)

    elapsed = time.monotonic() - start
    cleared = not _still_challenged(title)
    title = title or ""
    if cleared:
        logger.info("Title after challenge: %s (%.1fs)", title, elapsed)
    else:
        logger.warning(
            "Challenge still showing after %.1fs, continuing anyway "
            "(title: %s)",
            elapsed,
            title,
        )

    try:
        await session.wait_for_navigation(
            wait_until="networkidle", timeout=idle_timeout_ms
        )
    except Exception:
        logger.debug("No network-idle navigation after challenge")

    return GateResult(title=title, cleared=cleared, elapsed=elapsed)
