"""Session lifecycle: navigation, challenge clearance, bridge, reloads.

One ``SessionLifecycleManager`` owns the page for the whole process.
Every clearance cycle runs the same steps in the same order::

    wait_for_clearance -> rebind bridge -> inject interceptor
        -> save cookies -> times_loaded += 1

The first cycle is entered through ``goto()``; later ones through
``reload()``, which the reload timer, the operator and the page itself
(via the ``reload`` bridge function) all funnel into.  An ``asyncio.Lock``
keeps cycles from overlapping, and a reload asked for while one is
already queued or running is dropped.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass

from lobbytap._bridge import StatusMessage, rebind
from lobbytap._challenge import GateResult, wait_for_clearance
from lobbytap._config import Settings
from lobbytap._console import StatusSink
from lobbytap._cookies import CookieStore
from lobbytap._errors import SessionClosed
from lobbytap.browser._intercept import inject

logger = logging.getLogger("lobbytap")


class Phase(enum.Enum):
    """Where the manager is in the lifecycle."""

    CREATED = "created"
    SETUP = "setup"
    NAVIGATING = "navigating"
    AWAITING_CHALLENGE = "awaiting_challenge"
    STEADY = "steady"
    CLOSED = "closed"


@dataclass
class SessionState:
    """Process-wide lifecycle state."""

    setup_done: bool = False
    times_loaded: int = 0
    reload_timer_active: bool = False
    phase: Phase = Phase.CREATED


class SessionLifecycleManager:
    """Drives one page through challenge clearance and keeps it alive.

    Args:
        session: A ``PageSession`` (or anything with the same methods).
        settings: Intervals, URLs and browser options.
        cookie_store: Where cookies persist between runs.  Defaults to
            ``settings.cookie_file``.
        sink: Receives status updates from the page.
    """

    def __init__(
        self,
        session,
        settings: Settings | None = None,
        cookie_store: CookieStore | None = None,
        sink: StatusSink | None = None,
    ):
        self._session = session
        self._settings = settings or Settings()
        self._cookies = cookie_store or CookieStore(
            self._settings.cookie_file
        )
        self.sink = sink or StatusSink()
        self.state = SessionState()
        self.last_gate: GateResult | None = None
        self._lock = asyncio.Lock()
        self._reload_pending = False
        self._timer_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._exited = asyncio.Event()

    @property
    def times_loaded(self) -> int:
        return self.state.times_loaded

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Setup and navigation
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """One-time page setup; later calls are no-ops."""
        if self.state.setup_done:
            return
        self.state.setup_done = True
        self.state.phase = Phase.SETUP

        if self._settings.user_agent:
            await self._session.set_user_agent(self._settings.user_agent)
        width, height = self._settings.viewport
        await self._session.set_viewport(width, height)

        cookies = self._cookies.load()
        if cookies:
            try:
                await self._session.set_cookies(cookies)
                logger.info("Restored %d cookies", len(cookies))
            except Exception:
                logger.warning(
                    "Failed to restore saved cookies, starting fresh",
                    exc_info=True,
                )

        self._session.on("console", self._on_console)

    async def goto(self, url: str | None = None) -> GateResult:
        """Navigate to *url* (default: the target) and clear the challenge."""
        self._check_open("navigate")
        await self.setup()
        url = url or self._settings.target_url
        async with self._lock:
            self._check_open("navigate")
            self.state.phase = Phase.NAVIGATING
            logger.info("Navigating to: %s", url)
            await self._session.goto(url, wait_until="domcontentloaded")
            return await self._clearance_cycle()

    async def _clearance_cycle(self) -> GateResult:
        self.state.phase = Phase.AWAITING_CHALLENGE
        on_poll = None
        if self._settings.click_turnstile:
            on_poll = getattr(self._session, "click_turnstile", None)
        result = await wait_for_clearance(
            self._session,
            timeout_ms=self._settings.challenge_timeout_ms,
            poll_interval=self._settings.poll_interval,
            idle_timeout_ms=self._settings.idle_timeout_ms,
            on_poll=on_poll,
        )
        self.last_gate = result
        if result.cleared:
            logger.info("Challenge passed! Final URL: %s", self._session.url())

        await rebind(
            self._session,
            self.state.times_loaded,
            self.sink.update,
            self.request_reload,
        )
        await inject(
            self._session,
            self._settings.watched_path,
            self._settings.collector_url,
            self._settings.count_field,
        )
        await self._save_cookies()

        self.state.times_loaded += 1
        self.state.phase = Phase.STEADY
        if not self.state.reload_timer_active:
            self._arm_reload_timer()
        return result

    # ------------------------------------------------------------------
    # Reloads
    # ------------------------------------------------------------------

    def request_reload(self) -> None:
        """Schedule ``reload()`` without waiting for it."""
        if self._closed:
            return
        self._spawn(self.reload())

    async def reload(self) -> None:
        """Reload the page and run a fresh clearance cycle.

        Never raises: a failed cycle is logged and reported so the
        reload timer keeps firing.
        """
        if self._closed:
            return
        if self._reload_pending:
            logger.info("Reload already in progress, skipping")
            return
        self._reload_pending = True
        try:
            async with self._lock:
                if self._closed:
                    return
                self.state.phase = Phase.NAVIGATING
                logger.info("Reloading page")
                await self._session.reload()
                await asyncio.sleep(self._settings.settle_delay)
                await self._clearance_cycle()
        except Exception as e:
            logger.warning("Reload cycle failed", exc_info=True)
            self.sink.update(
                StatusMessage(working=False, last_log=f"Reload failed: {e}")
            )
        finally:
            self._reload_pending = False

    def _arm_reload_timer(self) -> None:
        self.state.reload_timer_active = True
        self._timer_task = asyncio.create_task(self._reload_loop())
        logger.info(
            "Auto reload every %.0f minutes",
            self._settings.reload_interval / 60,
        )

    async def _reload_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.reload_interval)
            await self.reload()

    # ------------------------------------------------------------------
    # Operator queries
    # ------------------------------------------------------------------

    async def title(self) -> str:
        self._check_open("read title")
        return await self._session.title()

    def url(self) -> str:
        self._check_open("read URL")
        return self._session.url()

    async def screenshot(self, path: str) -> None:
        self._check_open("take screenshot")
        await self._session.screenshot(path)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_exit(self) -> None:
        """Schedule ``exit()``; safe to call from a signal handler."""
        if self._closed:
            return
        self._spawn(self.exit())

    async def exit(self) -> None:
        """Save cookies, stop timers and close the browser."""
        if self._closed:
            return
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel_background()
            try:
                await self._save_cookies()
            except Exception:
                logger.warning("Failed to save cookies on exit", exc_info=True)
            logger.info("Cookies saved. Exiting...")
            await self._session.close()
            self.state.phase = Phase.CLOSED
            self._exited.set()

    async def wait_closed(self) -> None:
        await self._exited.wait()

    def _cancel_background(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        self.state.reload_timer_active = False
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _save_cookies(self) -> None:
        cookies = await self._session.cookies()
        self._cookies.save(cookies)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise SessionClosed(operation)

    def _on_console(self, msg) -> None:
        logger.info("[PAGE %s] %s", msg.type.upper(), msg.text)
