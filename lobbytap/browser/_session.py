"""Patchright page adapter and browser launch.

``PageSession`` wraps a patchright ``Page`` without touching it: the
methods the lifecycle needs are defined here, anything else falls through
to the wrapped page.

Playwright has no way to un-register an exposed function, and a name
can only be exposed once per page.  ``PageSession`` therefore registers
one dispatcher per bridge name with the page the first time it is
exposed, and keeps the real handler in a replaceable endpoint table.
``remove_exposed_function()`` empties the slot, after which calls from
the page reject with ``BridgeNotBound`` until a new handler is exposed.
"""

import inspect
import logging

from lobbytap._config import Settings
from lobbytap._errors import BridgeNotBound, BrowserLaunchFailed

logger = logging.getLogger("lobbytap")

_TURNSTILE_HOST = "challenges.cloudflare.com"


class PageSession:
    """Single-page browser session used by the lifecycle manager."""

    def __init__(self, page, browser=None, playwright=None):
        self._page = page
        self._browser = browser
        self._playwright = playwright
        self._endpoints: dict = {}
        self._registered: set[str] = set()

    def __getattr__(self, name):
        return getattr(self._page, name)

    @property
    def page(self):
        return self._page

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def goto(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout: float | None = None,
    ):
        return await self._page.goto(
            url, wait_until=wait_until, timeout=timeout
        )

    async def reload(self, wait_until: str = "domcontentloaded"):
        return await self._page.reload(wait_until=wait_until)

    async def wait_for_navigation(
        self, wait_until: str = "networkidle", timeout: float | None = None
    ) -> None:
        await self._page.wait_for_load_state(wait_until, timeout=timeout)

    async def title(self) -> str:
        return await self._page.title()

    def url(self) -> str:
        return self._page.url

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    async def cookies(self) -> list[dict]:
        return await self._page.context.cookies()

    async def set_cookies(self, cookies: list[dict]) -> None:
        if cookies:
            await self._page.context.add_cookies(cookies)

    # ------------------------------------------------------------------
    # Page script
    # ------------------------------------------------------------------

    async def evaluate(self, script: str, arg=None):
        # Main world: the page's own fetch must see the wrapper.
        return await self._page.evaluate(
            script, arg, isolated_context=False
        )

    async def expose_function(self, name: str, handler) -> None:
        """Make *handler* callable from the page as ``window.<name>``."""
        self._endpoints[name] = handler
        if name in self._registered:
            return
        self._registered.add(name)
        await self._page.expose_function(name, self._dispatcher(name))

    async def remove_exposed_function(self, name: str) -> None:
        """Unbind *name*; raises ``BridgeNotBound`` if nothing is bound."""
        if self._endpoints.pop(name, None) is None:
            raise BridgeNotBound(name)

    def _dispatcher(self, name: str):
        async def dispatch(*args):
            handler = self._endpoints.get(name)
            if handler is None:
                raise BridgeNotBound(name)
            result = handler(*args)
            if inspect.isawaitable(result):
                result = await result
            return result

        return dispatch

    def on(self, event: str, handler) -> None:
        self._page.on(event, handler)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    async def set_user_agent(self, user_agent: str) -> None:
        cdp = await self._page.context.new_cdp_session(self._page)
        await cdp.send(
            "Emulation.setUserAgentOverride", {"userAgent": user_agent}
        )

    async def set_viewport(self, width: int, height: int) -> None:
        await self._page.set_viewport_size(
            {"width": width, "height": height}
        )

    async def click_turnstile(self) -> bool:
        """Click the Turnstile checkbox frame if one is on the page."""
        for frame in self._page.frames:
            if _TURNSTILE_HOST in frame.url:
                await frame.locator("body").click(timeout=2000)
                logger.debug("Clicked Cloudflare Turnstile")
                return True
        return False

    async def screenshot(self, path: str) -> None:
        await self._page.screenshot(path=path)

    async def close(self) -> None:
        """Shut down browser and playwright."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception:
                logger.debug("Browser close failed", exc_info=True)
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception:
                logger.debug("Playwright stop failed", exc_info=True)
            self._playwright = None


async def launch(settings: Settings) -> PageSession:
    """Start Chromium through patchright and open the working page."""
    try:
        from patchright.async_api import async_playwright
    except ImportError:
        raise BrowserLaunchFailed(
            "patchright is required. Install with: pip install lobbytap"
        ) from None

    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            channel=settings.channel,
            headless=settings.headless,
            args=list(settings.launch_args),
        )
        context = await browser.new_context()
        page = await context.new_page()
    except Exception as e:
        try:
            await playwright.stop()
        except Exception:
            pass
        raise BrowserLaunchFailed(str(e)) from e

    logger.info(
        "Browser launched (headless=%s, channel=%s)",
        settings.headless,
        settings.channel or "chromium",
    )
    return PageSession(page, browser=browser, playwright=playwright)
