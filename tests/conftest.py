"""Shared fakes for lobbytap tests."""

import time

import pytest

from lobbytap._errors import BridgeNotBound

CHALLENGE_TITLE = "Just a moment..."


class TimedTitles:
    """Title source that shows the challenge for *challenge_for* seconds.

    The clock starts on the first read.
    """

    def __init__(self, challenge_for: float, real_title: str = "Lobbies"):
        self._challenge_for = challenge_for
        self._real_title = real_title
        self._start: float | None = None

    def __call__(self) -> str:
        now = time.monotonic()
        if self._start is None:
            self._start = now
        if now - self._start < self._challenge_for:
            return CHALLENGE_TITLE
        return self._real_title


class FakeConsoleMessage:
    def __init__(self, type_: str, text: str):
        self.type = type_
        self.text = text


class FakeSession:
    """In-memory stand-in for ``PageSession`` that records every call.

    ``titles`` is either a list (each read pops one, the last repeats)
    or a callable returning the current title.
    """

    def __init__(self, titles=None, cookies=None, url="https://app.test/"):
        self._titles = titles if titles is not None else ["Lobbies"]
        self.cookie_jar: list[dict] = list(cookies or [])
        self.current_url = url
        self.calls: list[str] = []
        self.exposed: dict = {}
        self.expose_counts: dict[str, int] = {}
        self.remove_counts: dict[str, int] = {}
        self.evaluated: list[tuple] = []
        self.listeners: dict[str, list] = {}
        self.restored: list[dict] = []
        self.screenshots: list[str] = []
        self.user_agent: str | None = None
        self.viewport: tuple[int, int] | None = None
        self.goto_error: Exception | None = None
        self.reload_error: Exception | None = None
        self.idle_error: Exception | None = None
        self.closed = False

    async def goto(self, url, wait_until="domcontentloaded", timeout=None):
        self.calls.append("goto")
        self.current_url = url
        self.goto_wait_until = wait_until
        if self.goto_error is not None:
            raise self.goto_error

    async def reload(self, wait_until="domcontentloaded"):
        self.calls.append("reload")
        if self.reload_error is not None:
            raise self.reload_error

    async def wait_for_navigation(self, wait_until="networkidle", timeout=None):
        self.calls.append("wait_for_navigation")
        if self.idle_error is not None:
            raise self.idle_error

    async def title(self) -> str:
        if callable(self._titles):
            return self._titles()
        if len(self._titles) > 1:
            return self._titles.pop(0)
        return self._titles[0]

    def url(self) -> str:
        return self.current_url

    async def cookies(self) -> list[dict]:
        self.calls.append("cookies")
        return list(self.cookie_jar)

    async def set_cookies(self, cookies):
        self.calls.append("set_cookies")
        self.restored.extend(cookies)

    async def evaluate(self, script, arg=None):
        self.calls.append("evaluate")
        self.evaluated.append((script, arg))
        return True

    async def expose_function(self, name, handler):
        self.calls.append(f"expose:{name}")
        self.exposed[name] = handler
        self.expose_counts[name] = self.expose_counts.get(name, 0) + 1

    async def remove_exposed_function(self, name):
        self.calls.append(f"remove:{name}")
        self.remove_counts[name] = self.remove_counts.get(name, 0) + 1
        if self.exposed.pop(name, None) is None:
            raise BridgeNotBound(name)

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    async def set_user_agent(self, user_agent):
        self.user_agent = user_agent

    async def set_viewport(self, width, height):
        self.viewport = (width, height)

    async def screenshot(self, path):
        self.screenshots.append(path)

    async def close(self):
        self.calls.append("close")
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession(cookies=[{"name": "cf_clearance", "value": "abc"}])
