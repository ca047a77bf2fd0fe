"""Tests for bridge rebinding and the page session endpoint table."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lobbytap._bridge import (
    BRIDGE_FUNCTIONS,
    RELOAD_FUNCTION,
    STATUS_FUNCTION,
    StatusMessage,
    rebind,
)
from lobbytap._errors import BridgeNotBound
from lobbytap.browser import PageSession
from tests.conftest import FakeSession

# ---------------------------------------------------------------------------
# StatusMessage
# ---------------------------------------------------------------------------


class TestStatusMessage:
    def test_both_fields(self):
        msg = StatusMessage.from_page({"working": True, "lastLog": "ok"})
        assert msg == StatusMessage(working=True, last_log="ok")

    def test_working_only(self):
        msg = StatusMessage.from_page({"working": False})
        assert msg.working is False
        assert msg.last_log is None

    def test_log_only(self):
        msg = StatusMessage.from_page({"lastLog": "Intercepted 3 lobbies"})
        assert msg.working is None
        assert msg.last_log == "Intercepted 3 lobbies"

    def test_empty_log_is_none(self):
        assert StatusMessage.from_page({"lastLog": ""}).last_log is None

    def test_none(self):
        assert StatusMessage.from_page(None) == StatusMessage()

    def test_plain_string(self):
        assert StatusMessage.from_page("hi").last_log == "hi"

    def test_numeric_log_stringified(self):
        assert StatusMessage.from_page({"lastLog": 500}).last_log == "500"

    def test_string_working_ignored(self):
        msg = StatusMessage.from_page({"working": "false", "lastLog": "x"})
        assert msg.working is None
        assert msg.last_log == "x"

    def test_numeric_working_ignored(self):
        assert StatusMessage.from_page({"working": 1}).working is None


# ---------------------------------------------------------------------------
# rebind
# ---------------------------------------------------------------------------


async def _cycles(session, n):
    for times_loaded in range(n):
        await rebind(session, times_loaded, lambda m: None, lambda: None)


class TestRebind:
    async def test_first_cycle_skips_teardown(self):
        session = FakeSession()
        await rebind(session, 0, lambda m: None, lambda: None)
        assert session.remove_counts == {}
        assert session.calls == [
            f"expose:{STATUS_FUNCTION}",
            f"expose:{RELOAD_FUNCTION}",
        ]

    @pytest.mark.parametrize("cycles", [1, 2, 3, 7])
    async def test_expose_and_remove_counts(self, cycles):
        session = FakeSession()
        await _cycles(session, cycles)
        for name in BRIDGE_FUNCTIONS:
            assert session.expose_counts[name] == cycles
            assert session.remove_counts.get(name, 0) == max(0, cycles - 1)
        assert set(session.exposed) == set(BRIDGE_FUNCTIONS)

    async def test_teardown_before_expose(self):
        session = FakeSession()
        await _cycles(session, 2)
        second = session.calls[2:]
        assert second == [
            f"remove:{STATUS_FUNCTION}",
            f"remove:{RELOAD_FUNCTION}",
            f"expose:{STATUS_FUNCTION}",
            f"expose:{RELOAD_FUNCTION}",
        ]

    async def test_missing_binding_tolerated(self):
        session = FakeSession()
        await rebind(session, 3, lambda m: None, lambda: None)
        assert set(session.exposed) == set(BRIDGE_FUNCTIONS)

    async def test_other_removal_errors_propagate(self):
        session = FakeSession()
        session.remove_exposed_function = AsyncMock(
            side_effect=RuntimeError("Target closed")
        )
        with pytest.raises(RuntimeError):
            await rebind(session, 1, lambda m: None, lambda: None)

    async def test_update_status_routes_to_callback(self):
        session = FakeSession()
        received = []
        await rebind(session, 0, received.append, lambda: None)
        session.exposed[STATUS_FUNCTION]({"working": True, "lastLog": "x"})
        assert received == [StatusMessage(working=True, last_log="x")]

    async def test_reload_routes_to_callback(self):
        session = FakeSession()
        requested = []
        await rebind(
            session, 0, lambda m: None, lambda: requested.append(1)
        )
        session.exposed[RELOAD_FUNCTION]()
        assert requested == [1]

    async def test_latest_handlers_win(self):
        session = FakeSession()
        first, second = [], []
        await rebind(session, 0, first.append, lambda: None)
        await rebind(session, 1, second.append, lambda: None)
        session.exposed[STATUS_FUNCTION]({"lastLog": "hello"})
        assert first == []
        assert len(second) == 1


# ---------------------------------------------------------------------------
# PageSession endpoint table
# ---------------------------------------------------------------------------


def _mock_page():
    page = MagicMock()
    page.expose_function = AsyncMock()
    page.evaluate = AsyncMock(return_value=True)
    return page


class TestPageSessionExpose:
    async def test_registers_with_page_once(self):
        page = _mock_page()
        session = PageSession(page)
        await session.expose_function("updateStatus", lambda m: None)
        await session.remove_exposed_function("updateStatus")
        await session.expose_function("updateStatus", lambda m: None)
        assert page.expose_function.await_count == 1

    async def test_dispatch_reaches_current_handler(self):
        page = _mock_page()
        session = PageSession(page)
        calls = []
        await session.expose_function("updateStatus", lambda m: None)
        await session.remove_exposed_function("updateStatus")
        await session.expose_function("updateStatus", calls.append)

        dispatch = page.expose_function.await_args.args[1]
        await dispatch({"working": True})
        assert calls == [{"working": True}]

    async def test_removed_endpoint_rejects(self):
        page = _mock_page()
        session = PageSession(page)
        await session.expose_function("reload", lambda: None)
        await session.remove_exposed_function("reload")

        dispatch = page.expose_function.await_args.args[1]
        with pytest.raises(BridgeNotBound):
            await dispatch()

    async def test_remove_unbound_raises(self):
        session = PageSession(_mock_page())
        with pytest.raises(BridgeNotBound) as exc:
            await session.remove_exposed_function("reload")
        assert exc.value.name == "reload"

    async def test_async_handler_awaited(self):
        page = _mock_page()
        session = PageSession(page)

        async def handler(value):
            return value * 2

        await session.expose_function("double", handler)
        dispatch = page.expose_function.await_args.args[1]
        assert await dispatch(21) == 42

    async def test_rebind_through_page_session(self):
        page = _mock_page()
        session = PageSession(page)
        for times_loaded in range(4):
            await rebind(session, times_loaded, lambda m: None, lambda: None)
        # One page-level registration per bridge name, ever.
        names = [c.args[0] for c in page.expose_function.await_args_list]
        assert names == list(BRIDGE_FUNCTIONS)


class TestPageSessionForwarding:
    def test_unknown_attributes_forward_to_page(self):
        page = _mock_page()
        page.main_frame = "frame"
        session = PageSession(page)
        assert session.main_frame == "frame"
        assert session.page is page

    def test_url_reads_page_property(self):
        page = _mock_page()
        page.url = "https://app.test/lobbies"
        assert PageSession(page).url() == "https://app.test/lobbies"

    async def test_evaluate_uses_main_world(self):
        page = _mock_page()
        await PageSession(page).evaluate("() => 1", {"a": 1})
        page.evaluate.assert_awaited_once_with(
            "() => 1", {"a": 1}, isolated_context=False
        )

    async def test_set_cookies_skips_empty(self):
        page = _mock_page()
        page.context.add_cookies = AsyncMock()
        await PageSession(page).set_cookies([])
        page.context.add_cookies.assert_not_awaited()

    async def test_click_turnstile(self):
        page = _mock_page()
        other = MagicMock()
        other.url = "https://app.test/"
        turnstile = MagicMock()
        turnstile.url = "https://challenges.cloudflare.com/turnstile/v0/x"
        turnstile.locator.return_value.click = AsyncMock()
        page.frames = [other, turnstile]
        assert await PageSession(page).click_turnstile() is True
        turnstile.locator.assert_called_once_with("body")

    async def test_click_turnstile_no_frame(self):
        page = _mock_page()
        page.frames = []
        assert await PageSession(page).click_turnstile() is False

    async def test_close_swallows_errors(self):
        browser = MagicMock()
        browser.close = AsyncMock(side_effect=RuntimeError("gone"))
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        session = PageSession(_mock_page(), browser, playwright)
        await session.close()
        playwright.stop.assert_awaited_once()
