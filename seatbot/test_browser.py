import asyncio
import json
import pytest
from unittest.mock import AsyncMock, Mock

from browser import BrowserController, find_onestop_frame, load_cookies, normalize_cookies


def test_browser_controller_init():
    controller = BrowserController()
    assert controller is not None
    assert controller.browser is None
    assert controller.context is None
    assert controller.page is None


def test_normalize_puppeteer_cookies():
    raw = [
        {"name": "MAC", "value": "abc", "domain": ".melon.com", "path": "/", "expires": -1,
         "size": 6, "httpOnly": True, "secure": False, "session": True, "sameSite": "Lax",
         "priority": "Medium"},
        {"name": "PCID", "value": "1", "domain": "tkglobal.melon.com", "expires": 1999999999.5},
        {"name": "broken", "value": "x"},
    ]
    cookies = normalize_cookies(raw)

    assert len(cookies) == 2
    assert cookies[0] == {"name": "MAC", "value": "abc", "domain": ".melon.com", "path": "/",
                          "expires": -1, "httpOnly": True, "secure": False, "sameSite": "Lax"}
    assert cookies[1]["path"] == "/"
    assert "sameSite" not in cookies[1]


def test_load_cookies_missing_file(tmp_path):
    assert load_cookies(str(tmp_path / "nope.json")) == []


def test_load_cookies_from_file(tmp_path):
    path = tmp_path / "melon_cookies.json"
    path.write_text(json.dumps([{"name": "a", "value": "b", "domain": ".melon.com", "sameSite": "no_restriction"}]))
    assert load_cookies(str(path)) == [{"name": "a", "value": "b", "domain": ".melon.com", "path": "/"}]


def test_find_onestop_frame_looks_up_by_name():
    page = Mock()
    frame = Mock()
    page.frame = Mock(return_value=frame)
    assert find_onestop_frame(page) is frame
    page.frame.assert_called_once_with(name="oneStopFrame")


def test_goto_retries_once():
    controller = BrowserController()
    controller.page = AsyncMock()
    controller.page.goto = AsyncMock(side_effect=[RuntimeError("net::ERR_TIMED_OUT"), None])

    asyncio.run(controller.goto("https://tkglobal.melon.com/performance/index.htm"))
    assert controller.page.goto.await_count == 2


def test_goto_second_failure_propagates():
    controller = BrowserController()
    controller.page = AsyncMock()
    controller.page.goto = AsyncMock(side_effect=RuntimeError("net::ERR_TIMED_OUT"))

    with pytest.raises(RuntimeError):
        asyncio.run(controller.goto("https://tkglobal.melon.com/performance/index.htm"))
    assert controller.page.goto.await_count == 2


def test_stop_without_start_is_safe():
    asyncio.run(BrowserController().stop())
