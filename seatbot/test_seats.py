import asyncio
import random
from unittest.mock import AsyncMock, Mock
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from seats import PROCEED, PROCEED_ACTIVE, is_seat_selected, pick_fallback_keyword, select_seat_and_proceed


def _seat(*selected_reads):
    """A rect whose selection attribute check returns the given values in order."""
    seat = AsyncMock()
    seat.evaluate = AsyncMock(side_effect=list(selected_reads))
    return seat


def _page(seats):
    frame = AsyncMock()
    frame.query_selector_all = AsyncMock(return_value=seats)
    page = Mock()
    page.frame = Mock(return_value=frame)
    return page, frame


def test_is_seat_selected_reads_stroke_and_opacity():
    seat = _seat(True)
    assert asyncio.run(is_seat_selected(seat)) is True
    script = seat.evaluate.await_args.args[0]
    assert "stroke-width" in script and "fill-opacity" in script


def test_skips_taken_seat_and_proceeds_with_next():
    s1 = _seat(True)           # already selected
    s2 = _seat(False, True)    # free, click sticks
    s3 = _seat(False, True)
    page, frame = _page([s1, s2, s3])

    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is True

    s1.click.assert_not_awaited()
    s2.click.assert_awaited_once()
    frame.wait_for_selector.assert_awaited_once_with(PROCEED_ACTIVE, timeout=5000)
    frame.click.assert_awaited_once_with(PROCEED)
    s3.click.assert_not_awaited()
    s3.evaluate.assert_not_awaited()


def test_click_that_does_not_stick_moves_on():
    s1 = _seat(False, False)
    s2 = _seat(False, True)
    page, frame = _page([s1, s2])

    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is True
    s1.click.assert_awaited_once()
    s2.click.assert_awaited_once()
    frame.click.assert_awaited_once_with(PROCEED)


def test_proceed_button_never_activating_moves_on():
    s1 = _seat(False, True)
    s2 = _seat(False, True)
    page, frame = _page([s1, s2])
    frame.wait_for_selector = AsyncMock(side_effect=[PlaywrightTimeoutError("Timeout 5000ms exceeded"), None])

    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is True
    assert frame.wait_for_selector.await_count == 2
    frame.click.assert_awaited_once_with(PROCEED)


def test_exhausted_zone_reports_failure():
    seats = [_seat(True), _seat(False, False), _seat(False, False)]
    page, frame = _page(seats)

    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is False
    frame.click.assert_not_awaited()


def test_click_error_is_not_raised():
    s1 = _seat(False)
    s1.click = AsyncMock(side_effect=RuntimeError("Element is outside of the viewport"))
    page, frame = _page([s1])

    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is False


def test_custom_selection_predicate():
    seats = [AsyncMock(), AsyncMock()]
    reads = {id(seats[0]): [True], id(seats[1]): [False, True]}

    async def predicate(seat):
        return reads[id(seat)].pop(0)

    page, frame = _page(seats)
    assert asyncio.run(select_seat_and_proceed(page, delay=0, is_selected=predicate)) is True
    seats[0].click.assert_not_awaited()
    seats[1].click.assert_awaited_once()


def test_no_frame():
    page = Mock()
    page.frame = Mock(return_value=None)
    assert asyncio.run(select_seat_and_proceed(page, delay=0)) is False


def test_fallback_pick_covers_pool_and_skips_failed_zone():
    rng = random.Random(7)
    pool = ("407", "311", "403")
    picks = {pick_fallback_keyword(pool, "207", last_tried="407", rng=rng) for _ in range(200)}
    assert picks == {"311", "403"}


def test_fallback_pick_never_out_of_range():
    rng = random.Random(1)
    pool = ("407", "311")
    for _ in range(200):
        assert pick_fallback_keyword(pool, "207", last_tried="207", rng=rng) in pool


def test_fallback_pick_single_zone_pool_is_reused():
    assert pick_fallback_keyword(("407",), "207", last_tried="407") == "407"


def test_fallback_pick_empty_pool_retries_primary():
    assert pick_fallback_keyword((), "207", last_tried="207") == "207"
