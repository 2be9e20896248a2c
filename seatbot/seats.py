"""Seat picking inside the currently selected zone.

Seats are SVG rects. Whether one is selected is never remembered locally: it
is read back from the document through a predicate every time, because other
buyers change the map underneath us.
"""
import asyncio
import random
from typing import Awaitable, Callable, Optional, Sequence

from playwright.async_api import ElementHandle, Page

from browser import find_onestop_frame

SEAT_SHAPES = "rect"
PROCEED_ACTIVE = "#nextTicketSelection.btnOneB"
PROCEED = "#nextTicketSelection"

SelectionPredicate = Callable[[ElementHandle], Awaitable[bool]]


async def is_seat_selected(seat: ElementHandle) -> bool:
    """A picked seat is drawn with a 2px stroke and half-transparent fill."""
    return await seat.evaluate(
        "el => el.getAttribute('stroke-width') === '2'"
        " && el.getAttribute('fill-opacity') === '0.5'"
    )


async def select_seat_and_proceed(
    page: Page,
    delay: float = 0.1,
    proceed_timeout: int = 5000,
    is_selected: SelectionPredicate = is_seat_selected,
) -> bool:
    """Click seats in document order until one sticks, then press proceed."""
    frame = find_onestop_frame(page)
    if frame is None:
        print("  [seats] oneStopFrame not found", flush=True)
        return False

    seats = await frame.query_selector_all(SEAT_SHAPES)
    print(f"  [seats] trying {len(seats)} shapes", flush=True)
    for i, seat in enumerate(seats, start=1):
        try:
            if await is_selected(seat):
                print(f"  [seats] #{i} already selected, skipping", flush=True)
                continue

            await seat.click()
            await asyncio.sleep(delay)

            if not await is_selected(seat):
                print(f"  [seats] #{i} did not stick", flush=True)
                continue

            print(f"  [seats] #{i} selected, waiting for proceed button", flush=True)
            await frame.wait_for_selector(PROCEED_ACTIVE, timeout=proceed_timeout)
            await frame.click(PROCEED)
            print("  [seats] clicked Seat Selection Completed", flush=True)
            return True
        except Exception as e:
            print(f"  [seats] #{i} failed: {e}", flush=True)

    print("  [seats] no seat in this zone went through", flush=True)
    return False


def pick_fallback_keyword(
    pool: Sequence[str],
    primary: str,
    last_tried: Optional[str] = None,
    rng: random.Random | None = None,
) -> str:
    """Uniform pick from the fallback pool, avoiding the zone that just failed.

    With an empty pool the primary keyword is retried.
    """
    rng = rng or random
    choices = [k for k in pool if k != last_tried] or list(pool) or [primary]
    return rng.choice(choices)
