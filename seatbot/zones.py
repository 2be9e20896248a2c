import asyncio

from playwright.async_api import Page

from browser import find_onestop_frame

ZONE_HEADERS = 'tr[id^="gd"]'
ZONE_ITEMS = ".list_area li"
EXPANDED_CLASS = "expanded"


async def expand_zones(page: Page, delay_per_header: float = 0.15, base_wait: float = 0.8) -> bool:
    """Open every collapsed zone group in the onestop frame.

    Clicks are scheduled in the page, staggered so the list animation keeps
    up, and we then sleep long enough for all of them to have fired. There is
    no completion signal to wait on.
    """
    frame = find_onestop_frame(page)
    if frame is None:
        print("  [zones] oneStopFrame not found", flush=True)
        return False

    headers = await frame.query_selector_all(ZONE_HEADERS)
    collapsed = []
    for header in headers:
        is_expanded = await header.evaluate("(tr, cls) => tr.classList.contains(cls)", EXPANDED_CLASS)
        if not is_expanded:
            collapsed.append(header)

    delay_ms = int(delay_per_header * 1000)
    for i, header in enumerate(collapsed):
        await header.evaluate("(tr, ms) => setTimeout(() => tr.click(), ms)", i * delay_ms)

    await asyncio.sleep(base_wait + len(collapsed) * delay_per_header)
    print(f"  [zones] expanded {len(collapsed)} of {len(headers)} groups", flush=True)
    return True


async def click_zone_by_keyword(page: Page, keyword: str) -> bool:
    """Click the first visible zone list item whose text contains `keyword`."""
    frame = find_onestop_frame(page)
    if frame is None:
        print("  [zones] oneStopFrame not found", flush=True)
        return False

    for item in await frame.query_selector_all(ZONE_ITEMS):
        text = await item.text_content() or ""
        if keyword in text and await item.is_visible():
            await item.evaluate("li => li.click()")
            print(f"  [zones] clicked zone '{keyword}'", flush=True)
            return True

    print(f"  [zones] no zone containing '{keyword}'", flush=True)
    return False
