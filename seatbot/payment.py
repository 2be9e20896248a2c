from playwright.async_api import Page

from browser import find_onestop_frame
from polling import PollOutcome, poll_until

NEXT_PAYMENT = "#nextPayment"

# The button can exist before it is clickable, so skip hit-testing entirely.
DISPATCH_CLICK_JS = """(selector) => {
    const btn = document.querySelector(selector);
    if (!btn) return false;
    btn.dispatchEvent(new MouseEvent('click', { bubbles: true, cancelable: true }));
    return true;
}"""


async def click_next_payment(page: Page, max_attempts: int = 20, interval: float = 0.5) -> PollOutcome:
    """Press Next on the payment step of the onestop frame."""
    frame = find_onestop_frame(page)
    if frame is None:
        print("  [payment] oneStopFrame not found", flush=True)
        return PollOutcome(success=False, attempts=0)

    async def _dispatch() -> bool:
        return await frame.evaluate(DISPATCH_CLICK_JS, NEXT_PAYMENT)

    outcome = await poll_until(_dispatch, max_attempts=max_attempts, interval=interval, label="payment")
    if outcome:
        print(f"  [payment] clicked {NEXT_PAYMENT}", flush=True)
    return outcome
