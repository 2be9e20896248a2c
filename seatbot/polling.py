"""Polling primitives for a UI whose state changes underneath us.

Both helpers only ever sleep between checks; nothing else of the session runs
while they wait.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from playwright.async_api import BrowserContext, Page


@dataclass
class PollOutcome:
    success: bool
    attempts: int
    recovered: bool = False

    def __bool__(self) -> bool:
        return self.success


async def poll_until(
    check: Callable[[], Awaitable[bool]],
    max_attempts: int = 30,
    interval: float = 2.0,
    recover: Optional[Callable[[], Awaitable[None]]] = None,
    label: str = "poll",
) -> PollOutcome:
    """Call `check` until it returns True or `max_attempts` is used up.

    Halfway through (attempt index max_attempts // 2), or on the first error,
    `recover` runs once. It never runs a second time in the same call.
    """
    recovered = False
    halfway = max_attempts // 2

    async def _recover_once() -> None:
        nonlocal recovered
        if recover is None or recovered:
            return
        recovered = True
        print(f"  [{label}] fallback recovery", flush=True)
        try:
            await recover()
        except Exception as e:
            print(f"  [{label}] recovery failed: {e}", flush=True)

    for i in range(max_attempts):
        try:
            if await check():
                return PollOutcome(success=True, attempts=i + 1, recovered=recovered)
            print(f"  [{label}] [{i + 1}/{max_attempts}] not yet, waiting {interval}s", flush=True)
        except Exception as e:
            print(f"  [{label}] attempt {i + 1} errored: {e}", flush=True)
            await _recover_once()

        if i + 1 < max_attempts:
            await asyncio.sleep(interval)
        if i == halfway:
            await _recover_once()

    print(f"  [{label}] gave up after {max_attempts} attempts", flush=True)
    return PollOutcome(success=False, attempts=max_attempts, recovered=recovered)


async def wait_for_popup(
    context: BrowserContext,
    url_part: str,
    interval: float = 1.0,
    deadline: Optional[float] = None,
    cancel: Optional[asyncio.Event] = None,
) -> Optional[Page]:
    """Wait for a window whose URL contains `url_part` and bring it to front.

    Without `deadline` (seconds) or `cancel` this waits forever. Returns None
    when either one fires.
    """
    print(f"  [popup] watching for a window containing '{url_part}'...", flush=True)
    start = time.time()
    attempt = 0

    while True:
        attempt += 1
        popup = next((p for p in context.pages if url_part in p.url), None)
        elapsed = round(time.time() - start)
        if popup is not None:
            print(f"  [popup] opened after {elapsed}s ({attempt} attempts)", flush=True)
            await popup.bring_to_front()
            return popup

        if cancel is not None and cancel.is_set():
            print(f"  [popup] cancelled after {elapsed}s", flush=True)
            return None
        if deadline is not None and time.time() - start >= deadline:
            print(f"  [popup] no popup within {deadline}s", flush=True)
            return None

        print(f"  [popup] attempt {attempt}, waited {elapsed}s...", flush=True)
        await asyncio.sleep(interval)
