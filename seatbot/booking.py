"""Drives one booking session from the performance page to the payment step.

Every stage reports a plain bool. The first stage that fails ends the
session and closes the browser; nothing is resumed.
"""
import asyncio
from typing import Awaitable, Callable, Optional

from artifacts import ArtifactWriter
from browser import BrowserController, find_onestop_frame
from captcha import CaptchaSolver, Recognizer, TesseractRecognizer
from config import (
    ARTIFACTS_DIR, COOKIES_PATH, GEMINI_API_KEY, OCR_ENGINE, POPUP_URL_PART,
    PROD_TYPE_CODE, TESSDATA_DIR, SessionConfig,
)
from dom_parser import count_collapsed_groups, extract_date_labels, extract_zone_labels
from handlers import DialogPolicy, DialogSubscription, accept_dialog, setup_dialog_handler
from metrics import MetricsTracker
from payment import click_next_payment
from polling import poll_until, wait_for_popup
from seats import SelectionPredicate, is_seat_selected, pick_fallback_keyword, select_seat_and_proceed
from zones import click_zone_by_keyword, expand_zones

CLICK_DATE_JS = """(targetDate) => {
    for (const el of document.querySelectorAll('li.item_date')) {
        if (el.textContent.includes(targetDate)) {
            const btn = el.querySelector('button');
            if (btn) { btn.click(); return true; }
        }
    }
    return false;
}"""

PICK_TIME_SLOT_JS = "() => document.querySelector('li.item_time')?.classList.add('on')"

RESERVATION_READY_JS = """() => typeof ProductServiceApp !== 'undefined'
    && ProductServiceApp.reservationModule
    && typeof ProductServiceApp.reservationModule().reservationInit === 'function'"""

RESERVATION_INIT_JS = "(args) => ProductServiceApp.reservationModule().reservationInit(args)"


def build_recognizer(engine: str = OCR_ENGINE) -> Recognizer:
    if engine == "gemini":
        from vision import GeminiRecognizer
        return GeminiRecognizer(GEMINI_API_KEY)
    return TesseractRecognizer(tessdata_dir=TESSDATA_DIR)


class ReservationFlow:
    def __init__(
        self,
        config: SessionConfig,
        browser: Optional[BrowserController] = None,
        captcha: Optional[CaptchaSolver] = None,
        artifacts: Optional[ArtifactWriter] = None,
        dialog_policy: DialogPolicy = accept_dialog,
        is_selected: SelectionPredicate = is_seat_selected,
        popup_timeout: Optional[float] = None,
        max_zone_retries: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ):
        self.config = config
        self.browser = browser or BrowserController()
        self.artifacts = artifacts or ArtifactWriter(ARTIFACTS_DIR)
        self.captcha = captcha or CaptchaSolver(build_recognizer(), self.artifacts)
        self.dialog_policy = dialog_policy
        self.is_selected = is_selected
        # None or 0 means wait and retry forever
        self.popup_timeout = popup_timeout or None
        self.max_zone_retries = max_zone_retries or None
        self.cancel = cancel or asyncio.Event()
        self.metrics = MetricsTracker()

        self.popup = None
        self.dialogs: Optional[DialogSubscription] = None

        self.date_attempts = 30
        self.date_interval = 2.0
        self.popup_interval = 1.0
        self.zone_retry_pause = 0.1
        self.step_settle = 1.0

    async def run(self, headless: bool = False, cookies_path: str = COOKIES_PATH) -> dict:
        """Run the whole session. Leaves the browser open on the payment step."""
        print(f"[flow] target={self.config.url} date='{self.config.target_date}' "
              f"zones={list(self.config.seat_keywords)}", flush=True)

        ok = await self._stage("launch", lambda: self._launch(headless, cookies_path))
        if ok:
            ok = await self._book()

        if ok:
            print("[flow] reached payment step, browser stays open", flush=True)
        else:
            print(f"[flow] stopped at '{self.metrics.failed_stage}', closing browser", flush=True)
            await self.close()
        self.metrics.print_summary()
        return self.metrics.get_summary()

    async def close(self) -> None:
        if self.dialogs:
            self.dialogs.dispose()
            self.dialogs = None
        try:
            await self.browser.stop()
        except Exception as e:
            print(f"[flow] browser close failed: {e}", flush=True)

    async def _book(self) -> bool:
        primary = self.config.primary_keyword
        stages: list[tuple[str, Callable[[], Awaitable[bool]]]] = [
            ("navigate", self._navigate),
            ("date", self._select_date),
            ("time_slot", self._select_time_slot),
            ("reservation_init", self._init_reservation),
            ("popup", self._open_popup),
            ("captcha", self._solve_captcha),
            ("expand_zones", self._expand_zones),
            ("select_zone", lambda: click_zone_by_keyword(self.popup, primary)),
            ("seats", self._select_seats),
            ("payment", self._advance_payment),
        ]
        for name, action in stages:
            if self.cancel.is_set():
                self.metrics.start_stage(name)
                self.metrics.end_stage(name, success=False, error="cancelled")
                return False
            if not await self._stage(name, action):
                return False
        return True

    async def _stage(self, name: str, action: Callable[[], Awaitable[bool]]) -> bool:
        """Run one stage; any exception becomes a failed stage."""
        print(f"\n--- {name} ---", flush=True)
        self.metrics.start_stage(name)
        error = None
        try:
            ok = bool(await action())
        except Exception as e:
            ok = False
            error = f"{type(e).__name__}: {e}"
            print(f"  [flow] {name} raised {error}", flush=True)
        self.metrics.end_stage(name, success=ok, error=error)
        print(f"  [flow] {name}: {'OK' if ok else 'FAILED'}", flush=True)
        return ok

    async def _launch(self, headless: bool, cookies_path: str) -> bool:
        await self.browser.start(headless=headless, cookies_path=cookies_path)
        return True

    async def _navigate(self) -> bool:
        await self.browser.goto(self.config.url)
        print("  [flow] page loaded", flush=True)
        # Filtering only after the first load so the page boots normally
        await self.browser.block_heavy_resources()
        return True

    async def _select_date(self) -> bool:
        page = self.browser.page
        target = self.config.target_date

        async def _click_date() -> bool:
            return await page.evaluate(CLICK_DATE_JS, target)

        async def _reload() -> None:
            await self.browser.reload()
            await asyncio.sleep(0.5)

        outcome = await poll_until(
            _click_date,
            max_attempts=self.date_attempts,
            interval=self.date_interval,
            recover=_reload,
            label="date",
        )
        if outcome:
            print(f"  [flow] clicked date '{target}' after {outcome.attempts} attempts", flush=True)
        else:
            await self._log_labels(page, extract_date_labels, "dates on page")
        return outcome.success

    async def _select_time_slot(self) -> bool:
        page = self.browser.page
        await page.wait_for_selector("li.item_time", timeout=5000)
        await page.evaluate(PICK_TIME_SLOT_JS)
        await asyncio.sleep(0.3)
        return True

    async def _init_reservation(self) -> bool:
        page = self.browser.page
        await page.wait_for_function(RESERVATION_READY_JS, timeout=5000)
        await page.evaluate(RESERVATION_INIT_JS, {
            "prodId": self.config.prod_id,
            "prodTypeCode": PROD_TYPE_CODE,
            "langCd": self.config.lang_cd,
        })
        print("  [flow] reservationInit called", flush=True)
        return True

    async def _open_popup(self) -> bool:
        self.popup = await wait_for_popup(
            self.browser.context,
            POPUP_URL_PART,
            interval=self.popup_interval,
            deadline=self.popup_timeout,
            cancel=self.cancel,
        )
        if self.popup is None:
            return False
        await self.artifacts.dump_page(self.popup)
        self.dialogs = setup_dialog_handler(self.popup, self.dialog_policy)
        return True

    async def _solve_captcha(self) -> bool:
        try:
            return await self.captcha.solve(self.popup)
        finally:
            self.metrics.captcha_attempts = len(self.captcha.attempts)

    async def _expand_zones(self) -> bool:
        if not await expand_zones(self.popup):
            return False
        frame = find_onestop_frame(self.popup)
        if frame is not None:
            await self._log_labels(frame, count_collapsed_groups, "groups still collapsed")
        return True

    async def _select_seats(self) -> bool:
        """Keep contending for a seat, hopping between fallback zones."""
        last_zone = self.config.primary_keyword
        retries = 0
        while True:
            if await select_seat_and_proceed(self.popup, is_selected=self.is_selected):
                return True
            if self.cancel.is_set():
                print("  [flow] seat selection cancelled", flush=True)
                return False
            if self.max_zone_retries is not None and retries >= self.max_zone_retries:
                print(f"  [flow] gave up after {retries} zone retries", flush=True)
                return False

            retries += 1
            self.metrics.zone_retries = retries
            zone = pick_fallback_keyword(
                self.config.fallback_pool, self.config.primary_keyword, last_tried=last_zone
            )
            print(f"  [flow] no seat in '{last_zone}', retry {retries} in zone '{zone}'", flush=True)
            if not await click_zone_by_keyword(self.popup, zone):
                frame = find_onestop_frame(self.popup)
                if frame is not None:
                    await self._log_labels(frame, extract_zone_labels, "zones listed")
                return False
            last_zone = zone
            await asyncio.sleep(self.zone_retry_pause)

    async def _advance_payment(self) -> bool:
        # the frame reloads into the payment step; let it settle, then look it up again
        await asyncio.sleep(self.step_settle)
        if find_onestop_frame(self.popup) is None:
            print("  [flow] oneStopFrame missing on payment step", flush=True)
            return False
        outcome = await click_next_payment(self.popup)
        return outcome.success

    async def _log_labels(self, target, extract, what: str) -> None:
        try:
            labels = extract(await target.content())
        except Exception as e:
            print(f"  [flow] could not read {what}: {e}", flush=True)
            return
        print(f"  [flow] {what}: {labels}", flush=True)
