"""OCR captcha solving for the onestop popup.

The flow per attempt: crop the captcha image, clean it up for OCR, read it
with an uppercase-only whitelist, keep the first 6 letters, and either submit
them or ask the page for a fresh image.
"""
import asyncio
import re
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import pytesseract
from PIL import Image, ImageEnhance
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from artifacts import ArtifactWriter

CODE_LENGTH = 6
WHITELIST = string.ascii_uppercase

CAPTCHA_IMG = "#captchaImg"
CAPTCHA_INPUT = "#label-for-captcha"
CAPTCHA_SUBMIT = "#btnComplete"
CAPTCHA_RELOAD = "#btnReload"


def filter_code(raw_text: str) -> str:
    """First 6 characters of the A-Z subsequence of the OCR output."""
    return "".join(re.findall(r"[A-Z]", raw_text or ""))[:CODE_LENGTH]


def preprocess_image(image: Image.Image, contrast: float = 2.0, scale: int = 2) -> Image.Image:
    """Greyscale, boost contrast, upscale linearly. Only meant to help OCR."""
    gray = image.convert("L")
    boosted = ImageEnhance.Contrast(gray).enhance(contrast)
    return boosted.resize((boosted.width * scale, boosted.height * scale), Image.Resampling.BILINEAR)


class Recognizer(Protocol):
    def recognize(self, image: Image.Image) -> str: ...


class TesseractRecognizer:
    def __init__(self, tessdata_dir: Optional[str] = None, psm: int = 7):
        self.config = f"--psm {psm} -c tessedit_char_whitelist={WHITELIST}"
        if tessdata_dir:
            self.config += f' --tessdata-dir "{tessdata_dir}"'

    def recognize(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(image, lang="eng", config=self.config)


@dataclass
class ChallengeAttempt:
    number: int
    image_path: Optional[Path] = None
    raw_text: str = ""
    code: str = ""
    accepted: bool = False


class CaptchaSolver:
    def __init__(self, recognizer: Recognizer, artifacts: ArtifactWriter, max_retries: int = 3):
        self.recognizer = recognizer
        self.artifacts = artifacts
        self.max_retries = max_retries
        self.type_delay_ms = 100
        self.reload_wait = 1.0
        self.attempts: list[ChallengeAttempt] = []

    async def solve(self, page: Page) -> bool:
        """Read and submit the captcha. False means the session cannot go on."""
        self.attempts = []

        for number in range(1, self.max_retries + 1):
            print(f"  [captcha] attempt {number}/{self.max_retries}", flush=True)
            try:
                img = await page.wait_for_selector(CAPTCHA_IMG, timeout=10000)
            except PlaywrightTimeoutError:
                img = None
            if img is None:
                print(f"  [captcha] no captcha image {CAPTCHA_IMG}, aborting", flush=True)
                return False

            attempt = ChallengeAttempt(number=number)
            self.attempts.append(attempt)
            try:
                attempt.image_path = self.artifacts.captcha_path(number)
                await img.screenshot(path=str(attempt.image_path))
                with Image.open(attempt.image_path) as raw:
                    prepared = preprocess_image(raw)
                prepared.save(attempt.image_path)

                attempt.raw_text = await asyncio.to_thread(self.recognizer.recognize, prepared)
                attempt.code = filter_code(attempt.raw_text)
                print(f"  [captcha] raw={attempt.raw_text.strip()!r} -> code={attempt.code!r}", flush=True)

                if len(attempt.code) == CODE_LENGTH:
                    await page.wait_for_selector(CAPTCHA_INPUT, timeout=5000)
                    # a failed attempt may have left letters in the field
                    await page.fill(CAPTCHA_INPUT, "")
                    await page.type(CAPTCHA_INPUT, attempt.code, delay=self.type_delay_ms)
                    await page.click(CAPTCHA_SUBMIT)
                    attempt.accepted = True
                    print(f"  [captcha] submitted {attempt.code}", flush=True)
                    return True

                print(f"  [captcha] got {len(attempt.code)} letters, need {CODE_LENGTH}", flush=True)
            except Exception as e:
                print(f"  [captcha] attempt {number} failed: {e}", flush=True)

            await self._reload_image(page)

        print(f"  [captcha] no valid code after {self.max_retries} attempts", flush=True)
        return False

    async def _reload_image(self, page: Page) -> None:
        print("  [captcha] reloading image", flush=True)
        try:
            reload_btn = await page.query_selector(CAPTCHA_RELOAD)
            if reload_btn:
                await reload_btn.click()
        except Exception as e:
            print(f"  [captcha] reload failed: {e}", flush=True)
        await asyncio.sleep(self.reload_wait)
