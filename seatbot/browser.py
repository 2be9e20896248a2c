import json
import os
from playwright.async_api import async_playwright, Page, Browser, BrowserContext, Frame
from typing import Optional

from config import FRAME_NAME
from handlers import filter_resources

_COOKIE_FIELDS = ("name", "value", "domain", "path", "expires", "httpOnly", "secure")
_SAME_SITE = {"strict": "Strict", "lax": "Lax", "none": "None"}


def normalize_cookies(raw: list[dict]) -> list[dict]:
    """Turn saved cookies (Puppeteer or Playwright shape) into add_cookies() input."""
    cookies = []
    for c in raw:
        if not c.get("name") or "value" not in c or not c.get("domain"):
            continue
        cookie = {k: c[k] for k in _COOKIE_FIELDS if k in c}
        cookie.setdefault("path", "/")
        # session cookies come out of Puppeteer as -1
        if "expires" in cookie and (cookie["expires"] is None or cookie["expires"] < 0):
            cookie["expires"] = -1
        same_site = _SAME_SITE.get(str(c.get("sameSite", "")).lower())
        if same_site:
            cookie["sameSite"] = same_site
        cookies.append(cookie)
    return cookies


def load_cookies(path: str) -> list[dict]:
    if not os.path.exists(path):
        print(f"  [browser] no cookie file at {path}, continuing logged out", flush=True)
        return []
    with open(path, encoding="utf-8") as f:
        return normalize_cookies(json.load(f))


def find_onestop_frame(page: Page, name: str = FRAME_NAME) -> Optional[Frame]:
    """Look up the content frame by name. Call again after every step change."""
    return page.frame(name=name)


class BrowserController:
    def __init__(self):
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self.playwright = None

    async def start(self, headless: bool = False, cookies_path: str | None = None) -> None:
        """Launch a maximized browser and open a page with the saved login cookies."""
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=headless, args=["--start-maximized"]
        )
        self.context = await self.browser.new_context(no_viewport=True)
        if cookies_path:
            cookies = load_cookies(cookies_path)
            if cookies:
                await self.context.add_cookies(cookies)
                print(f"  [browser] loaded {len(cookies)} cookies", flush=True)
        self.page = await self.context.new_page()

    async def stop(self) -> None:
        """Close browser."""
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

    async def goto(self, url: str, timeout: int = 30000) -> None:
        """Navigate, retrying exactly once."""
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout)
        except Exception as e:
            print(f"  [browser] first goto failed, retrying: {e}", flush=True)
            await self.page.goto(url, wait_until="networkidle", timeout=timeout)

    async def block_heavy_resources(self) -> None:
        await self.page.route("**/*", filter_resources)

    async def reload(self) -> None:
        await self.page.reload(wait_until="domcontentloaded")
