"""Log in by hand once and keep the session cookies for the bot."""
import asyncio
import argparse
import json
import sys

sys.stdout.reconfigure(line_buffering=True)

from browser import BrowserController
from config import COOKIES_PATH, LOGIN_URL


async def save_login_cookies(login_url: str = LOGIN_URL, cookies_path: str = COOKIES_PATH) -> int:
    browser = BrowserController()
    await browser.start(headless=False)
    try:
        await browser.goto(login_url)
        print("Log in in the browser window, then come back here and press Enter", flush=True)
        await asyncio.get_event_loop().run_in_executor(None, input)

        cookies = await browser.context.cookies()
        with open(cookies_path, "w", encoding="utf-8") as f:
            json.dump(cookies, f, indent=2)
        print(f"Saved {len(cookies)} cookies to {cookies_path}", flush=True)
        return len(cookies)
    finally:
        await browser.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Capture login cookies for the seat agent")
    parser.add_argument("--url", default=LOGIN_URL)
    parser.add_argument("--out", default=COOKIES_PATH)
    args = parser.parse_args()
    asyncio.run(save_login_cookies(args.url, args.out))
