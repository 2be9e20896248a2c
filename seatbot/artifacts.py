"""Post-mortem files: captcha crops, popup screenshot, popup markup."""
from pathlib import Path

from playwright.async_api import Page


class ArtifactWriter:
    def __init__(self, base_dir: str = "debug"):
        self.base_dir = Path(base_dir)

    def path(self, name: str) -> Path:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        return self.base_dir / name

    def captcha_path(self, attempt: int) -> Path:
        return self.path(f"captcha_{attempt}.png")

    async def dump_page(self, page: Page, prefix: str = "popup") -> None:
        """Save a full-page screenshot and the HTML. Never fails the session."""
        try:
            await page.screenshot(path=str(self.path(f"{prefix}_debug.png")), full_page=True)
            html = await page.content()
            self.path(f"{prefix}_dump.html").write_text(html, encoding="utf-8")
            print(f"  [debug] saved {prefix} screenshot + HTML to {self.base_dir}/", flush=True)
        except Exception as e:
            print(f"  [debug] could not dump {prefix}: {e}", flush=True)
