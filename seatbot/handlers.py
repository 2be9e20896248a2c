"""Page event handlers: native dialogs and request filtering."""

from typing import Awaitable, Callable

from playwright.async_api import Dialog, Page, Route

DialogPolicy = Callable[[Dialog], Awaitable[None]]

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font"})


async def accept_dialog(dialog: Dialog) -> None:
    """Press OK on any alert/confirm."""
    print(f"  [dialog] {dialog.type}: {dialog.message}", flush=True)
    await dialog.accept()


async def dismiss_dialog(dialog: Dialog) -> None:
    print(f"  [dialog] dismissing {dialog.type}: {dialog.message}", flush=True)
    await dialog.dismiss()


class DialogSubscription:
    """A registered dialog listener that can be removed again."""

    def __init__(self, page: Page, policy: DialogPolicy = accept_dialog):
        self.page = page
        self.policy = policy
        self.active = False

    async def _on_dialog(self, dialog: Dialog) -> None:
        try:
            await self.policy(dialog)
        except Exception as e:
            print(f"  [dialog] handler error: {e}", flush=True)

    def subscribe(self) -> "DialogSubscription":
        if not self.active:
            self.page.on("dialog", self._on_dialog)
            self.active = True
        return self

    def dispose(self) -> None:
        if self.active:
            self.page.remove_listener("dialog", self._on_dialog)
            self.active = False


def setup_dialog_handler(page: Page, policy: DialogPolicy = accept_dialog) -> DialogSubscription:
    """Auto-handle every native prompt raised by `page`."""
    return DialogSubscription(page, policy).subscribe()


def should_block(resource_type: str) -> bool:
    return resource_type in BLOCKED_RESOURCE_TYPES


async def filter_resources(route: Route) -> None:
    """Abort images, stylesheets and fonts; let everything else through."""
    if should_block(route.request.resource_type):
        await route.abort()
    else:
        await route.continue_()
