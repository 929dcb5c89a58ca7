"""Drive the enka.network showcase page to render character cards.

Everything that knows about the remote page's markup lives in this module:
the DOM selectors, the locale dropdown labels, the render button and the
URL shape of the generated image. The rest of the bot only sees
``ShowcaseRenderer.render`` and its ``RenderResult``.

One browser page is shared by the whole process. ``SharedPage`` hands it
out to a single holder at a time; waiters queue in arrival order.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Pattern

from PIL import Image

from .models import CharacterReference, RenderOutcome, RenderResult
from .render_cache import RenderCache

logger = logging.getLogger("enkabot.showcase")

# The showcase uploads the finished card and fetches it back from an endpoint
# ending in a bare UUID; that response body is the image.
GENERATED_IMAGE_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
RENDER_BUTTON_SELECTOR = 'button[data-icon="image"]'
DEFAULT_VIEWPORT = {"width": 1920, "height": 1080}

PAGE_LOCALE_LABELS: Dict[str, str] = {
    "en": "English",
    "zh-CN": "简体中文",
    "zh-TW": "繁體中文",
    "ja": "日本語",
    "ko": "한국어",
    "ru": "Русский",
    "de": "Deutsch",
    "fr": "Français",
    "es": "Español",
    "pt": "Português",
    "it": "Italiano",
    "tr": "Türkçe",
    "vi": "Tiếng Việt",
    "th": "ไทย",
    "id": "Bahasa Indonesia",
}

_LOCATE_TILE_SCRIPT = """
({selectorKey, language}) => {
    const option = Array.from(document.querySelectorAll('.UI.SelectorElement'))
        .find((el) => el.innerHTML.trim() === language);
    if (!option) {
        throw new Error(`locale option "${language}" not found`);
    }
    option.click();
    document.querySelectorAll('.Dropdown-list').forEach((el) => { el.style.display = 'none'; });
    const tile = Array.from(document.getElementsByTagName('figure'))
        .find((el) => (el.style.backgroundImage || '').toLowerCase().includes(selectorKey));
    if (!tile) {
        return null;
    }
    const rect = tile.parentElement.getBoundingClientRect();
    return {left: rect.left, top: rect.top};
}
"""

_PREPARE_CARD_SCRIPT = """
(watermark) => {
    document.querySelectorAll('.Checkbox.Control.sm:not(.checked)').forEach((el) => el.click());
    const input = document.querySelector('[placeholder="Custom text"]')
        || document.querySelector('[placeholder="自定义文本"]');
    if (!input) {
        throw new Error('custom text input not found');
    }
    input.value = watermark;
    input.dispatchEvent(new Event('input'));
}
"""

PageFactory = Callable[[], Awaitable[Any]]


class CharacterNotInShowcase(Exception):
    """The player's public showcase does not display the requested character."""


class CaptureError(Exception):
    """The generated image could not be captured from the page."""


def page_locale_label(locale: str) -> str:
    return PAGE_LOCALE_LABELS.get(locale) or PAGE_LOCALE_LABELS["en"]


def ensure_png(data: bytes) -> bytes:
    """Return data as PNG bytes, re-encoding other image formats."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            if image.format == "PNG":
                return data
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue()
    except OSError as exc:
        raise CaptureError("captured response is not a decodable image") from exc


class ChromiumPageFactory:
    """Launch headless Chromium through Playwright and open one page."""

    def __init__(self, *, headless: bool = True, viewport: Optional[Dict[str, int]] = None):
        self.headless = headless
        self.viewport = viewport or DEFAULT_VIEWPORT
        self._playwright: Any = None
        self._browser: Any = None

    async def __call__(self) -> Any:
        from playwright.async_api import async_playwright

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        if self._browser is None or not self._browser.is_connected():
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            logger.info("Chromium launched (headless=%s)", self.headless)
        context = await self._browser.new_context(viewport=self.viewport)
        return await context.new_page()

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


class SharedPage:
    """Single-owner handle to the one browser page used for rendering."""

    def __init__(self, factory: PageFactory):
        self._factory = factory
        self._page: Any = None
        self._lock = asyncio.Lock()

    @property
    def in_use(self) -> bool:
        return self._lock.locked()

    async def acquire(self) -> Any:
        """Wait for the page, creating it on first use. Pair with ``release``."""
        await self._lock.acquire()
        try:
            if self._page is None or self._page.is_closed():
                self._page = await self._factory()
        except BaseException:
            self._lock.release()
            raise
        return self._page

    def release(self) -> None:
        self._lock.release()

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Any]:
        page = await self.acquire()
        try:
            yield page
        finally:
            self.release()

    async def close(self) -> None:
        """Close the page without waiting for the current holder.

        A holder stuck on the page sees its pending call fail once the page
        is gone, which releases the lock.
        """
        page, self._page = self._page, None
        if page is not None and not page.is_closed():
            await page.close()


class ResponseCapture:
    """Awaitable subscription to the first page response matching a URL pattern.

    The listener must be started before the action that triggers the
    response. It detaches itself on the first match so later responses are
    never mistaken for the result.
    """

    def __init__(self, page: Any, pattern: Pattern[str] = GENERATED_IMAGE_PATTERN):
        self._page = page
        self._pattern = pattern
        self._future: Optional[asyncio.Future] = None
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def start(self) -> None:
        self._future = asyncio.get_running_loop().create_future()
        self._page.on("response", self._on_response)
        self._page.on("close", self._on_close)
        self._attached = True

    def stop(self) -> None:
        if self._attached:
            self._page.remove_listener("response", self._on_response)
            self._page.remove_listener("close", self._on_close)
            self._attached = False

    def _on_close(self, _page: Any) -> None:
        self.stop()
        if self._future is not None and not self._future.done():
            self._future.set_exception(CaptureError("page closed before the image arrived"))

    async def _on_response(self, response: Any) -> None:
        future = self._future
        if future is None or future.done():
            return
        if not self._pattern.search(str(response.url).strip()):
            return
        self.stop()
        try:
            body = await response.body()
        except Exception as exc:  # pylint: disable=broad-except
            if not future.done():
                future.set_exception(exc)
            return
        if not future.done():
            future.set_result(body)

    async def wait(self, timeout: Optional[float] = None) -> bytes:
        if self._future is None:
            raise RuntimeError("ResponseCapture.wait called before start")
        try:
            return await asyncio.wait_for(self._future, timeout)
        finally:
            self.stop()


class NetworkIdle:
    """Wait until the page has had no request in flight for ``idle_time`` seconds.

    Only requests issued after ``start`` are counted, so a page that settled
    before an in-page update still waits for the update's own traffic.
    """

    def __init__(self, page: Any, idle_time: float = 0.1):
        self._page = page
        self._idle_time = idle_time
        self._inflight: set = set()
        self._changed = asyncio.Event()
        self._attached = False

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> None:
        self._page.on("request", self._on_request)
        self._page.on("requestfinished", self._on_done)
        self._page.on("requestfailed", self._on_done)
        self._attached = True

    def stop(self) -> None:
        if self._attached:
            self._page.remove_listener("request", self._on_request)
            self._page.remove_listener("requestfinished", self._on_done)
            self._page.remove_listener("requestfailed", self._on_done)
            self._attached = False

    def _on_request(self, request: Any) -> None:
        self._inflight.add(request)
        self._changed.set()

    def _on_done(self, request: Any) -> None:
        self._inflight.discard(request)
        self._changed.set()

    async def _settle(self) -> None:
        while True:
            self._changed.clear()
            if self._inflight:
                await self._changed.wait()
                continue
            try:
                await asyncio.wait_for(self._changed.wait(), self._idle_time)
            except asyncio.TimeoutError:
                return

    async def wait(self, timeout: Optional[float] = None) -> None:
        try:
            await asyncio.wait_for(self._settle(), timeout)
        finally:
            self.stop()


class ShowcaseRenderer:
    """Serialize render requests against the shared page and cache results.

    No timeout guards the wait for the generated image unless
    ``capture_timeout`` is set: a page that never produces it holds the page
    lock, and every queued request waits behind it.
    """

    def __init__(
        self,
        shared_page: SharedPage,
        cache: RenderCache,
        *,
        page_base_url: str,
        watermark: str,
        cache_ttl_ms: int,
        navigation_timeout_ms: int = 60_000,
        capture_timeout: Optional[float] = None,
        network_idle_time: float = 0.1,
    ):
        self.shared_page = shared_page
        self.cache = cache
        self.page_base_url = page_base_url.rstrip("/")
        self.watermark = watermark
        self.cache_ttl_ms = cache_ttl_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.capture_timeout = capture_timeout
        self.network_idle_time = network_idle_time

    async def render(self, uid: str, character: CharacterReference, locale: str) -> RenderResult:
        character_id = character.character_id
        cached = self.cache.get(uid, character_id)
        if cached is not None:
            logger.debug("Render cache hit for uid %s character %s", uid, character_id)
            return RenderResult(RenderOutcome.CACHED, character_id, image=cached)

        if self.shared_page.in_use:
            logger.debug("Showcase page busy; uid %s character %s queued", uid, character_id)
        try:
            async with self.shared_page.lease() as page:
                cached = self.cache.get(uid, character_id)
                if cached is not None:
                    return RenderResult(RenderOutcome.CACHED, character_id, image=cached)
                image = await self._run_sequence(page, uid, character, locale)
                self.cache.put(uid, character_id, image, self.cache_ttl_ms)
        except CharacterNotInShowcase:
            logger.info("Character %s not in showcase of uid %s", character_id, uid)
            return RenderResult(RenderOutcome.NOT_IN_SHOWCASE, character_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error(
                "Showcase render failed for uid %s character %s: %s",
                uid,
                character_id,
                exc,
                exc_info=True,
            )
            return RenderResult(RenderOutcome.FAILED, character_id, error=str(exc))

        logger.info("Rendered character %s for uid %s (%s bytes)", character_id, uid, len(image))
        return RenderResult(RenderOutcome.RENDERED, character_id, image=image)

    async def _run_sequence(self, page: Any, uid: str, character: CharacterReference, locale: str) -> bytes:
        await page.goto(
            f"{self.page_base_url}/u/{uid}/",
            wait_until="networkidle",
            timeout=self.navigation_timeout_ms,
        )
        point = await page.evaluate(
            _LOCATE_TILE_SCRIPT,
            {"selectorKey": character.selector_key.lower(), "language": page_locale_label(locale)},
        )
        if not point:
            raise CharacterNotInShowcase(character.character_id)

        idle = NetworkIdle(page, self.network_idle_time)
        idle.start()
        settled: Optional[asyncio.Future] = None
        try:
            await page.mouse.click(point["left"] + 1, point["top"] + 1)
            settled = asyncio.ensure_future(idle.wait(self.navigation_timeout_ms / 1000))
            await asyncio.gather(settled, page.evaluate(_PREPARE_CARD_SCRIPT, self.watermark))
        except asyncio.TimeoutError as exc:
            raise CaptureError(f"card still loading after {self.navigation_timeout_ms}ms") from exc
        finally:
            if settled is not None:
                settled.cancel()
            idle.stop()

        capture = ResponseCapture(page)
        capture.start()
        try:
            await page.click(RENDER_BUTTON_SELECTOR)
            body = await capture.wait(self.capture_timeout)
        except asyncio.TimeoutError as exc:
            raise CaptureError(f"no generated image after {self.capture_timeout}s") from exc
        finally:
            capture.stop()
        return ensure_png(body)

    async def close(self) -> None:
        await self.shared_page.close()


__all__ = [
    "CaptureError",
    "CharacterNotInShowcase",
    "ChromiumPageFactory",
    "GENERATED_IMAGE_PATTERN",
    "NetworkIdle",
    "PAGE_LOCALE_LABELS",
    "ResponseCapture",
    "SharedPage",
    "ShowcaseRenderer",
    "ensure_png",
    "page_locale_label",
]
