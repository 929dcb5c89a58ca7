"""Fixtures and fakes shared by the EnkaBot tests."""

from __future__ import annotations

import asyncio
import io
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image

from enkabot.models import ReferenceData
from enkabot.reference_data import build_reference_data

CAPTURE_URL = "https://enka.network/api/generate/8f14e45f-ceea-467e-bd7e-4c0e8654dbb1"
LATER_CAPTURE_URL = "https://enka.network/api/generate/0b1f6c1e-3c1d-4b8f-9d7a-2f1e0c9a7b55"

CHARACTERS: Dict[str, Dict[str, Any]] = {
    "10000001": {"SideIconName": "UI_AvatarIcon_Side_Kate", "NameTextMapHash": 111, "Element": "Wind"},
    "10000002": {"SideIconName": "UI_AvatarIcon_Side_Ayaka", "NameTextMapHash": 222, "Element": "Ice"},
    "10000003": {"SideIconName": "UI_AvatarIcon_Side_Qin", "NameTextMapHash": 333, "Element": "Wind"},
    "10000005-504": {"SideIconName": "UI_AvatarIcon_Side_PlayerBoy", "NameTextMapHash": 444},
}

LOC: Dict[str, Dict[str, str]] = {
    "en": {"111": "Test Character", "222": "Kamisato Ayaka", "333": "Jean", "444": "Traveler"},
    "zh-CN": {"111": "测试角色", "222": "神里绫华", "333": "琴", "444": "旅行者"},
}

NAMES: Dict[str, Dict[str, List[str]]] = {
    "10000001": {"en": ["Test Character"], "zh-CN": ["测试角色"]},
    "10000002": {"en": ["Kamisato Ayaka"], "zh-CN": ["神里绫华"]},
    "10000003": {"en": ["Jean"], "zh-CN": ["琴"]},
}


def make_reference() -> ReferenceData:
    return build_reference_data(NAMES, CHARACTERS)


def png_bytes(color: Tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


def jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (10, 20, 30)).save(buffer, format="JPEG")
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, url: str, body: bytes):
        self.url = url
        self._body = body

    async def body(self) -> bytes:
        return self._body


class FakeMouse:
    def __init__(self, page: Optional["FakePage"] = None) -> None:
        self.page = page
        self.clicks: List[Tuple[float, float]] = []

    async def click(self, x: float, y: float) -> None:
        self.clicks.append((x, y))
        if self.page is not None:
            await self.page.load_card()


class FakePage:
    """Stand-in for a Playwright page driving the showcase UI."""

    def __init__(
        self,
        *,
        tile_point: Optional[Dict[str, float]] = None,
        responses: Optional[Sequence[Tuple[str, bytes]]] = None,
        fail_on: Optional[str] = None,
        gate: Optional[asyncio.Event] = None,
        hold_card: bool = False,
    ):
        self.tile_point = {"left": 100.0, "top": 200.0} if tile_point is None else tile_point
        self.responses = list(responses if responses is not None else [(CAPTURE_URL, png_bytes())])
        self.fail_on = fail_on
        self.gate = gate
        self.hold_card = hold_card
        self.pending_requests: List[object] = []
        self.mouse = FakeMouse(self)
        self.listeners: Dict[str, List[Any]] = {}
        self.visits: List[str] = []
        self.goto_kwargs: List[Dict[str, Any]] = []
        self.locate_args: List[Dict[str, str]] = []
        self.watermarks: List[str] = []
        self.clicked_selectors: List[str] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True
        await self.emit("close", self)

    def on(self, event: str, handler: Any) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Any) -> None:
        self.listeners[event].remove(handler)

    async def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners.get(event, [])):
            result = handler(payload)
            if asyncio.iscoroutine(result):
                await result

    async def goto(self, url: str, **kwargs: Any) -> None:
        # A visit counts as active until its render button click completes.
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.visits.append(url)
        self.goto_kwargs.append(kwargs)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if self.fail_on == "goto":
            self.active -= 1
            raise TimeoutError("Timeout 60000ms exceeded.")

    async def load_card(self) -> None:
        request = object()
        self.pending_requests.append(request)
        await self.emit("request", request)
        if not self.hold_card:
            await self.finish_card_loading()

    async def finish_card_loading(self) -> None:
        while self.pending_requests:
            await self.emit("requestfinished", self.pending_requests.pop(0))

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if "selectorKey" in script:
            self.locate_args.append(arg)
            if self.fail_on == "locate":
                raise RuntimeError('locale option "English" not found')
            return self.tile_point or None
        if self.fail_on == "prepare":
            raise RuntimeError("custom text input not found")
        self.watermarks.append(arg)
        return None

    async def click(self, selector: str) -> None:
        self.clicked_selectors.append(selector)
        await asyncio.sleep(0)
        for url, body in self.responses:
            await self.emit("response", FakeResponse(url, body))
        self.active -= 1


class FakePageFactory:
    def __init__(self, page: FakePage):
        self.page = page
        self.calls = 0

    async def __call__(self) -> FakePage:
        self.calls += 1
        return self.page
