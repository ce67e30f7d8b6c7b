"""
Event Image Renderer
====================
Builds the e-ink page (854×480) as HTML and screenshots it with a headless
Chromium driven by Playwright.

One browser is launched lazily and shared by every request; each render
gets its own page, closed afterwards.

Two layouts:
  occupied room — "HH:MM - HH:MM", event title, organizer
  free room     — "Sala Lliure", room code, next class today (if any)
"""

import asyncio
import html
import logging
from datetime import datetime, tzinfo
from typing import Optional

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from signage.exceptions import RenderFailure
from signage.models.schemas import Event
from signage.services.event_selector import as_aware

logger = logging.getLogger(__name__)

VIEWPORT_WIDTH = 854
VIEWPORT_HEIGHT = 480

LOGO_URL = (
    "https://upload.wikimedia.org/wikipedia/commons/thumb/e/e0/"
    "Universitat_de_Val%C3%A8ncia_logo.svg/1280px-Universitat_de_Val%C3%A8ncia_logo.svg.png"
)

BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

STYLE = """
<style>
    body {
        width: 854px;
        height: 480px;
        margin: 0;
        display: flex;
        flex-direction: column;
        align-items: center;
        justify-content: space-between;
        font-family: eurostile, sans-serif;
        background-color: #ffffff;
    }
    .event-container { margin: 30px; width: calc(100% - 60px); }
    .event-title { font-size: 65px; font-weight: 700; margin-bottom: 18px; color: #1a1a1a; }
    .event-time { font-size: 45px; margin-bottom: 16px; color: #333; }
    .event-organizer { font-size: 40px; color: #555; }
    .logo-container {
        width: 100%;
        display: flex;
        justify-content: flex-start;
        align-items: center;
        padding-top: 20px;
        padding-left: 40px;
        background-color: #e3e0e0ff;
    }
</style>
"""

NO_EVENTS_TODAY = "Hui no hi han pròxims esdeveniments a aquesta sala"


# ──────────────────────────────────────────────
# HTML
# ──────────────────────────────────────────────

def format_time(value: Optional[datetime], tz: tzinfo) -> str:
    if value is None:
        return "Unknown"
    return as_aware(value, tz).astimezone(tz).strftime("%H:%M")


def _next_class_message(next_event: Optional[Event], tz: tzinfo) -> str:
    if next_event is None:
        return NO_EVENTS_TODAY

    title = html.escape(next_event.title_or("Sense Títol"))
    parts = [f"La pròxima classe és <b>{title}</b>"]
    if next_event.organizer_name:
        parts.append(f"amb <b>{html.escape(next_event.organizer_name)}</b>")
    if next_event.start_time is not None:
        parts.append(f"a les <b>{format_time(next_event.start_time, tz)}</b>")
    return " ".join(parts)


def _page(body: str) -> str:
    return f"""
<html>
<head>{STYLE}</head>
<body>
    <div class="logo-container">
        <img src="{LOGO_URL}" alt="Logo" style="width:200px; margin-bottom:20px;">
    </div>
    <div class="event-container">
{body}
    </div>
</body>
</html>
"""


def build_html(event: Optional[Event], room: str, next_event: Optional[Event], tz: tzinfo) -> str:
    if event is None:
        room_name = html.escape(room or "Unknown Room")
        return _page(f"""
        <div class="event-time">Sala Lliure</div>
        <div class="event-title" style="font-size: 68px;">{room_name}</div>
        <div class="event-organizer" style="font-size:36px; margin-top:12px;">{_next_class_message(next_event, tz)}</div>
""")

    return _page(f"""
        <div class="event-time">{format_time(event.start_time, tz)} - {format_time(event.end_time, tz)}</div>
        <div class="event-title">{html.escape(event.display_title)}</div>
        <div class="event-organizer">{html.escape(event.organizer_name)}</div>
""")


# ──────────────────────────────────────────────
# Browser
# ──────────────────────────────────────────────

class EventImageRenderer:
    def __init__(self, tz: tzinfo, timeout_seconds: float = 30):
        self.tz = tz
        self.timeout_seconds = timeout_seconds
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()

    async def _get_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is None or not self._browser.is_connected():
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(args=BROWSER_ARGS)
                logger.info("Headless browser launched.")
            return self._browser

    async def render(self, event: Optional[Event], room: str, next_event: Optional[Event]) -> bytes:
        """Return the display image for `room` as PNG bytes."""
        content = build_html(event, room, next_event, self.tz)
        try:
            return await asyncio.wait_for(self._screenshot(content), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RenderFailure(f"Rendering timed out after {self.timeout_seconds}s") from e
        except PlaywrightError as e:
            raise RenderFailure(f"Rendering failed: {e}") from e

    async def _screenshot(self, content: str) -> bytes:
        browser = await self._get_browser()
        page = await browser.new_page(
            viewport={"width": VIEWPORT_WIDTH, "height": VIEWPORT_HEIGHT},
            device_scale_factor=1,
        )
        try:
            await page.set_content(
                content,
                wait_until="networkidle",
                timeout=self.timeout_seconds * 1000,
            )
            return await page.screenshot(type="png")
        finally:
            await page.close()

    async def close(self):
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Headless browser closed.")
