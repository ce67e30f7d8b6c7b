"""Unit tests for the e-ink image renderer."""
import asyncio
from unittest.mock import patch

import pytest
from playwright.async_api import Error as PlaywrightError

from conftest import ROOM, TZ, event_record, local
from signage.exceptions import RenderFailure
from signage.models.schemas import Event
from signage.services.renderer import NO_EVENTS_TODAY, EventImageRenderer, build_html


class TestBuildHtml:
    """Page content for both layouts."""

    def test_occupied_room(self):
        event = Event.model_validate(event_record("Anatomia", local(9), local(10, 30)))

        page = build_html(event, ROOM, None, TZ)

        assert "09:00 - 10:30" in page
        assert "Anatomia" in page
        assert "Dra. Marta Puig" in page
        assert "Sala Lliure" not in page

    def test_occupied_room_without_title(self):
        event = Event.model_validate({"startTime": local(9).isoformat(), "endTime": local(10).isoformat()})

        assert "No Title" in build_html(event, ROOM, None, TZ)

    def test_free_room_with_next_class(self):
        next_event = Event.model_validate(event_record("Histologia", local(11), local(12)))

        page = build_html(None, ROOM, next_event, TZ)

        assert "Sala Lliure" in page
        assert ROOM in page
        assert "La pròxima classe és <b>Histologia</b>" in page
        assert "amb <b>Dra. Marta Puig</b>" in page
        assert "a les <b>11:00</b>" in page

    def test_free_room_without_next_class(self):
        page = build_html(None, ROOM, None, TZ)

        assert NO_EVENTS_TODAY in page

    def test_text_is_escaped(self):
        event = Event.model_validate(event_record("<script>x</script>", local(9), local(10)))

        page = build_html(event, ROOM, None, TZ)

        assert "<script>" not in page
        assert "&lt;script&gt;" in page


class TestRender:
    """Browser failures become RenderFailure."""

    def test_returns_png_bytes(self):
        renderer = EventImageRenderer(TZ)

        with patch.object(EventImageRenderer, "_screenshot", return_value=b"png") as screenshot:
            image = asyncio.run(renderer.render(None, ROOM, None))

        assert image == b"png"
        assert "Sala Lliure" in screenshot.call_args.args[0]

    def test_playwright_error(self):
        renderer = EventImageRenderer(TZ)

        with patch.object(EventImageRenderer, "_screenshot", side_effect=PlaywrightError("crashed")):
            with pytest.raises(RenderFailure):
                asyncio.run(renderer.render(None, ROOM, None))

    def test_timeout(self):
        renderer = EventImageRenderer(TZ, timeout_seconds=0.01)

        async def slow(self, content):
            await asyncio.sleep(1)

        with patch.object(EventImageRenderer, "_screenshot", slow):
            with pytest.raises(RenderFailure):
                asyncio.run(renderer.render(None, ROOM, None))

    def test_close_without_browser(self):
        asyncio.run(EventImageRenderer(TZ).close())


class TestLenientFields:
    """Odd title and organizer shapes still render."""

    def test_next_class_with_numeric_title_and_organizer_list(self):
        record = event_record("x", local(11), local(12), organizer=[{"name": "A"}, {"name": "B"}])
        record["title"] = 101
        next_event = Event.model_validate(record)

        page = build_html(None, ROOM, next_event, TZ)

        assert "La pròxima classe és <b>101</b>" in page
        assert "amb <b>A, B</b>" in page
