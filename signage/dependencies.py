"""Request-scoped accessors for the objects the app creates at startup."""

from fastapi import Request

from signage.config import Settings
from signage.services.event_cache import EventCache
from signage.services.renderer import EventImageRenderer


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_event_cache(request: Request) -> EventCache:
    return request.app.state.event_cache


def get_renderer(request: Request) -> EventImageRenderer:
    return request.app.state.renderer
