"""Error taxonomy shared by the cache, renderer, ingestion job and API."""


class SignageError(Exception):
    """Base class for every error raised by the signage server."""


class StoreUnavailable(SignageError):
    """The structured events file does not exist (yet)."""


class StoreCorrupt(SignageError):
    """The structured events file exists but is not a JSON array."""


class RenderFailure(SignageError):
    """The headless browser could not produce the display image."""


class IngestionError(SignageError):
    """Fetching or normalizing the calendar feed failed."""
