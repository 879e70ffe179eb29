"""Domain errors. API layer maps them to HTTP status codes (see main.py)."""


class CotravelError(Exception):
    """Base class for errors raised by the matching engine."""


class ValidationError(CotravelError):
    """Required input is missing or malformed. Never retried."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class NotFoundError(CotravelError):
    """A referenced entity (e.g. the companion's travel intent) does not exist."""


class ProviderError(CotravelError):
    """An external provider call failed: timeout, transport error, bad status or malformed payload."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
