from __future__ import annotations

from typing import Iterable, Optional


class InvestigationError(Exception):
    pass


class ValidationError(InvestigationError):
    """Malformed address/hash or unsupported network. Never retry unmodified."""


class NotFoundError(InvestigationError):
    pass


class ProviderError(InvestigationError):
    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.provider = provider


class RateLimitError(ProviderError):
    pass


class PartialDataError(InvestigationError):
    """A provider record lacked optional fields; they were defaulted."""

    def __init__(self, provider: str, fields: Iterable[str]) -> None:
        self.provider = provider
        self.fields = tuple(fields)
        super().__init__(f"{provider} omitted fields: {', '.join(self.fields)}")
