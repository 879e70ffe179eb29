"""Two-branch result for provider-backed computations: exact, or degraded via a fallback."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar

from cotravel.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T
    degraded: bool = False
    reason: str | None = None

    @classmethod
    def exact(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> Outcome[T]:
        """Result produced by a documented fallback after a provider failed."""
        return cls(value=value, degraded=True, reason=reason)


async def attempt(call: Awaitable[T], fallback: T, *, timeout: float, label: str) -> Outcome[T]:
    """Await a single provider call (no retry). Timeout or any provider exception yields the fallback."""
    try:
        value = await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs, using fallback", label, timeout)
        return Outcome.fallback(fallback, f"{label}: timeout")
    except ProviderError as e:
        logger.warning("%s failed (%s), using fallback", label, e)
        return Outcome.fallback(fallback, f"{label}: {e}")
    except Exception as e:
        # a conforming provider may still fail in ways it didn't wrap
        logger.warning("%s failed unexpectedly, using fallback", label, exc_info=True)
        return Outcome.fallback(fallback, f"{label}: {e!r}")
    return Outcome.exact(value)


async def bounded(call: Awaitable[T], *, timeout: float, label: str) -> T:
    """Await a provider call on a path with no fallback; a timeout becomes ProviderError."""
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(label, f"timed out after {timeout:.1f}s") from e
