"""
Circuit breakers for external providers.
Uses pybreaker so a provider that keeps failing is short-circuited instead of
holding every conversation on a network timeout.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError

from src.common.exceptions import HushPayError, ProviderError

logger = logging.getLogger(__name__)

_breakers: dict[str, CircuitBreaker] = {}


def get_provider_breaker(name: str) -> CircuitBreaker:
    breaker = _breakers.get(name)
    if breaker is None:
        breaker = CircuitBreaker(
            fail_max=5,  # open after 5 consecutive failures
            reset_timeout=60,  # stay open for 60 seconds
            exclude=[HushPayError],
            name=f"{name}CircuitBreaker",
        )
        _breakers[name] = breaker
    return breaker


@contextmanager
def provider_call(name: str) -> Iterator[None]:
    """
    Wraps a provider call: counts failures on the provider's breaker and turns
    transport failures into ``ProviderError``. Usable around ``await``.
    """
    breaker = get_provider_breaker(name)
    try:
        with breaker.calling():
            yield
    except CircuitBreakerError as e:
        logger.warning(f"Circuit breaker open for {name}: {e}")
        raise ProviderError(f"{name} is temporarily unavailable", provider=name) from e
    except httpx.HTTPStatusError as e:
        logger.error(f"{name} returned HTTP {e.response.status_code}: {e.response.text[:200]}")
        raise ProviderError(_error_detail(e.response), provider=name) from e
    except httpx.HTTPError as e:
        logger.error(f"{name} request failed: {e}")
        raise ProviderError(f"{name} network error", provider=name) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"


def reset_breakers() -> None:
    """Clear breaker state. Used in tests."""
    _breakers.clear()
