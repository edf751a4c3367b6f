"""Rate lookup: fresh cache hit, coalesced fetch, stale fallback."""

import asyncio
import logging
from decimal import Decimal

from .cache import RateCache
from .errors import NoDataAvailableError, RemoteFetchError
from .inflight import InFlightRegistry
from .models import RateQuote, pair_key, to_decimal
from .source import RemoteQuoteSource

logger = logging.getLogger(__name__)


class RateResolver:
    """Resolves pair rates through the cache, the in-flight registry and the remote source."""

    def __init__(
        self,
        cache: RateCache,
        source: RemoteQuoteSource,
        registry: InFlightRegistry | None = None,
    ):
        self.cache = cache
        self.source = source
        self.registry = registry or InFlightRegistry()

    async def _fetch_and_store(self, key: str) -> Decimal:
        """The shared operation behind a key: one remote fetch, one cache write."""
        timeout = self.cache.settings.fetch_timeout
        try:
            raw = await asyncio.wait_for(self.source.fetch(key), timeout)
        except RemoteFetchError:
            raise
        except asyncio.TimeoutError as e:
            raise RemoteFetchError(
                f"Timed out after {timeout}s fetching exchange rate {key}", key=key, cause=e
            ) from e
        except Exception as e:
            raise RemoteFetchError(
                f"Failed to fetch exchange rate {key}: {e}", key=key, cause=e
            ) from e

        try:
            rate = to_decimal(raw)
        except ValueError as e:
            raise RemoteFetchError(f"Invalid rate for {key}: {raw!r}", key=key, cause=e) from e
        if not rate.is_finite() or rate <= 0:
            raise RemoteFetchError(f"Non-positive rate for {key}: {raw}", key=key)

        self.cache.write(key, rate)
        return rate

    async def fetch_quote(self, from_ccy: str, to_ccy: str) -> Decimal:
        """
        Fetch a rate from the remote source, bypassing the cache read.

        Concurrent calls for the same pair share one fetch; a successful
        result is written through to the cache.

        Raises:
            RemoteFetchError: If the remote fetch fails
        """
        key = pair_key(from_ccy, to_ccy)
        return await self.registry.join(key, lambda: self._fetch_and_store(key))

    async def get_rate(self, from_ccy: str, to_ccy: str) -> RateQuote:
        """
        Get the rate for a currency pair.

        A fresh cached rate is returned without a network call. Otherwise
        the rate is fetched; if that fails and any cached rate exists, the
        cached rate is returned with ``expired=True``.

        Args:
            from_ccy: Source currency code (e.g., "USD")
            to_ccy: Target currency code (e.g., "EUR")

        Returns:
            RateQuote with the rate and the expired flag

        Raises:
            NoDataAvailableError: If the fetch fails and nothing is cached
        """
        key = pair_key(from_ccy, to_ccy)

        if self.cache.is_fresh(key):
            logger.debug("Cache hit for %s", key)
            return RateQuote(rate=self.cache.read(key).value, expired=False)

        try:
            rate = await self.fetch_quote(from_ccy, to_ccy)
        except RemoteFetchError as e:
            stale = self.cache.read(key)
            if stale is None:
                underlying = e.cause or e
                raise NoDataAvailableError(
                    f"No cached rate for {key}; {type(underlying).__name__}: {e}",
                    key=key,
                    cause=e,
                ) from e
            logger.warning("Serving expired rate for %s: %s", key, e)
            return RateQuote(rate=stale.value, expired=True)

        return RateQuote(rate=rate, expired=False)
