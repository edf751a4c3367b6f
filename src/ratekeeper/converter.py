"""Amount conversion and the CurrencyConverter entry point."""

import logging
from decimal import Decimal
from typing import Any

from .cache import Clock, RateCache
from .config import ConverterSettings, merge_settings
from .inflight import InFlightRegistry
from .models import Conversion, RateQuote, RateRecord, to_decimal
from .resolver import RateResolver
from .source import HttpQuoteSource, RemoteQuoteSource
from .store import JsonFileStore, PersistentStore

logger = logging.getLogger(__name__)


class ConversionService:
    """Applies resolved rates to amounts."""

    def __init__(self, resolver: RateResolver):
        self.resolver = resolver

    async def convert(self, amount: Decimal, from_ccy: str, to_ccy: str) -> Conversion:
        """
        Convert an amount from one currency to another.

        Args:
            amount: Amount to convert
            from_ccy: Source currency code
            to_ccy: Target currency code

        Returns:
            Conversion with the unrounded value, the rate and the expired flag
        """
        quote = await self.resolver.get_rate(from_ccy, to_ccy)
        return Conversion(
            value=to_decimal(amount) * quote.rate,
            rate=quote.rate,
            expired=quote.expired,
        )


class CurrencyConverter:
    """
    Currency converter with a cached, coalesced, stale-tolerant rate lookup.

    Construct one per process or per logical client; it owns the cache and
    the in-flight table. Settings can be changed with ``config``; fetches
    already in flight finish with the settings they started with.
    """

    def __init__(
        self,
        settings: ConverterSettings | None = None,
        *,
        store: PersistentStore | None = None,
        source: RemoteQuoteSource | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize CurrencyConverter.

        Args:
            settings: Converter settings (default: ConverterSettings())
            store: Persistent mirror of the cache (default: JsonFileStore())
            source: Remote rate source (default: HttpQuoteSource over settings)
            clock: Returns the current time; for tests
        """
        self.settings = settings or ConverterSettings()
        if store is None:
            store = JsonFileStore()
        if source is None:
            source = HttpQuoteSource(self.settings)
        self.source = source

        self.cache = RateCache(self.settings, store, clock)
        self.registry = InFlightRegistry()
        self.resolver = RateResolver(self.cache, source, self.registry)
        self.service = ConversionService(self.resolver)

    def config(self, options: Any) -> ConverterSettings:
        """
        Merge partial settings into the active ones.

        Non-mapping input is ignored. The cache is not reloaded from the store.

        Returns:
            The settings now in effect
        """
        settings = merge_settings(self.settings, options)
        if settings is self.settings:
            return settings

        self.settings = settings
        self.cache.settings = settings
        if isinstance(self.source, HttpQuoteSource):
            self.source.configure(settings)
        logger.debug("Converter settings updated: %s", settings)
        return settings

    async def get_rate(self, from_ccy: str, to_ccy: str) -> RateQuote:
        """Rate for a pair; see RateResolver.get_rate."""
        return await self.resolver.get_rate(from_ccy, to_ccy)

    async def fetch_quote(self, from_ccy: str, to_ccy: str) -> Decimal:
        """Remote rate for a pair; see RateResolver.fetch_quote."""
        return await self.resolver.fetch_quote(from_ccy, to_ccy)

    async def convert_amount(self, amount: Decimal, from_ccy: str, to_ccy: str) -> Conversion:
        return await self.service.convert(amount, from_ccy, to_ccy)

    def cached_rates(self) -> dict[str, RateRecord]:
        return self.cache.records()

    def clear_cache(self) -> None:
        self.cache.clear()
