"""Remote rate sources."""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Protocol

import requests

from .config import ConverterSettings
from .errors import RemoteFetchError

logger = logging.getLogger(__name__)


class RemoteQuoteSource(Protocol):
    """Anything that can fetch the current rate for a pair key."""

    async def fetch(self, key: str) -> Decimal:
        """Return the rate for ``key`` or raise RemoteFetchError."""
        ...


class HttpQuoteSource:
    """
    Rates over HTTP from a currencyconverterapi-style endpoint.

    The request URL is ``remote_endpoint + key`` and the response is expected
    in ``compact=y`` form: ``{"USD_EUR": {"val": 0.92}}``.
    """

    def __init__(self, settings: ConverterSettings | None = None):
        self.settings = settings or ConverterSettings()

    def configure(self, settings: ConverterSettings) -> None:
        """Use new settings for fetches started from now on."""
        self.settings = settings

    def url_for(self, key: str) -> str:
        url = self.settings.remote_endpoint + key
        if self.settings.api_key:
            url += f"&apiKey={self.settings.api_key}"
        return url

    async def fetch(self, key: str) -> Decimal:
        url = self.url_for(key)
        timeout = self.settings.fetch_timeout
        logger.info("Fetching rate %s", key)
        return await asyncio.to_thread(self._get_rate, url, key, timeout)

    @staticmethod
    def _get_rate(url: str, key: str, timeout: float | None) -> Decimal:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()

            data = response.json()

            if not isinstance(data, dict) or key not in data:
                raise RemoteFetchError(f"Pair {key} not found in response", key=key)

            entry = data[key]
            raw = entry["val"] if isinstance(entry, dict) else entry
            rate = Decimal(str(raw))

            if not rate.is_finite() or rate <= 0:
                raise RemoteFetchError(f"Non-positive rate for {key}: {raw}", key=key)

            return rate

        except requests.RequestException as e:
            raise RemoteFetchError(
                f"Failed to fetch exchange rate {key}: {e}", key=key, cause=e
            ) from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise RemoteFetchError(
                f"Invalid response from exchange rate API: {e}", key=key, cause=e
            ) from e
