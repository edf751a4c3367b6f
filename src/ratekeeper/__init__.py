"""Ratekeeper - currency rate cache with in-flight coalescing and stale fallback."""

__version__ = "0.1.0"

from .config import ConverterSettings
from .converter import ConversionService, CurrencyConverter
from .errors import NoDataAvailableError, RateKeeperError, RemoteFetchError
from .models import Conversion, RateQuote, RateRecord, pair_key

__all__ = [
    "__version__",
    "Conversion",
    "ConversionService",
    "ConverterSettings",
    "CurrencyConverter",
    "NoDataAvailableError",
    "RateKeeperError",
    "RateQuote",
    "RateRecord",
    "RemoteFetchError",
    "pair_key",
]
