"""Converter settings and partial-override merging."""

import logging
import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://free.currconv.com/api/v7/convert?compact=y&q="
DEFAULT_STORE_KEY = "RATEKEEPER_CACHED_RATES"

_FALSY = {"0", "false", "no", "off"}


class ConverterSettings(BaseModel):
    """
    Settings for a CurrencyConverter.

    ``validity_period`` accepts a timedelta or a number of seconds.
    ``fetch_timeout`` bounds each remote fetch in seconds; None disables it.
    """

    model_config = ConfigDict(frozen=True)

    validity_period: timedelta = timedelta(hours=24)
    persistence_enabled: bool = True
    store_key_name: str = DEFAULT_STORE_KEY
    remote_endpoint: str = DEFAULT_ENDPOINT
    fetch_timeout: float | None = 10.0
    api_key: str | None = None

    @field_validator("validity_period")
    @classmethod
    def check_validity(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("validity_period must not be negative")
        return v

    @field_validator("fetch_timeout")
    @classmethod
    def check_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("fetch_timeout must be positive")
        return v

    @classmethod
    def from_env(cls) -> "ConverterSettings":
        """Build settings from RATEKEEPER_* environment variables."""
        values: dict[str, Any] = {}
        endpoint = os.environ.get("RATEKEEPER_ENDPOINT")
        if endpoint:
            values["remote_endpoint"] = endpoint
        hours = os.environ.get("RATEKEEPER_VALIDITY_HOURS")
        if hours:
            values["validity_period"] = timedelta(hours=float(hours))
        persist = os.environ.get("RATEKEEPER_PERSIST")
        if persist:
            values["persistence_enabled"] = persist.strip().lower() not in _FALSY
        api_key = os.environ.get("RATEKEEPER_API_KEY")
        if api_key:
            values["api_key"] = api_key
        return cls(**values)


def merge_settings(current: ConverterSettings, options: Any) -> ConverterSettings:
    """
    Merge a partial mapping of overrides into ``current``.

    Non-mapping input is ignored and ``current`` is returned unchanged.
    Unknown keys are dropped; invalid values raise pydantic.ValidationError.

    Args:
        current: Active settings
        options: Mapping of field name to new value

    Returns:
        New settings instance with the overrides applied
    """
    if not isinstance(options, Mapping):
        logger.debug("Ignoring non-mapping config override: %r", options)
        return current

    known = {k: v for k, v in options.items() if k in ConverterSettings.model_fields}
    if not known:
        return current
    return ConverterSettings.model_validate({**current.model_dump(), **known})
