"""Pydantic models for cached rates and conversion results."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


def pair_key(from_ccy: str | None, to_ccy: str | None) -> str:
    """
    Build the cache/query key for a currency pair.

    Codes are used verbatim; missing codes become empty strings, so
    ``pair_key("", "")`` is ``"_"``.
    """
    return f"{from_ccy or ''}_{to_ccy or ''}"


def to_decimal(v: Any) -> Decimal:
    """Coerce to Decimal, going through str for floats. Raises ValueError on junk."""
    if isinstance(v, Decimal):
        return v
    if isinstance(v, float):
        return Decimal(str(v))
    try:
        return Decimal(v)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a decimal: {v!r}") from e


class RateRecord(BaseModel):
    """A cached rate and the instant it was fetched."""

    model_config = ConfigDict(frozen=True)

    value: Decimal
    timestamp: datetime

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("value")
    @classmethod
    def check_positive(cls, v: Decimal) -> Decimal:
        if not v > 0:
            raise ValueError("rate must be positive")
        return v

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        # Records read back from storage arrive as text; pydantic parses them,
        # and naive values are taken to be UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_serializer("value")
    def serialize_value(self, v: Decimal) -> str:
        return str(v)

    @field_serializer("timestamp")
    def serialize_timestamp(self, v: datetime) -> str:
        return v.isoformat()

    def age(self, now: datetime) -> float:
        """Seconds elapsed since the record was written."""
        return (now - self.timestamp).total_seconds()


class RateQuote(BaseModel):
    """Result of a rate lookup. ``expired`` is set only on stale fallback."""

    rate: Decimal
    expired: bool = False

    @field_validator("rate", mode="before")
    @classmethod
    def coerce_rate(cls, v: Any) -> Decimal:
        return to_decimal(v)


class Conversion(BaseModel):
    """An amount converted with a looked-up rate."""

    value: Decimal
    rate: Decimal
    expired: bool = False

    @field_validator("value", "rate", mode="before")
    @classmethod
    def coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)
