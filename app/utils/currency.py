"""
Exchange rate lookup for the reporting currency.

Rates are expressed as UAH per 1 USD. The National Bank of Ukraine endpoint
returns a JSON array whose first element carries the ``rate`` field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_RATE_URL = "https://bank.gov.ua/NBUStatService/v1/statdirectory/exchange?valcode=USD&json"
FALLBACK_RATE = 41.0

SOURCE_LIVE = "live"
SOURCE_FALLBACK = "fallback"

REASON_NETWORK = "network"
REASON_PARSE = "parse"
REASON_SHAPE = "shape"


class RateProviderUnavailable(RuntimeError):
    """Raised when the live rate cannot be fetched or understood."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class RateQuote:
    rate: float
    source: str = SOURCE_LIVE
    reason: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def to_dict(self) -> dict:
        return {
            "rate": self.rate,
            "source": self.source,
            "reason": self.reason,
            "fetched_at": self.fetched_at.isoformat(),
            "display": f"$1 = {format_uah(self.rate)}",
        }


@dataclass(frozen=True)
class StaticRateProvider:
    """Always returns the same rate. Used offline and in tests."""

    rate: float = FALLBACK_RATE

    def fetch(self) -> RateQuote:
        return RateQuote(rate=self.rate)


@dataclass
class NbuRateProvider:
    url: str = DEFAULT_RATE_URL
    fallback_rate: float = FALLBACK_RATE
    timeout: float = 8.0
    session: requests.Session = field(default_factory=requests.Session)

    def fetch(self) -> RateQuote:
        """Fetch the current rate. Never raises; failures produce a fallback quote."""
        try:
            rate = self._fetch_rate()
        except RateProviderUnavailable as exc:
            logger.warning(f"Using fallback rate {self.fallback_rate} ({exc.reason}): {exc}")
            return RateQuote(rate=self.fallback_rate, source=SOURCE_FALLBACK, reason=exc.reason)
        return RateQuote(rate=rate)

    def _fetch_rate(self) -> float:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise RateProviderUnavailable(REASON_NETWORK, f"rate endpoint unreachable: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise RateProviderUnavailable(REASON_PARSE, "rate endpoint returned invalid JSON") from exc

        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            raise RateProviderUnavailable(REASON_SHAPE, "rate response is not a non-empty list")

        rate = payload[0].get("rate")
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            raise RateProviderUnavailable(REASON_SHAPE, f"rate response has no usable rate: {rate!r}")
        return float(rate)

    def close(self) -> None:
        self.session.close()


def format_uah(amount: Decimal | float) -> str:
    return f"₴{Decimal(str(amount)):.2f}"


def format_usd(amount: Decimal | float) -> str:
    return f"${Decimal(str(amount)):.2f}"
