"""
Month view state: the record list for one calendar month and the edits
applied to it.

A MonthView lives for as long as the view that shows it. Leaving the view
cancels its token, and any store result that arrives afterwards is dropped
instead of mutating state that no one is looking at.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from app.models.earning import TEMP_ID_PREFIX, Earning, EarningCreate, EarningPublic, EarningUpdate
from app.utils.aggregator import (
    MONTH_NAMES,
    EarningsAggregator,
    EarningsSummary,
    month_bounds,
    month_view_window,
    sort_newest_first,
)
from app.utils.currency import RateQuote

logger = logging.getLogger(__name__)


class ConfirmationRequired(Exception):
    """Raised when a delete is attempted without the user's confirmation."""


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class MonthView:
    def __init__(
        self,
        store,
        user_id: str,
        month: int,
        year: int,
        rate: RateQuote,
        today: Optional[date] = None,
        aggregator: Optional[EarningsAggregator] = None,
    ) -> None:
        month_bounds(year, month)  # validates month
        self.store = store
        self.user_id = user_id
        self.month = month
        self.year = year
        self.rate = rate
        self.today = today or date.today()
        self.aggregator = aggregator or EarningsAggregator()
        self.token = CancellationToken()
        self.earnings: List[Earning] = []

    @classmethod
    def mount(
        cls,
        store,
        rate_provider,
        user_id: str,
        month: int,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "MonthView":
        """Fetch the rate once for this view, then load the month's records."""
        now = clock()
        view = cls(
            store,
            user_id=user_id,
            month=month,
            year=now.year,
            rate=rate_provider.fetch(),
            today=now.date(),
        )
        view.reload()
        return view

    def __enter__(self) -> "MonthView":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.token.cancel()

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    def _alive(self, operation: str) -> bool:
        if self.token.cancelled:
            logger.debug(f"Dropping late {operation} result for {self.year}-{self.month:02d}")
            return False
        return True

    def reload(self) -> None:
        records = self.store.list_earnings(self.user_id)
        if not self._alive("reload"):
            return
        if records is None:
            logger.error(f"Could not load earnings for user {self.user_id}")
            records = []
        self.earnings = self.aggregator.month_records(records, self.year, self.month)

    def create(self, data: EarningCreate) -> Optional[Earning]:
        """
        Show the new record immediately under a temporary id, then swap in the
        stored record by correlation id once the insert succeeds.
        """
        start, end = month_bounds(self.year, self.month)
        if not start <= data.date <= end:
            raise ValueError(f"Date must fall within {self.month_name} {self.year}")

        correlation_id = uuid4().hex
        temp_id = f"{TEMP_ID_PREFIX}{correlation_id}"
        placeholder = Earning(
            earning_id=temp_id,
            user_id=self.user_id,
            correlation_id=correlation_id,
            **data.model_dump(),
        )
        self.earnings = [placeholder] + self.earnings

        confirmed = self.store.insert_earning(self.user_id, data)
        if not self._alive("create"):
            return confirmed

        if confirmed is None:
            logger.error(f"Failed to add earning for user {self.user_id}; rolling back {temp_id}")
            self.earnings = [e for e in self.earnings if e.earning_id != temp_id]
            return None

        confirmed.correlation_id = correlation_id
        self.earnings = sort_newest_first(
            confirmed if e.correlation_id == correlation_id else e for e in self.earnings
        )
        return confirmed

    def update(self, earning_id: str, data: EarningUpdate) -> bool:
        ok = self.store.update_earning(self.user_id, earning_id, data)
        if not self._alive("update"):
            return ok
        if not ok:
            logger.error(f"Failed to update earning {earning_id}")
            return False

        fields = data.model_dump()
        self.earnings = sort_newest_first(
            e.model_copy(update=fields) if e.earning_id == earning_id else e for e in self.earnings
        )
        return True

    def delete(self, earning_id: str, confirmed: bool) -> bool:
        if not confirmed:
            raise ConfirmationRequired("Deletion requires confirmation")

        ok = self.store.delete_earning(self.user_id, earning_id)
        if not self._alive("delete"):
            return ok
        if not ok:
            logger.error(f"Failed to delete earning {earning_id}")
            return False

        self.earnings = [e for e in self.earnings if e.earning_id != earning_id]
        return True

    def summary(self) -> EarningsSummary:
        return self.aggregator.summarize(self.earnings, self.rate.rate)

    def render(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "month_name": self.month_name,
            "year": self.year,
            "earnings": [EarningPublic.from_earning(e).model_dump(mode="json") for e in self.earnings],
            "summary": self.summary().to_dict(),
            "rate": self.rate.to_dict(),
            "window": month_view_window(self.year, self.month, self.today).to_dict(),
        }
