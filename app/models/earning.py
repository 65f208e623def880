from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TEMP_ID_PREFIX = "temp-"


class Currency(str, Enum):
    USD = "USD"
    UAH = "UAH"


def _normalize_date(value):
    """Accept a plain date or a timezone-aware datetime and return a naive datetime."""
    if isinstance(value, str) and len(value) == 10:
        value = date.fromisoformat(value)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EarningFields(BaseModel):
    amount: Decimal = Field(ge=0)
    currency: Currency
    task: str = Field(min_length=1)
    date: datetime

    @field_validator("task", mode="before")
    @classmethod
    def strip_task(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return _normalize_date(value)

    @field_validator("date")
    @classmethod
    def make_naive(cls, value: datetime) -> datetime:
        # numeric timestamps are parsed as UTC-aware datetimes
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class EarningCreate(EarningFields):
    pass


class EarningUpdate(EarningFields):
    # an update overwrites all four fields
    pass


class Earning(EarningFields):
    earning_id: str
    user_id: str
    correlation_id: Optional[str] = Field(default=None, exclude=True)

    @property
    def pending(self) -> bool:
        return self.earning_id.startswith(TEMP_ID_PREFIX)

    def to_item(self) -> dict:
        """Shape stored in the earnings table."""
        return {
            "user_id": self.user_id,
            "earning_id": self.earning_id,
            "amount": self.amount,
            "currency": self.currency.value,
            "task": self.task,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_item(cls, item: dict) -> "Earning":
        return cls(
            earning_id=item["earning_id"],
            user_id=item["user_id"],
            amount=Decimal(str(item.get("amount", 0))),
            currency=item["currency"],
            task=item.get("task", ""),
            date=item["date"],
        )


class EarningPublic(BaseModel):
    earning_id: str
    amount: Decimal
    currency: Currency
    task: str
    date: datetime
    pending: bool = False

    @classmethod
    def from_earning(cls, earning: Earning) -> "EarningPublic":
        return cls(
            earning_id=earning.earning_id,
            amount=earning.amount,
            currency=earning.currency,
            task=earning.task,
            date=earning.date,
            pending=earning.pending,
        )
