from datetime import date
from typing import Any, Dict, List, NamedTuple, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field


class MonthBucket(NamedTuple):
    """Calendar month used as an aggregation key, ordered by (year, month)"""

    year: int
    month: int

    @classmethod
    def from_date(cls, value: date) -> "MonthBucket":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, key: str) -> "MonthBucket":
        """Parse a "MM-YYYY" key (a non-padded month such as "6-2022" is accepted too)"""
        month_str, _, year_str = key.strip().partition("-")
        month, year = int(month_str), int(year_str)
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month in bucket key '{key}'")
        return cls(year, month)

    @property
    def key(self) -> str:
        return f"{self.month:02d}-{self.year}"

    def next(self) -> "MonthBucket":
        return MonthBucket.from_date(date(self.year, self.month, 1) + relativedelta(months=1))


def compare_month_keys(first: str, second: str) -> int:
    """Compare two "MM-YYYY" keys numerically: negative, zero or positive"""
    a, b = MonthBucket.parse(first), MonthBucket.parse(second)
    return (a > b) - (a < b)


def month_range(first: MonthBucket, last: MonthBucket) -> List[MonthBucket]:
    """Every bucket from first to last, both inclusive"""
    months = []
    current = first
    while current <= last:
        months.append(current)
        current = current.next()
    return months


class SubscriptionRecord(BaseModel):
    """One normalized subscription row from an uploaded spreadsheet"""

    status: str = ""
    value: Optional[float] = None  # Periodic price
    start_date: Optional[date] = None  # Data Início
    cancel_date: Optional[date] = None  # Data Cancelamento
    status_date: Optional[date] = None  # Data Status
    billing_count: Optional[int] = None  # Quantidade Cobranças

    # Canonical headers with no dedicated field, ignored by aggregation
    extra: Dict[str, Any] = Field(default_factory=dict)

    @property
    def dates(self) -> List[date]:
        return [d for d in (self.start_date, self.cancel_date, self.status_date) if d is not None]
