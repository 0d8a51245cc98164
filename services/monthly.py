"""
Monthly time series (MRR, active users, new users, churn rate) over a range of MonthBuckets

Every record is bucketed once: it is active over a half-open interval of
months [from, to), where "from" is open-ended unless start dates are
respected and "to" is open-ended for always-active statuses. Intervals are
folded into per-month deltas and the series is rendered as a running total,
so the cost is O(records + months) instead of one full scan per month.
"""
import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from models.subscription import MonthBucket, SubscriptionRecord, month_range
from services.formatting import format_amount, format_percentage

logger = logging.getLogger(__name__)

ALWAYS_ACTIVE_STATUSES = ("Ativa", "Upgrade")
CHURN_STATUSES = ("Cancelada",)

# (record, first active month or None, first inactive month or None)
Interval = Tuple[SubscriptionRecord, Optional[MonthBucket], Optional[MonthBucket]]


class MonthlyAggregator:
    """Build month-bucketed series from normalized subscription records"""

    def __init__(
        self,
        records: Sequence[SubscriptionRecord],
        as_of_date: Optional[date] = None,
        always_active_statuses: Iterable[str] = ALWAYS_ACTIVE_STATUSES,
        churn_statuses: Iterable[str] = CHURN_STATUSES,
        respect_start_date: bool = False,
        churn_denominator: str = "active",
        first_month: Optional[MonthBucket] = None,
        last_month: Optional[MonthBucket] = None,
    ):
        if churn_denominator not in ("active", "cohort"):
            raise ValueError(f"Unknown churn denominator '{churn_denominator}'")

        self.records = list(records)
        self.as_of_date = as_of_date or datetime.utcnow().date()
        self.always_active_statuses = frozenset(always_active_statuses)
        self.churn_statuses = frozenset(churn_statuses)
        self.respect_start_date = respect_start_date
        self.churn_denominator = churn_denominator
        self.first_month = first_month
        self.last_month = last_month

        self._intervals = self._build_intervals()

    @property
    def cutoff_month(self) -> MonthBucket:
        return MonthBucket.from_date(self.as_of_date)

    def _build_intervals(self) -> List[Interval]:
        intervals = []
        for record in self.records:
            start = None
            if self.respect_start_date and record.start_date:
                start = MonthBucket.from_date(record.start_date)

            if record.status in self.always_active_statuses:
                end = None
            else:
                # Effective cancellation month: no cancel date means active through the cutoff
                end = MonthBucket.from_date(record.cancel_date or self.as_of_date)

            if start is not None and end is not None and start >= end:
                continue
            intervals.append((record, start, end))
        return intervals

    def month_sequence(self) -> List[MonthBucket]:
        """
        Months covered by the MRR and active-user series

        Runs from the earliest record date to the later of the latest record
        date and the cutoff month, unless overridden by first_month/last_month.
        """
        if not self.records and (self.first_month is None or self.last_month is None):
            return []

        data_months = [MonthBucket.from_date(d) for r in self.records for d in r.dates]
        first = self.first_month or min(data_months, default=self.cutoff_month)
        last = self.last_month or max(data_months + [self.cutoff_month])

        return month_range(first, last)

    def _running_totals(
        self, months: Sequence[MonthBucket], weight: Callable[[SubscriptionRecord], Decimal]
    ) -> Dict[MonthBucket, Decimal]:
        """Sum weight over records active in each month (months ascending, possibly sparse)"""
        opening = Decimal(0)
        deltas: Dict[MonthBucket, Decimal] = defaultdict(Decimal)

        for record, start, end in self._intervals:
            amount = weight(record)
            if start is None:
                opening += amount
            else:
                deltas[start] += amount
            if end is not None:
                deltas[end] -= amount

        pending = sorted(deltas.items())
        position = 0
        running = opening
        totals = {}

        for month in months:
            while position < len(pending) and pending[position][0] <= month:
                running += pending[position][1]
                position += 1
            totals[month] = running

        return totals

    def mrr_by_month(self) -> Dict[str, str]:
        """MRR per month, as two-decimal strings"""
        def value(record: SubscriptionRecord) -> Decimal:
            return Decimal(repr(record.value)) if record.value is not None else Decimal(0)

        totals = self._running_totals(self.month_sequence(), value)
        return {month.key: format_amount(total) for month, total in totals.items()}

    def users_by_month(self) -> Dict[str, int]:
        """Active subscriptions per month"""
        totals = self._running_totals(self.month_sequence(), lambda record: Decimal(1))
        return {month.key: int(total) for month, total in totals.items()}

    def new_users_by_month(self) -> Dict[str, int]:
        """Subscriptions started per month, only for months that have any"""
        counts = Counter(
            MonthBucket.from_date(r.start_date) for r in self.records if r.start_date
        )
        return {month.key: counts[month] for month in sorted(counts)}

    def churn_by_month(self) -> Dict[str, str]:
        """
        Churn rate per month, as percentage strings

        Churned subscriptions are attributed to the month of their status date.
        The denominator is either the subscriptions active at the start of the
        month ("active") or the subscriptions that started in that month
        ("cohort"), floored at 1.
        """
        churned = Counter(
            MonthBucket.from_date(r.status_date)
            for r in self.records
            if r.status in self.churn_statuses and r.status_date
        )
        months = sorted(churned)

        if self.churn_denominator == "cohort":
            base = Counter(
                MonthBucket.from_date(r.start_date) for r in self.records if r.start_date
            )
        else:
            base = self._active_at_start(months)

        return {
            month.key: format_percentage(Decimal(churned[month]) / max(base.get(month, 0), 1))
            for month in months
        }

    def _active_at_start(self, months: Sequence[MonthBucket]) -> Dict[MonthBucket, int]:
        # Active during the month, plus those whose last active month was the one before
        active = self._running_totals(months, lambda record: Decimal(1))
        ending = Counter(end for _, _, end in self._intervals if end is not None)
        return {month: int(active[month]) + ending[month] for month in months}

    def get_monthly_series(self) -> Dict:
        """All four monthly series, ready for MetricsResult"""
        months = self.month_sequence()
        if months:
            logger.debug(f"Monthly series from {months[0].key} to {months[-1].key}")

        return {
            "mrr_by_month": self.mrr_by_month(),
            "users_by_month": self.users_by_month(),
            "new_users_by_month": self.new_users_by_month(),
            "churn_by_month": self.churn_by_month(),
        }
