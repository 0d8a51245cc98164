from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from models.subscription import SubscriptionRecord
from services.formatting import format_amount, format_days, format_percentage

ACTIVE_STATUSES = ("Ativa",)
CHURN_STATUSES = ("Cancelada",)


class MetricsCalculator:
    """Calculate point-in-time SaaS metrics from normalized subscription records"""

    def __init__(
        self,
        records: Sequence[SubscriptionRecord],
        as_of_date: Optional[date] = None,
        active_statuses: Iterable[str] = ACTIVE_STATUSES,
        churn_statuses: Iterable[str] = CHURN_STATUSES,
    ):
        self.records = list(records)
        # Records without a cancellation date count as active up to this date
        self.as_of_date = as_of_date or datetime.utcnow().date()
        self.active_statuses = frozenset(active_statuses)
        self.churn_statuses = frozenset(churn_statuses)

    def _active_records(self) -> List[SubscriptionRecord]:
        return [r for r in self.records if r.status in self.active_statuses]

    def count_active_users(self) -> int:
        """Number of records whose status is active (no legacy +1 adjustment)"""
        return len(self._active_records())

    def calculate_mrr(self) -> float:
        """
        Calculate Monthly Recurring Revenue

        Sum of value over active records. Records with no value are left out
        of the sum, a value of zero still counts as a $0 contribution.
        """
        return sum(r.value for r in self._active_records() if r.value is not None)

    def calculate_churn_rate(self) -> float:
        """Churned records over the full dataset size, 0 for an empty dataset"""
        total = len(self.records)
        if total == 0:
            return 0.0

        churned = sum(1 for r in self.records if r.status in self.churn_statuses)
        return churned / total

    def calculate_arpu(self, mrr: Optional[float] = None) -> float:
        """Average Revenue Per (active) User"""
        if mrr is None:
            mrr = self.calculate_mrr()

        active_users = self.count_active_users()
        if active_users == 0:
            return 0.0

        return mrr / active_users

    def calculate_ltv(self, mrr: Optional[float] = None, churn_rate: Optional[float] = None) -> float:
        """
        Calculate customer Lifetime Value

        LTV = ARPU / churn rate. With no churn the lifetime is undefined and
        LTV is floored to 0 instead of infinity.

        Args:
            mrr: Precomputed MRR (default: calculated)
            churn_rate: Precomputed churn rate as a fraction (default: calculated)

        Returns:
            LTV value
        """
        if churn_rate is None:
            churn_rate = self.calculate_churn_rate()
        if churn_rate == 0:
            return 0.0

        return self.calculate_arpu(mrr) / churn_rate

    def calculate_average_subscription_days(self) -> float:
        """
        Average subscription length in days over active records with a start date

        The end of a subscription is its cancellation date, or the as-of date
        when it has none. A record whose start comes after its end adds no days
        but is still counted in the average.
        """
        total_days = 0
        count = 0

        for record in self._active_records():
            if record.start_date is None:
                continue

            end_date = record.cancel_date or self.as_of_date
            if record.start_date <= end_date:
                total_days += (end_date - record.start_date).days
            count += 1

        if count == 0:
            return 0.0

        return total_days / count

    def calculate_average_subscription_length(self) -> str:
        """Average subscription length rendered as "N days" """
        return format_days(self.calculate_average_subscription_days())

    def get_metrics_summary(self) -> Dict:
        """
        Get the point-in-time metrics summary

        Returns:
            Dictionary of formatted metrics, ready for MetricsResult
        """
        mrr = self.calculate_mrr()
        churn_rate = self.calculate_churn_rate()
        ltv = self.calculate_ltv(mrr, churn_rate)
        average_days = self.calculate_average_subscription_days()

        return {
            "mrr": format_amount(mrr),
            "churn_rate": format_percentage(churn_rate),
            "ltv": format_amount(ltv),
            "average_subscription_length": format_days(average_days),
            "average_subscription_length_days": round(average_days, 2),
            "active_users": self.count_active_users(),
        }
