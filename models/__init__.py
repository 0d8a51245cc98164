from .subscription import SubscriptionRecord, MonthBucket, compare_month_keys, month_range
from .metrics import MetricsResult, NormalizationResult, RowIssue

__all__ = [
    "SubscriptionRecord",
    "MonthBucket",
    "compare_month_keys",
    "month_range",
    "MetricsResult",
    "NormalizationResult",
    "RowIssue",
]
