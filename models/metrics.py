from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .subscription import SubscriptionRecord


class RowIssue(BaseModel):
    """A field that could not be read and was degraded to absent"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row: int  # 1-based data row number (header excluded)
    field: str
    value: Optional[str] = None  # Raw cell text
    reason: str


class NormalizationResult(BaseModel):
    """Normalized records plus the row-level defects recovered along the way"""

    records: List[SubscriptionRecord] = Field(default_factory=list)
    issues: List[RowIssue] = Field(default_factory=list)


class MetricsResult(BaseModel):
    """Metrics summary returned for one uploaded spreadsheet"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Point-in-time metrics
    mrr: str
    churn_rate: str
    ltv: str
    average_subscription_length: str
    average_subscription_length_days: float
    active_users: int

    # Monthly series, keyed by "MM-YYYY" in ascending month order
    mrr_by_month: Dict[str, str] = Field(default_factory=dict)
    users_by_month: Dict[str, int] = Field(default_factory=dict)
    new_users_by_month: Dict[str, int] = Field(default_factory=dict)
    churn_by_month: Dict[str, str] = Field(default_factory=dict)

    rows_processed: int = 0
    row_issues: List[RowIssue] = Field(default_factory=list)
