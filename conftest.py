"""
pytest configuration and shared fixtures for the subscription metrics tests.
"""
import io
from datetime import date

import pandas as pd
import pytest

from models.subscription import SubscriptionRecord


@pytest.fixture
def as_of():
    """Fixed report cutoff so results do not depend on today's date."""
    return date(2023, 9, 30)


@pytest.fixture
def make_record():
    """Factory for SubscriptionRecords with keyword overrides."""
    def _make(status="Ativa", value=None, start=None, cancel=None, status_date=None):
        return SubscriptionRecord(
            status=status,
            value=value,
            start_date=start,
            cancel_date=cancel,
            status_date=status_date,
        )

    return _make


@pytest.fixture
def sample_records(make_record):
    """One active, one cancelled in April and one trial cancelled without a date."""
    return [
        make_record("Ativa", 100, start=date(2023, 1, 15)),
        make_record(
            "Cancelada", 50,
            start=date(2023, 2, 1),
            cancel=date(2023, 4, 10),
            status_date=date(2023, 4, 10),
        ),
        make_record("Trial cancelado", 30, start=date(2023, 3, 1)),
    ]


@pytest.fixture
def excel_bytes():
    """Build an in-memory .xlsx from a list of row dicts."""
    def _build(rows):
        buffer = io.BytesIO()
        pd.DataFrame(rows).to_excel(buffer, index=False)
        return buffer.getvalue()

    return _build
