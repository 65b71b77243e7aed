"""
Pytest fixtures for the decree calculator test suite.

Provides:
- Case record builders (dataclass and raw dict forms)
- An in-memory report store
- A Flask test client bound to that store
"""

from datetime import date
from decimal import Decimal

import pytest

from decree_calc.data_models import CaseRecord, Recipient
from decree_calc.report_store import ReportStore


@pytest.fixture
def make_case():
    """Build a ``CaseRecord`` with sensible defaults; keyword args override."""

    def _make(**overrides):
        fields = dict(
            court_name="Family Court Lahore",
            party_a="Ayesha Bibi",
            party_b="Muhammad Aslam",
            cms_no="1234/2023",
            report_generator="decree-holder",
            start_date=date(2020, 1, 1),
            end_date=date(2022, 12, 31),
            recipients=[Recipient(name="Ayesha", relationship="wife", amount=Decimal("10000"))],
            increase_type="progressive",
            yearly_increase=Decimal("10"),
        )
        fields.update(overrides)
        return CaseRecord(**fields)

    return _make


@pytest.fixture
def case_data():
    """A raw case dict as submitted by the report form."""
    return {
        "court_name": "Family Court Lahore",
        "party_a": "Ayesha Bibi",
        "party_b": "Muhammad Aslam",
        "cms_no": "1234/2023",
        "report_generator": "decree-holder",
        "counsel_name": "",
        "start_date": "2020-01-01",
        "end_date": "2022-12-31",
        "recipients": [{"name": "Ayesha", "relationship": "wife", "amount": "10000"}],
        "yearly_increase": "10",
        "increase_type": "progressive",
        "other_amounts": [{"description": "Dowry articles", "amount": "50000"}],
        "payments": [{"date": "2021-05-10", "amount": "20000", "received_by": ""}],
        "partially_satisfied": False,
        "partial_satisfaction_date": "",
    }


@pytest.fixture
def store():
    return ReportStore("sqlite://")


@pytest.fixture
def web_client(store):
    from decree_calc_web.app import app

    app.config.update(TESTING=True, REPORT_STORE=store)
    with app.test_client() as client:
        yield client
    app.config["REPORT_STORE"] = None
