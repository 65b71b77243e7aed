"""Data models for the decree calculator.

This module defines dataclasses for the entities used by the calculator: the
case record collected from the user (parties, recipients, other decretal
amounts and payments already received) and the computed report produced by
the engine. Money is held as ``Decimal`` and dates as ``datetime.date``.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional


GENERATOR_ROLES = ("decree-holder", "judgment-debtor")
INCREASE_TYPES = ("progressive", "fixed")
PAYMENT_RECEIVERS = ("decree-holder", "representative")


@dataclass
class Recipient:
    """A person entitled to monthly maintenance under the decree.

    Attributes
    ----------
    name: str
        Name of the recipient.
    relationship: str
        Relationship label (e.g. wife, son), shown in the report.
    amount: Decimal
        The monthly base amount fixed by the decree. Always positive.
    """

    name: str
    relationship: str
    amount: Decimal


@dataclass
class OtherAmount:
    """A one-off decretal amount such as dowry articles or delivery expenses.

    Only entries with a non-empty description and a positive amount are
    counted by the engine.
    """

    description: str
    amount: Optional[Decimal] = None


@dataclass
class Payment:
    """An amount already received against the decree.

    ``received_by`` is either ``"decree-holder"`` or ``"representative"`` and
    is only shown on reports prepared for the judgment debtor.
    """

    date: Optional[date] = None
    amount: Optional[Decimal] = None
    received_by: Optional[str] = None


@dataclass
class CaseRecord:
    """All facts of a case needed to compute the decree report.

    The record is expected to have passed ``validators.validate_case``: the
    engine does not re-check date ordering or amounts.
    """

    court_name: str
    party_a: str
    party_b: str
    cms_no: str
    report_generator: str  # 'decree-holder' or 'judgment-debtor'
    start_date: date
    end_date: date
    recipients: List[Recipient]
    increase_type: str  # 'progressive' or 'fixed'
    yearly_increase: Decimal = Decimal("0")  # percent per year
    counsel_name: Optional[str] = None
    other_amounts: List[OtherAmount] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    partially_satisfied: bool = False
    partial_satisfaction_date: Optional[date] = None


@dataclass
class YearlyBreakdown:
    """One escalation segment of a recipient's schedule.

    A segment runs from an anniversary of the decree (or the effective start)
    to the day before the next anniversary, or to the end of the period.
    """

    year: str
    start_date: date
    end_date: date
    basic_amount: Decimal
    increased_amount: Decimal
    duration_display: str
    total_period: Decimal


@dataclass
class RecipientCalculation:
    name: str
    relationship: str
    base_amount: Decimal
    increase_type: str
    yearly_increase: Decimal
    total_recipient_amount: Decimal
    current_month_amount: Decimal
    yearly_breakdown: List[YearlyBreakdown]


@dataclass
class CaseDetails:
    court_name: str
    party_a: str
    party_b: str
    cms_no: str


@dataclass
class ReportGenerator:
    generated_by: str
    counsel_name: str


@dataclass
class PeriodInfo:
    start_date: date
    end_date: date
    period_display: str


@dataclass
class PartialSatisfaction:
    """Date up to which the decree was already satisfied.

    ``effective_start_date`` is the first unpaid day, i.e. the day after
    ``date``.
    """

    date: date
    effective_start_date: date


@dataclass
class ReportSummary:
    grand_total_maintenance: Decimal
    total_other_amounts: Decimal
    total_decretal_amount_before_payments: Decimal
    total_payments: Decimal
    # May be negative when more has been paid than is owed.
    final_outstanding_amount: Decimal


@dataclass
class CalculatedReport:
    """The computed decree report.

    This is a derived artifact: it can be cached next to the case record but
    is always reproducible from it.
    """

    case_details: CaseDetails
    report_generator: ReportGenerator
    period: PeriodInfo
    recipient_calculations: List[RecipientCalculation]
    other_amounts: List[OtherAmount]
    payments: List[Payment]
    summary: ReportSummary
    partial_satisfaction: Optional[PartialSatisfaction] = None
