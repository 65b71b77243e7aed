"""Core calculation engine for the decree calculator.

This module turns a validated ``CaseRecord`` into a ``CalculatedReport``.
Maintenance for each recipient is computed over the calculation period in
yearly segments bounded by anniversaries of the decree start date; the
monthly rate rises at every anniversary, either compounding
(``progressive``) or by a constant share of the base amount (``fixed``).
Other decretal amounts are then added and payments already received are
deducted to arrive at the outstanding balance.

The engine is a pure function: it does not validate its input (see
``validators``), touch storage or raise for business conditions. Degenerate
inputs produce degenerate but well-defined reports, e.g. an empty breakdown
when the period ends before the effective start.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import List, Optional

from .data_models import (
    CalculatedReport,
    CaseDetails,
    CaseRecord,
    OtherAmount,
    PartialSatisfaction,
    Payment,
    PeriodInfo,
    Recipient,
    RecipientCalculation,
    ReportGenerator,
    ReportSummary,
    YearlyBreakdown,
)
from .formatter import format_duration
from .utils import add_days, add_years, fractional_months

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Upper bound on yearly segments per recipient. The validator rejects longer
# periods; this only guards against records that bypassed it.
MAX_SEGMENTS = 200

YEAR_LABEL = "سال"


def effective_start_date(case: CaseRecord) -> date:
    """Return the first day of the period that is still unpaid.

    When the decree was partially satisfied up to a date after the nominal
    start, calculation resumes on the following day.
    """
    sat_date = case.partial_satisfaction_date
    if case.partially_satisfied and sat_date is not None and sat_date > case.start_date:
        return add_days(sat_date, 1)
    return case.start_date


def escalate(rate: Decimal, base_amount: Decimal, yearly_increase: Decimal, increase_type: str) -> Decimal:
    """Apply one anniversary's increase to ``rate``.

    ``progressive`` compounds on the current rate. ``fixed`` adds the same
    percentage of the original ``base_amount`` every year.
    """
    if increase_type == "progressive":
        return rate * (1 + yearly_increase / Decimal(100))
    return rate + base_amount * yearly_increase / Decimal(100)


def _rate_after(anniversaries: int, base_amount: Decimal, yearly_increase: Decimal, increase_type: str) -> Decimal:
    rate = base_amount
    for _ in range(anniversaries):
        rate = escalate(rate, base_amount, yearly_increase, increase_type)
    return rate


def _anniversaries_on_or_before(start: date, when: date) -> int:
    """Count anniversaries of ``start`` (excluding ``start`` itself) up to ``when``."""
    if when <= start:
        return 0
    count = max(when.year - start.year - 1, 0)
    while add_years(start, count + 1) <= when:
        count += 1
    return count


def calculate_recipient(
    recipient: Recipient,
    start_date: date,
    end_date: date,
    effective_start: date,
    yearly_increase: Decimal,
    increase_type: str,
) -> RecipientCalculation:
    """Compute the yearly breakdown and total for a single recipient.

    Anniversaries are always counted from the nominal ``start_date`` so that
    escalation timing follows the original decree. When calculation starts
    later (partial satisfaction), the rate is first brought forward through
    every anniversary on or before the satisfaction date, i.e. the day
    before ``effective_start``.
    """
    base_amount = recipient.amount
    anniversary = _anniversaries_on_or_before(start_date, effective_start)
    passed = _anniversaries_on_or_before(start_date, add_days(effective_start, -1))
    current_rate = _rate_after(passed, base_amount, yearly_increase, increase_type)

    breakdown: List[YearlyBreakdown] = []
    total = Decimal("0")
    position = effective_start
    while position <= end_date:
        if len(breakdown) >= MAX_SEGMENTS:
            logger.warning(
                "Stopping %s after %d yearly segments; period ends %s",
                recipient.name,
                MAX_SEGMENTS,
                end_date,
            )
            break
        next_anniversary = add_years(start_date, anniversary + 1)
        if next_anniversary <= end_date:
            segment_end = add_days(next_anniversary, -1)
        else:
            segment_end = end_date

        period_total = current_rate * fractional_months(position, segment_end)
        breakdown.append(
            YearlyBreakdown(
                year=f"{YEAR_LABEL} {len(breakdown) + 1}",
                start_date=position,
                end_date=segment_end,
                basic_amount=base_amount,
                increased_amount=current_rate,
                duration_display=format_duration(position, segment_end),
                total_period=period_total,
            )
        )
        total += period_total

        position = add_days(segment_end, 1)
        if position <= end_date:
            anniversary += 1
            current_rate = escalate(current_rate, base_amount, yearly_increase, increase_type)

    logger.debug(
        "Recipient %s: %d segments, total %s, current rate %s",
        recipient.name,
        len(breakdown),
        total,
        current_rate,
    )
    return RecipientCalculation(
        name=recipient.name,
        relationship=recipient.relationship,
        base_amount=base_amount,
        increase_type=increase_type,
        yearly_increase=yearly_increase,
        total_recipient_amount=total,
        current_month_amount=current_rate,
        yearly_breakdown=breakdown,
    )


def valid_other_amounts(other_amounts: List[OtherAmount]) -> List[OtherAmount]:
    """Keep entries with a description and a positive amount."""
    return [oa for oa in other_amounts if oa.description and oa.amount and oa.amount > 0]


def valid_payments(payments: List[Payment]) -> List[Payment]:
    """Keep dated entries with a positive amount."""
    return [p for p in payments if p.date and p.amount and p.amount > 0]


def calculate_decree(case: CaseRecord) -> CalculatedReport:
    """Compute the full decree report for a case.

    Parameters
    ----------
    case: CaseRecord
        A record accepted by ``validators.validate_case``.

    Returns
    -------
    CalculatedReport
        Per-recipient yearly breakdowns, the filtered other amounts and
        payments, and a summary where

            final_outstanding = maintenance + other amounts - payments

        The outstanding amount is not clamped at zero; a negative value
        means the judgment debtor has overpaid.
    """
    yearly_increase = case.yearly_increase if case.yearly_increase is not None else Decimal("0")
    effective_start = effective_start_date(case)

    recipient_calculations: List[RecipientCalculation] = []
    grand_total_maintenance = Decimal("0")
    for recipient in case.recipients:
        calc = calculate_recipient(
            recipient,
            case.start_date,
            case.end_date,
            effective_start,
            yearly_increase,
            case.increase_type,
        )
        recipient_calculations.append(calc)
        grand_total_maintenance += calc.total_recipient_amount

    other_amounts = valid_other_amounts(case.other_amounts)
    total_other_amounts = sum((oa.amount for oa in other_amounts), Decimal("0"))
    payments = valid_payments(case.payments)
    total_payments = sum((p.amount for p in payments), Decimal("0"))

    total_before_payments = grand_total_maintenance + total_other_amounts
    final_outstanding = total_before_payments - total_payments

    partial: Optional[PartialSatisfaction] = None
    if case.partially_satisfied and case.partial_satisfaction_date is not None:
        partial = PartialSatisfaction(
            date=case.partial_satisfaction_date,
            effective_start_date=effective_start,
        )

    return CalculatedReport(
        case_details=CaseDetails(
            court_name=case.court_name,
            party_a=case.party_a,
            party_b=case.party_b,
            cms_no=case.cms_no,
        ),
        report_generator=ReportGenerator(
            generated_by=case.report_generator,
            counsel_name=case.counsel_name or "",
        ),
        period=PeriodInfo(
            start_date=case.start_date,
            end_date=case.end_date,
            period_display=format_duration(case.start_date, case.end_date),
        ),
        partial_satisfaction=partial,
        recipient_calculations=recipient_calculations,
        other_amounts=other_amounts,
        payments=payments,
        summary=ReportSummary(
            grand_total_maintenance=grand_total_maintenance,
            total_other_amounts=total_other_amounts,
            total_decretal_amount_before_payments=total_before_payments,
            total_payments=total_payments,
            final_outstanding_amount=final_outstanding,
        ),
    )
