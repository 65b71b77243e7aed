"""Output helpers for the decree calculator.

This module renders durations, rupee amounts and whole reports as text. The
report text uses the same Urdu labels as the printed report; amounts are
always in Pakistani rupees with two decimals.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from .data_models import CalculatedReport
from .utils import month_span

MONTHS_WORD = "مہینے"
DAYS_WORD = "دن"
ZERO_DURATION = f"0 {MONTHS_WORD}, 0 {DAYS_WORD}"

GENERATOR_LABELS = {
    "decree-holder": "ڈگری ہولڈر",
    "judgment-debtor": "ججمنٹ ڈیٹر",
}
INCREASE_TYPE_LABELS = {
    "fixed": "فکسڈ",
    "progressive": "پروگریسو",
}
RECEIVER_LABELS = {
    "decree-holder": "ڈگری ہولڈر",
    "representative": "نمائندہ",
}

DISCLAIMER = (
    "This report is system-generated via the SDC: Smart Decree Calculator "
    "and requires no signature."
)


def format_duration(start: date, end: date) -> str:
    """Render the inclusive range as ``"<n> مہینے, <m> دن"``.

    A zero component is left out, so a range of exactly two months renders
    as ``"2 مہینے"``. A reversed range renders as zero months and days.
    """
    if end < start:
        return ZERO_DURATION
    months, days, _ = month_span(start, end)
    parts = []
    if months:
        parts.append(f"{months} {MONTHS_WORD}")
    if days:
        parts.append(f"{days} {DAYS_WORD}")
    return ", ".join(parts) or ZERO_DURATION


def format_amount(amount: Optional[Decimal]) -> str:
    if amount is None:
        return ""
    return f"{amount:,.2f}"


def format_pkr(amount: Optional[Decimal]) -> str:
    """Format an amount in rupees, e.g. ``PKR 12,500.00``."""
    return f"PKR {format_amount(amount)}"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def generator_label(role: str) -> str:
    return GENERATOR_LABELS.get(role, role)


def increase_type_label(increase_type: str) -> str:
    return INCREASE_TYPE_LABELS.get(increase_type, increase_type)


def receiver_label(received_by: Optional[str]) -> str:
    if received_by == "decree-holder":
        return RECEIVER_LABELS["decree-holder"]
    return RECEIVER_LABELS["representative"]


def print_summary(report: CalculatedReport) -> None:
    """Print the financial summary of a report."""
    summary = report.summary
    print("Summary")
    print("-" * 72)
    print(f"Maintenance total      : {format_pkr(summary.grand_total_maintenance)}")
    print(f"Other amounts total    : {format_pkr(summary.total_other_amounts)}")
    print(f"Total before payments  : {format_pkr(summary.total_decretal_amount_before_payments)}")
    print(f"Payments received      : {format_pkr(summary.total_payments)}")
    print(f"Final outstanding      : {format_pkr(summary.final_outstanding_amount)}")
    print("-" * 72)


def print_report(report: CalculatedReport) -> None:
    """Print a full report: case header, recipient tables, extras and summary."""
    details = report.case_details
    print(details.court_name)
    print(f"{details.party_a} بنام {details.party_b}")
    print(f"CMS: {details.cms_no}")
    print(f"Prepared by: {generator_label(report.report_generator.generated_by)}")
    if report.report_generator.counsel_name:
        print(f"Counsel: {report.report_generator.counsel_name}")
    period = report.period
    print(
        f"Period: {format_date(period.start_date)} - {format_date(period.end_date)} "
        f"({period.period_display})"
    )
    if report.partial_satisfaction:
        ps = report.partial_satisfaction
        print(
            f"Partially satisfied on {format_date(ps.date)}; "
            f"calculated from {format_date(ps.effective_start_date)}"
        )
    print("=" * 72)

    for index, rec in enumerate(report.recipient_calculations, start=1):
        print(f"Recipient {index}: {rec.name} ({rec.relationship})")
        print(
            f"Base amount {format_amount(rec.base_amount)}/month, "
            f"{increase_type_label(rec.increase_type)} ({rec.yearly_increase}%)"
        )
        print("\t".join(["Year", "From", "To", "Duration", "Basic", "Increased", "Total"]))
        for year in rec.yearly_breakdown:
            row = [
                year.year,
                format_date(year.start_date),
                format_date(year.end_date),
                year.duration_display,
                format_amount(year.basic_amount),
                format_amount(year.increased_amount),
                format_amount(year.total_period),
            ]
            print("\t".join(row))
        print(f"Total for {rec.name}: {format_pkr(rec.total_recipient_amount)}")
        print(f"Current monthly amount: {format_pkr(rec.current_month_amount)}")
        print("-" * 72)

    if report.other_amounts:
        print("Other decretal amounts")
        for oa in report.other_amounts:
            print(f"{oa.description}\t{format_amount(oa.amount)}")
        print("-" * 72)

    if report.payments:
        show_receiver = report.report_generator.generated_by == "judgment-debtor"
        print("Payments received")
        for p in report.payments:
            row = [format_date(p.date), format_amount(p.amount)]
            if show_receiver:
                row.append(receiver_label(p.received_by))
            print("\t".join(row))
        print("-" * 72)

    print_summary(report)
