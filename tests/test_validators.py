"""
Unit tests for case and profile validation.

Verifies:
- Valid form and exported-file input converts to a CaseRecord
- Each failure is reported with its field path
- Cross-field date checks (period ordering, partial satisfaction range)
"""

import pytest
from datetime import date
from decimal import Decimal

from decree_calc.data_models import GENERATOR_ROLES
from decree_calc.validators import (
    AMOUNT_MESSAGE,
    AMOUNT_MIN_MESSAGE,
    CHOOSE_MESSAGE,
    END_DATE_MESSAGE,
    PARTIAL_DATE_RANGE_MESSAGE,
    PARTIAL_DATE_REQUIRED_MESSAGE,
    PERIOD_TOO_LONG_MESSAGE,
    RECIPIENTS_MESSAGE,
    REQUIRED_MESSAGE,
    CaseValidationError,
    validate_case,
    validate_profile,
)


def errors_for(data):
    with pytest.raises(CaseValidationError) as exc_info:
        validate_case(data)
    return {e.path: e.message for e in exc_info.value.errors}


class TestValidCases:
    """Input that passes validation."""

    def test_form_input(self, case_data):
        case = validate_case(case_data)
        assert case.start_date == date(2020, 1, 1)
        assert case.end_date == date(2022, 12, 31)
        assert case.recipients[0].amount == Decimal("10000")
        assert case.yearly_increase == Decimal("10")
        assert case.counsel_name is None
        assert case.other_amounts[0].amount == Decimal("50000")
        assert case.payments[0].date == date(2021, 5, 10)
        assert case.payments[0].received_by is None
        assert case.partial_satisfaction_date is None

    def test_exported_camel_case_input(self):
        data = {
            "id": "a1b2",
            "createdAt": "2024-03-01T10:00:00.000Z",
            "courtName": "Family Court Multan",
            "partyA": "Rubina",
            "partyB": "Kashif",
            "cmsNo": "77/2022",
            "reportGenerator": "judgment-debtor",
            "startDate": "2021-01-01T00:00:00.000Z",
            "endDate": "2023-06-30T00:00:00.000Z",
            "recipients": [{"id": "r1", "name": "Rubina", "relationship": "wife", "amount": 7000}],
            "increaseType": "fixed",
            "payments": [{"id": "p1", "date": "2022-01-05", "amount": 3000, "receivedBy": "representative"}],
            "partiallySatisfied": True,
            "partialSatisfactionDate": "2021-12-31",
        }
        case = validate_case(data)
        assert case.party_a == "Rubina"
        assert case.report_generator == "judgment-debtor"
        assert case.yearly_increase == 0
        assert case.payments[0].received_by == "representative"
        assert case.partial_satisfaction_date == date(2021, 12, 31)

    def test_blank_optional_rows_kept_for_engine_filtering(self, case_data):
        case_data["other_amounts"].append({"description": "", "amount": ""})
        case = validate_case(case_data)
        assert case.other_amounts[1].amount is None

    def test_partial_date_dropped_when_flag_off(self, case_data):
        case_data["partial_satisfaction_date"] = "2021-06-30"
        assert validate_case(case_data).partial_satisfaction_date is None


class TestFieldErrors:
    """Failures are tied to field paths."""

    def test_missing_required_text(self, case_data):
        case_data["court_name"] = "  "
        del case_data["party_b"]
        errors = errors_for(case_data)
        assert errors["court_name"] == REQUIRED_MESSAGE
        assert errors["party_b"] == REQUIRED_MESSAGE

    def test_no_recipients(self, case_data):
        case_data["recipients"] = []
        assert errors_for(case_data) == {"recipients": RECIPIENTS_MESSAGE}

    def test_recipient_amount(self, case_data):
        case_data["recipients"] = [
            {"name": "A", "relationship": "wife", "amount": "0"},
            {"name": "B", "relationship": "son", "amount": "abc"},
            {"name": "", "relationship": "son", "amount": "100"},
        ]
        errors = errors_for(case_data)
        assert errors["recipients.0.amount"] == AMOUNT_MIN_MESSAGE
        assert errors["recipients.1.amount"] == AMOUNT_MESSAGE
        assert errors["recipients.2.name"] == REQUIRED_MESSAGE

    def test_invalid_choice(self, case_data):
        case_data["increase_type"] = "compound"
        del case_data["report_generator"]
        errors = errors_for(case_data)
        assert errors["increase_type"] == CHOOSE_MESSAGE
        assert errors["report_generator"] == CHOOSE_MESSAGE

    def test_unknown_payment_receiver(self, case_data):
        case_data["payments"][0]["received_by"] = "bailiff"
        assert errors_for(case_data) == {"payments.0.received_by": CHOOSE_MESSAGE}

    @pytest.mark.parametrize("role", GENERATOR_ROLES)
    def test_every_generator_role_accepted(self, case_data, role):
        case_data["report_generator"] = role
        assert validate_case(case_data).report_generator == role

    def test_negative_increase(self, case_data):
        case_data["yearly_increase"] = "-5"
        assert "yearly_increase" in errors_for(case_data)

    def test_bad_payment_amount(self, case_data):
        case_data["payments"] = [{"date": "2021-01-01", "amount": "lots"}]
        assert errors_for(case_data) == {"payments.0.amount": AMOUNT_MESSAGE}

    def test_not_an_object(self):
        assert "" in errors_for(["not", "a", "case"])


class TestDateRules:
    """Cross-field checks on the period."""

    def test_end_must_follow_start(self, case_data):
        case_data["end_date"] = case_data["start_date"]
        assert errors_for(case_data) == {"end_date": END_DATE_MESSAGE}

    def test_period_limit(self, case_data):
        case_data["end_date"] = "2250-01-01"
        assert errors_for(case_data) == {"end_date": PERIOD_TOO_LONG_MESSAGE}

    def test_partial_date_required(self, case_data):
        case_data["partially_satisfied"] = True
        assert errors_for(case_data) == {"partial_satisfaction_date": PARTIAL_DATE_REQUIRED_MESSAGE}

    @pytest.mark.parametrize("sat_date", ["2020-01-01", "2022-12-31", "2023-05-01"])
    def test_partial_date_strictly_inside_period(self, case_data, sat_date):
        case_data["partially_satisfied"] = True
        case_data["partial_satisfaction_date"] = sat_date
        assert errors_for(case_data) == {"partial_satisfaction_date": PARTIAL_DATE_RANGE_MESSAGE}

    def test_partial_date_inside_period(self, case_data):
        case_data["partially_satisfied"] = True
        case_data["partial_satisfaction_date"] = "2021-06-30"
        assert validate_case(case_data).partial_satisfaction_date == date(2021, 6, 30)


class TestProfile:
    """Tests for validate_profile."""

    def test_valid_profile(self):
        profile = validate_profile(
            {"name": "Imran", "designation": "Clerk", "pin": "1234", "cnic": "35202-1234567-1"}
        )
        assert profile.cnic == "35202-1234567-1"

    def test_invalid_pin_and_cnic(self):
        with pytest.raises(CaseValidationError) as exc_info:
            validate_profile({"name": "Imran", "designation": "Clerk", "pin": "12a4", "cnic": "3520212345671"})
        assert {e.path for e in exc_info.value.errors} == {"pin", "cnic"}
