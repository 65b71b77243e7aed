"""Input validation for case records and the user profile.

Raw input (form fields, JSON files exported by the browser version of the
calculator, CLI case files) is checked here with pydantic schemas before it is
turned into the dataclasses the engine works on. Every failure is reported as
a ``FieldError`` tied to a dotted field path such as ``recipients.0.amount``,
so callers can show the message next to the offending input.

Keys may be given in snake_case or in the camelCase used by exported report
files (``partyA``, ``startDate``, ``partialSatisfactionDate``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .data_models import (
    GENERATOR_ROLES,
    INCREASE_TYPES,
    PAYMENT_RECEIVERS,
    CaseRecord,
    OtherAmount,
    Payment,
    Recipient,
)
from .utils import add_years, decimal_from_str, parse_date

logger = logging.getLogger(__name__)

MAX_PERIOD_YEARS = 200

REQUIRED_MESSAGE = "یہ خانہ خالی نہیں چھوڑا جا سکتا"
CHOOSE_MESSAGE = "براہ کرم منتخب کریں"
DATE_MESSAGE = "براہ کرم تاریخ منتخب کریں"
AMOUNT_MESSAGE = "رقم ڈالیں"
AMOUNT_MIN_MESSAGE = "رقم 0 سے زیادہ ہونی چاہیے"
RECIPIENTS_MESSAGE = "کم از کم ایک وصول کنندہ شامل کریں"
END_DATE_MESSAGE = "اختتامی تاریخ آغاز کی تاریخ کے بعد ہونی چاہیے"
PERIOD_TOO_LONG_MESSAGE = f"مدت {MAX_PERIOD_YEARS} سال سے زیادہ نہیں ہو سکتی"
PARTIAL_DATE_REQUIRED_MESSAGE = "جزوی اطمینان کی تاریخ درکار ہے"
PARTIAL_DATE_RANGE_MESSAGE = "جزوی اطمینان کی تاریخ آغاز اور اختتامی تاریخ کے درمیان ہونی چاہیے"
INCREASE_MESSAGE = "سالانہ اضافہ منفی نہیں ہو سکتا"
PIN_MESSAGE = "PIN must be 4 digits."
CNIC_MESSAGE = "CNIC is required and must be 13 digits."

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class FieldError:
    path: str
    message: str


class CaseValidationError(ValueError):
    """Raised when input fails validation; ``errors`` lists every failure."""

    def __init__(self, errors: List[FieldError]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{e.path}: {e.message}" for e in errors))


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(data: Any) -> Any:
    """Recursively convert camelCase dictionary keys to snake_case."""
    if isinstance(data, dict):
        return {_snake_case(str(k)): normalize_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [normalize_keys(item) for item in data]
    return data


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_date(value: Any, required: bool) -> Optional[dt.date]:
    if isinstance(value, dt.date):
        return value
    if _blank(value):
        if required:
            raise ValueError(DATE_MESSAGE)
        return None
    try:
        return parse_date(str(value))
    except ValueError:
        raise ValueError(DATE_MESSAGE)


def _coerce_amount(value: Any, required: bool) -> Optional[Decimal]:
    if isinstance(value, bool):
        raise ValueError(AMOUNT_MESSAGE)
    if _blank(value):
        if required:
            raise ValueError(AMOUNT_MESSAGE)
        return None
    try:
        return decimal_from_str(str(value))
    except ValueError:
        raise ValueError(AMOUNT_MESSAGE)


def _required_text(value: Any) -> str:
    if _blank(value):
        raise ValueError(REQUIRED_MESSAGE)
    return str(value).strip()


def _choice(value: Any, choices: tuple) -> str:
    if value not in choices:
        raise ValueError(CHOOSE_MESSAGE)
    return value


class _InputModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RecipientInput(_InputModel):
    id: Optional[str] = None
    name: str
    relationship: str
    amount: Decimal

    @field_validator("name", "relationship", mode="before")
    @classmethod
    def check_text(cls, value: Any) -> str:
        return _required_text(value)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Decimal:
        return _coerce_amount(value, required=True)

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: Decimal) -> Decimal:
        if value < 1:
            raise ValueError(AMOUNT_MIN_MESSAGE)
        return value


class OtherAmountInput(_InputModel):
    id: Optional[str] = None
    description: str = ""
    amount: Optional[Decimal] = None

    @field_validator("description", mode="before")
    @classmethod
    def parse_description(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Optional[Decimal]:
        return _coerce_amount(value, required=False)


class PaymentInput(_InputModel):
    id: Optional[str] = None
    date: Optional[dt.date] = None
    amount: Optional[Decimal] = None
    received_by: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_payment_date(cls, value: Any) -> Optional[dt.date]:
        return _coerce_date(value, required=False)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Optional[Decimal]:
        return _coerce_amount(value, required=False)

    @field_validator("received_by", mode="before")
    @classmethod
    def parse_received_by(cls, value: Any) -> Optional[str]:
        return None if _blank(value) else _choice(value, PAYMENT_RECEIVERS)


class CaseInput(_InputModel):
    """Schema for a case record as entered in the report form."""

    court_name: str
    party_a: str
    party_b: str
    cms_no: str
    report_generator: str
    counsel_name: Optional[str] = None
    start_date: dt.date
    end_date: dt.date
    recipients: List[RecipientInput]
    yearly_increase: Decimal = Decimal("0")
    increase_type: str
    other_amounts: List[OtherAmountInput] = Field(default_factory=list)
    payments: List[PaymentInput] = Field(default_factory=list)
    partially_satisfied: bool = False
    partial_satisfaction_date: Optional[dt.date] = None

    @field_validator("court_name", "party_a", "party_b", "cms_no", mode="before")
    @classmethod
    def check_text(cls, value: Any) -> str:
        return _required_text(value)

    @field_validator("report_generator", mode="before")
    @classmethod
    def check_generator(cls, value: Any) -> str:
        return _choice(value, GENERATOR_ROLES)

    @field_validator("increase_type", mode="before")
    @classmethod
    def check_increase_type(cls, value: Any) -> str:
        return _choice(value, INCREASE_TYPES)

    @field_validator("counsel_name", mode="before")
    @classmethod
    def parse_counsel(cls, value: Any) -> Optional[str]:
        return None if _blank(value) else str(value).strip()

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_required_date(cls, value: Any) -> dt.date:
        return _coerce_date(value, required=True)

    @field_validator("partial_satisfaction_date", mode="before")
    @classmethod
    def parse_optional_date(cls, value: Any) -> Optional[dt.date]:
        return _coerce_date(value, required=False)

    @field_validator("yearly_increase", mode="before")
    @classmethod
    def parse_increase(cls, value: Any) -> Decimal:
        amount = _coerce_amount(value, required=False)
        return Decimal("0") if amount is None else amount

    @field_validator("yearly_increase")
    @classmethod
    def check_increase(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError(INCREASE_MESSAGE)
        return value

    @field_validator("recipients")
    @classmethod
    def check_recipients(cls, value: List[RecipientInput]) -> List[RecipientInput]:
        if not value:
            raise ValueError(RECIPIENTS_MESSAGE)
        return value

    @field_validator("other_amounts", "payments", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def date_errors(self) -> List[FieldError]:
        """Cross-field checks on the period and the partial satisfaction date."""
        errors: List[FieldError] = []
        if self.end_date <= self.start_date:
            errors.append(FieldError("end_date", END_DATE_MESSAGE))
        elif add_years(self.start_date, MAX_PERIOD_YEARS) < self.end_date:
            errors.append(FieldError("end_date", PERIOD_TOO_LONG_MESSAGE))
        if self.partially_satisfied:
            sat_date = self.partial_satisfaction_date
            if sat_date is None:
                errors.append(FieldError("partial_satisfaction_date", PARTIAL_DATE_REQUIRED_MESSAGE))
            elif not (self.start_date < sat_date < self.end_date):
                errors.append(FieldError("partial_satisfaction_date", PARTIAL_DATE_RANGE_MESSAGE))
        return errors

    def to_case_record(self) -> CaseRecord:
        return CaseRecord(
            court_name=self.court_name,
            party_a=self.party_a,
            party_b=self.party_b,
            cms_no=self.cms_no,
            report_generator=self.report_generator,
            counsel_name=self.counsel_name,
            start_date=self.start_date,
            end_date=self.end_date,
            recipients=[
                Recipient(name=r.name, relationship=r.relationship, amount=r.amount)
                for r in self.recipients
            ],
            yearly_increase=self.yearly_increase,
            increase_type=self.increase_type,
            other_amounts=[
                OtherAmount(description=oa.description, amount=oa.amount)
                for oa in self.other_amounts
            ],
            payments=[
                Payment(date=p.date, amount=p.amount, received_by=p.received_by)
                for p in self.payments
            ],
            partially_satisfied=self.partially_satisfied,
            partial_satisfaction_date=self.partial_satisfaction_date if self.partially_satisfied else None,
        )


class ProfileInput(_InputModel):
    """The single local user of the calculator."""

    name: str
    designation: str
    pin: str
    cnic: str

    @field_validator("name", "designation", mode="before")
    @classmethod
    def check_text(cls, value: Any) -> str:
        return _required_text(value)

    @field_validator("pin", mode="before")
    @classmethod
    def check_pin(cls, value: Any) -> str:
        return check_pin_format(value)

    @field_validator("cnic", mode="before")
    @classmethod
    def check_cnic(cls, value: Any) -> str:
        return check_cnic_format(value)


def check_pin_format(value: Any) -> str:
    pin = "" if value is None else str(value).strip()
    if not re.fullmatch(r"\d{4}", pin):
        raise ValueError(PIN_MESSAGE)
    return pin


def check_cnic_format(value: Any) -> str:
    cnic = "" if value is None else str(value).strip()
    if not re.fullmatch(r"\d{5}-\d{7}-\d", cnic):
        raise ValueError(CNIC_MESSAGE)
    return cnic


_MISSING_MESSAGES = {
    "report_generator": CHOOSE_MESSAGE,
    "increase_type": CHOOSE_MESSAGE,
    "start_date": DATE_MESSAGE,
    "end_date": DATE_MESSAGE,
    "recipients": RECIPIENTS_MESSAGE,
    "amount": AMOUNT_MESSAGE,
    "pin": PIN_MESSAGE,
    "cnic": CNIC_MESSAGE,
}


def _field_errors(exc: ValidationError) -> List[FieldError]:
    errors = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err["loc"])
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        elif err["type"] == "missing":
            message = _MISSING_MESSAGES.get(path.rsplit(".", 1)[-1], REQUIRED_MESSAGE)
        else:
            message = err["msg"]
        errors.append(FieldError(path, message))
    return errors


def parse_case(data: Dict[str, Any]) -> CaseInput:
    """Validate raw case data and return the pydantic model.

    Raises
    ------
    CaseValidationError
        With one ``FieldError`` per problem found.
    """
    if not isinstance(data, dict):
        raise CaseValidationError([FieldError("", "Case record must be an object")])
    try:
        model = CaseInput.model_validate(normalize_keys(data))
    except ValidationError as exc:
        errors = _field_errors(exc)
        logger.debug("Case rejected with %d field errors", len(errors))
        raise CaseValidationError(errors) from exc
    errors = model.date_errors()
    if errors:
        logger.debug("Case rejected on period dates: %s", errors)
        raise CaseValidationError(errors)
    return model


def validate_case(data: Dict[str, Any]) -> CaseRecord:
    """Validate raw case data and convert it into a ``CaseRecord``."""
    return parse_case(data).to_case_record()


def validate_profile(data: Dict[str, Any]) -> ProfileInput:
    try:
        return ProfileInput.model_validate(normalize_keys(data))
    except ValidationError as exc:
        raise CaseValidationError(_field_errors(exc)) from exc
