"""Conversion of case records and computed reports to JSON-ready dicts.

Case dictionaries use the camelCase keys of the report files exported by the
browser version of the calculator, so files can move freely between the two.
Amounts become floats and dates ISO strings.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict

from .data_models import CalculatedReport, CaseRecord


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _camel_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(k): _camel_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camel_keys(v) for v in value]
    return value


def case_to_dict(case: CaseRecord) -> Dict[str, Any]:
    """Serialize a case record with camelCase keys (``partyA``, ``cmsNo``...)."""
    data = _camel_keys(_plain(asdict(case)))
    data["counselName"] = case.counsel_name or ""
    if data["partialSatisfactionDate"] is None:
        del data["partialSatisfactionDate"]
    return data


def report_to_dict(report: CalculatedReport) -> Dict[str, Any]:
    """Serialize a computed report with camelCase keys."""
    data = _camel_keys(_plain(asdict(report)))
    if data["partialSatisfaction"] is None:
        del data["partialSatisfaction"]
    return data
