"""Persistence layer for saved decree reports and the local user profile.

Reports are kept in a local database through SQLAlchemy. Each row holds the
case record as entered (the source of truth) together with a cached copy of
the computed report, which is refreshed whenever the case is saved. It
defaults to SQLite in the working directory, but accepts any
SQLAlchemy-compatible URL.

The calculator has a single local user whose PIN gates access to the saved
reports. The PIN is stored hashed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker
from werkzeug.security import check_password_hash, generate_password_hash

from .engine import calculate_decree
from .serialization import case_to_dict, report_to_dict
from .validators import (
    CaseValidationError,
    FieldError,
    check_cnic_format,
    check_pin_format,
    parse_case,
    validate_profile,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///decree_reports.sqlite3"


class ReportNotFoundError(KeyError):
    """Raised when no report exists with the requested id."""


class ReportModel(Base):
    __tablename__ = "decree_reports"

    id = Column(String(64), primary_key=True)
    cms_no = Column(String(255), nullable=False)
    party_a = Column(String(255), nullable=False)
    party_b = Column(String(255), nullable=False)
    case_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProfileModel(Base):
    __tablename__ = "user_profile"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    designation = Column(String(255), nullable=False)
    cnic = Column(String(15), nullable=False)
    pin_hash = Column(String(255), nullable=False)


@dataclass
class ImportResult:
    imported: int = 0
    updated: int = 0
    skipped: List[str] = field(default_factory=list)


class ReportStore:
    """Database-backed report store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    # Reports

    def list_reports(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows: Iterable[ReportModel] = session.execute(
                select(ReportModel).order_by(ReportModel.created_at.desc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def get_report(self, report_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = session.get(ReportModel, report_id)
            if row is None:
                raise ReportNotFoundError(report_id)
            return self._to_dict(row)

    def add_report(self, case_data: Dict[str, Any], report_id: Optional[str] = None) -> str:
        """Validate, compute and store a new report; return its id."""
        case_dict, result = self._compute(case_data)
        report_id = report_id or uuid4().hex
        row = ReportModel(id=report_id, case_json=json.dumps(case_dict), result_json=json.dumps(result))
        self._apply_case_columns(row, case_dict)
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        logger.info("Saved report %s (CMS %s)", report_id, case_dict["cmsNo"])
        return report_id

    def update_report(self, report_id: str, case_data: Dict[str, Any]) -> None:
        case_dict, result = self._compute(case_data)
        with self._session_factory() as session:
            row = session.get(ReportModel, report_id)
            if row is None:
                raise ReportNotFoundError(report_id)
            row.case_json = json.dumps(case_dict)
            row.result_json = json.dumps(result)
            self._apply_case_columns(row, case_dict)
            session.commit()
        logger.info("Updated report %s", report_id)

    def delete_report(self, report_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(ReportModel, report_id)
            if row is None:
                raise ReportNotFoundError(report_id)
            session.delete(row)
            session.commit()

    def has_report(self, report_id: str) -> bool:
        with self._session_factory() as session:
            return session.get(ReportModel, report_id) is not None

    def import_reports(self, records: Iterable[Any]) -> ImportResult:
        """Import exported report records, skipping any that do not validate.

        A record whose id already exists replaces the stored case; records
        without an id are stored under a new one.
        """
        result = ImportResult()
        for index, record in enumerate(records):
            report_id = str(record["id"]) if isinstance(record, dict) and record.get("id") else None
            label = report_id or f"#{index + 1}"
            try:
                if report_id and self.has_report(report_id):
                    self.update_report(report_id, record)
                    result.updated += 1
                else:
                    self.add_report(record, report_id=report_id)
                    result.imported += 1
            except CaseValidationError as exc:
                logger.warning("Skipping report %s: %s", label, exc)
                result.skipped.append(label)
        return result

    def export_reports(self) -> List[Dict[str, Any]]:
        """Return every stored case in the exported file format."""
        return [self._export_dict(row) for row in self.list_reports()]

    def export_report(self, report_id: str) -> Dict[str, Any]:
        return self._export_dict(self.get_report(report_id))

    # Profile

    def get_profile(self) -> Optional[Dict[str, str]]:
        with self._session_factory() as session:
            row = session.execute(select(ProfileModel)).scalars().first()
            if row is None:
                return None
            return {"name": row.name, "designation": row.designation, "cnic": row.cnic}

    def save_profile(self, data: Dict[str, Any]) -> None:
        """Create or replace the local profile (name, designation, PIN, CNIC)."""
        profile = validate_profile(data)
        with self._session_factory() as session:
            row = session.execute(select(ProfileModel)).scalars().first()
            if row is None:
                row = ProfileModel()
                session.add(row)
            row.name = profile.name
            row.designation = profile.designation
            row.cnic = profile.cnic
            row.pin_hash = generate_password_hash(profile.pin)
            session.commit()

    def check_pin(self, pin: str) -> bool:
        with self._session_factory() as session:
            row = session.execute(select(ProfileModel)).scalars().first()
            return row is not None and check_password_hash(row.pin_hash, str(pin))

    def reset_pin(self, cnic: str, new_pin: str) -> bool:
        """Replace the PIN when ``cnic`` matches the stored profile."""
        errors = []
        for path, check, value in (("cnic", check_cnic_format, cnic), ("pin", check_pin_format, new_pin)):
            try:
                check(value)
            except ValueError as exc:
                errors.append(FieldError(path, str(exc)))
        if errors:
            raise CaseValidationError(errors)
        cnic, new_pin = cnic.strip(), new_pin.strip()
        with self._session_factory() as session:
            row = session.execute(select(ProfileModel)).scalars().first()
            if row is None or row.cnic != cnic:
                return False
            row.pin_hash = generate_password_hash(new_pin)
            session.commit()
        return True

    @staticmethod
    def _compute(case_data: Dict[str, Any]):
        case = parse_case(case_data).to_case_record()
        return case_to_dict(case), report_to_dict(calculate_decree(case))

    @staticmethod
    def _apply_case_columns(row: ReportModel, case_dict: Dict[str, Any]) -> None:
        row.cms_no = case_dict["cmsNo"]
        row.party_a = case_dict["partyA"]
        row.party_b = case_dict["partyB"]

    @staticmethod
    def _export_dict(report: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": report["id"], "createdAt": report["created_at"], **report["case"]}

    @staticmethod
    def _to_dict(row: ReportModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "cms_no": row.cms_no,
            "party_a": row.party_a,
            "party_b": row.party_b,
            "case": json.loads(row.case_json),
            "result": json.loads(row.result_json),
            "created_at": row.created_at.isoformat(),
            "updated_at": row.updated_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> ReportStore:
    return ReportStore(url or DEFAULT_DATABASE_URL)
