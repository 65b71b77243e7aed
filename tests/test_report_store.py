"""
Tests for the SQLAlchemy report store.

Verifies:
- Saving a case caches the computed report next to it
- Update, delete and lookup by id
- Best-effort import skips invalid records and keeps the rest
- The single local profile and its PIN
"""

import pytest

from decree_calc.report_store import ReportNotFoundError
from decree_calc.validators import CaseValidationError

PROFILE = {"name": "Imran", "designation": "Clerk", "pin": "1234", "cnic": "35202-1234567-1"}


class TestReports:
    """CRUD on stored reports."""

    def test_add_and_get(self, store, case_data):
        report_id = store.add_report(case_data)
        stored = store.get_report(report_id)
        assert stored["cms_no"] == "1234/2023"
        assert stored["case"]["partyA"] == "Ayesha Bibi"
        assert stored["case"]["startDate"] == "2020-01-01"
        summary = stored["result"]["summary"]
        assert summary["grandTotalMaintenance"] == pytest.approx(397200)
        assert summary["finalOutstandingAmount"] == pytest.approx(427200)

    def test_add_invalid_case_raises(self, store, case_data):
        case_data["recipients"] = []
        with pytest.raises(CaseValidationError):
            store.add_report(case_data)
        assert store.list_reports() == []

    def test_update_recomputes_result(self, store, case_data):
        report_id = store.add_report(case_data)
        case_data["payments"] = []
        case_data["cms_no"] = "99/2024"
        store.update_report(report_id, case_data)
        stored = store.get_report(report_id)
        assert stored["cms_no"] == "99/2024"
        assert stored["result"]["summary"]["totalPayments"] == 0
        assert stored["result"]["summary"]["finalOutstandingAmount"] == pytest.approx(447200)

    def test_delete(self, store, case_data):
        report_id = store.add_report(case_data)
        store.delete_report(report_id)
        with pytest.raises(ReportNotFoundError):
            store.get_report(report_id)
        with pytest.raises(ReportNotFoundError):
            store.delete_report(report_id)

    def test_list(self, store, case_data):
        first = store.add_report(case_data)
        second = store.add_report(case_data)
        assert {r["id"] for r in store.list_reports()} == {first, second}

    def test_export_round_trips_through_import(self, store, case_data):
        report_id = store.add_report(case_data)
        exported = store.export_report(report_id)
        assert exported["id"] == report_id
        assert exported["cmsNo"] == "1234/2023"
        result = store.import_reports([exported])
        assert (result.imported, result.updated, result.skipped) == (0, 1, [])


class TestImport:
    """Best-effort import."""

    def test_skips_invalid_records(self, store, case_data, caplog):
        invalid = dict(case_data, id="bad-one", party_a="")
        records = [dict(case_data, id="keep-me"), invalid, dict(case_data), "garbage"]
        result = store.import_reports(records)
        assert result.imported == 2
        assert result.updated == 0
        assert result.skipped == ["bad-one", "#4"]
        assert store.has_report("keep-me")
        assert not store.has_report("bad-one")
        assert "Skipping report bad-one" in caplog.text

    def test_existing_id_is_replaced(self, store, case_data):
        store.import_reports([dict(case_data, id="r1")])
        result = store.import_reports([dict(case_data, id="r1", cms_no="55/2021")])
        assert (result.imported, result.updated) == (0, 1)
        assert store.get_report("r1")["cms_no"] == "55/2021"


class TestProfile:
    """The local PIN gate."""

    def test_no_profile(self, store):
        assert store.get_profile() is None
        assert store.check_pin("1234") is False

    def test_save_and_check_pin(self, store):
        store.save_profile(PROFILE)
        assert store.get_profile() == {"name": "Imran", "designation": "Clerk", "cnic": "35202-1234567-1"}
        assert store.check_pin("1234")
        assert not store.check_pin("4321")

    def test_invalid_profile(self, store):
        with pytest.raises(CaseValidationError):
            store.save_profile(dict(PROFILE, pin="12"))

    def test_reset_pin_with_matching_cnic(self, store):
        store.save_profile(PROFILE)
        assert store.reset_pin("35202-1234567-1", "9999")
        assert store.check_pin("9999")
        assert not store.check_pin("1234")

    def test_reset_pin_with_wrong_cnic(self, store):
        store.save_profile(PROFILE)
        assert not store.reset_pin("35202-7654321-1", "9999")
        assert store.check_pin("1234")

    def test_reset_pin_validates_format(self, store):
        store.save_profile(PROFILE)
        with pytest.raises(CaseValidationError) as exc_info:
            store.reset_pin("35202-1234567-1", "99")
        assert [e.path for e in exc_info.value.errors] == ["pin"]
