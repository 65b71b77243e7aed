import io
import json
import logging
import os
from datetime import datetime

from flask import Flask, flash, redirect, render_template, request, send_file, session, url_for

from decree_calc.engine import calculate_decree
from decree_calc.formatter import (
    DISCLAIMER,
    format_amount,
    format_date,
    format_pkr,
    generator_label,
    increase_type_label,
    receiver_label,
)
from decree_calc.report_store import ReportNotFoundError, create_store_from_env
from decree_calc.validators import CaseValidationError, normalize_keys, parse_case

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.config["DATABASE_URL"] = os.environ.get("DECREE_DATABASE_URL")
app.config["REPORT_STORE"] = None
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")

app.add_template_filter(format_amount, "amount")
app.add_template_filter(format_date, "date")
app.add_template_filter(format_pkr, "pkr")
app.add_template_filter(generator_label, "generator_label")
app.add_template_filter(increase_type_label, "increase_type_label")
app.add_template_filter(receiver_label, "receiver_label")

PUBLIC_ENDPOINTS = {"setup", "login", "forgot_pin", "static"}


def get_store():
    store = app.config["REPORT_STORE"]
    if store is None:
        store = create_store_from_env(app.config["DATABASE_URL"])
        app.config["REPORT_STORE"] = store
    return store


@app.before_request
def require_pin():
    if request.endpoint in PUBLIC_ENDPOINTS:
        return None
    if get_store().get_profile() is None:
        return redirect(url_for("setup"))
    if not session.get("unlocked"):
        return redirect(url_for("login"))
    return None


def _errors_by_path(exc: CaseValidationError) -> dict:
    return {error.path: error.message for error in exc.errors}


def parse_form_rows(form, prefix: str, names: list[str]) -> list[dict]:
    """Collect repeated form rows such as ``recipient_name``/``recipient_amount``.

    Rows where every field is empty are dropped.
    """
    columns = [form.getlist(f"{prefix}_{name}") for name in names]
    rows = []
    for values in zip(*columns):
        row = {name: value.strip() for name, value in zip(names, values)}
        if any(row.values()):
            rows.append(row)
    return rows


def _form_to_case(form) -> dict:
    return {
        "court_name": form.get("court_name", ""),
        "party_a": form.get("party_a", ""),
        "party_b": form.get("party_b", ""),
        "cms_no": form.get("cms_no", ""),
        "report_generator": form.get("report_generator", ""),
        "counsel_name": form.get("counsel_name", ""),
        "start_date": form.get("start_date", ""),
        "end_date": form.get("end_date", ""),
        "recipients": parse_form_rows(form, "recipient", ["name", "relationship", "amount"]),
        "yearly_increase": form.get("yearly_increase", "") or "0",
        "increase_type": form.get("increase_type", ""),
        "other_amounts": parse_form_rows(form, "other", ["description", "amount"]),
        "payments": parse_form_rows(form, "payment", ["date", "amount", "received_by"]),
        "partially_satisfied": form.get("partially_satisfied") == "1",
        "partial_satisfaction_date": form.get("partial_satisfaction_date", ""),
    }


def download_filename(cms_no: str) -> str:
    """Build ``report-<cms>.json`` with path separators replaced, e.g. 1234/2023."""
    safe = "".join("-" if ch in '/\\:*?"<>|' else ch for ch in cms_no.strip())
    return f"report-{safe}.json"


def _json_download(data, filename: str):
    # send_file adds an RFC 5987 filename* for non-ASCII (Urdu) names
    payload = io.BytesIO(json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8"))
    return send_file(payload, mimetype="application/json", as_attachment=True, download_name=filename)


@app.route("/setup", methods=["GET", "POST"])
def setup():
    store = get_store()
    if store.get_profile() is not None and not session.get("unlocked"):
        return redirect(url_for("login"))
    errors = {}
    if request.method == "POST":
        try:
            store.save_profile(request.form.to_dict())
        except CaseValidationError as exc:
            errors = _errors_by_path(exc)
        else:
            session["unlocked"] = True
            return redirect(url_for("index"))
    return render_template("setup.html", errors=errors, form=request.form, profile=store.get_profile())


@app.route("/login", methods=["GET", "POST"])
def login():
    store = get_store()
    profile = store.get_profile()
    if profile is None:
        return redirect(url_for("setup"))
    error = None
    if request.method == "POST":
        if store.check_pin(request.form.get("pin", "")):
            session["unlocked"] = True
            return redirect(url_for("index"))
        logger.info("Rejected PIN entry")
        error = "غلط پن"
    return render_template("login.html", profile=profile, error=error)


@app.post("/logout")
def logout():
    session.pop("unlocked", None)
    return redirect(url_for("login"))


@app.route("/forgot-pin", methods=["GET", "POST"])
def forgot_pin():
    errors = {}
    if request.method == "POST":
        try:
            reset = get_store().reset_pin(request.form.get("cnic", ""), request.form.get("pin", ""))
        except CaseValidationError as exc:
            errors = _errors_by_path(exc)
        else:
            if reset:
                flash("آپ کا پن کامیابی سے تبدیل ہو گیا ہے۔")
                return redirect(url_for("login"))
            errors = {"cnic": "CNIC نمبر درست نہیں ہے۔"}
    return render_template("forgot_pin.html", errors=errors)


@app.get("/")
def index():
    reports = get_store().list_reports()
    return render_template(
        "index.html",
        reports=reports,
        profile=get_store().get_profile(),
        asset_version=app.config["ASSET_VERSION"],
    )


@app.route("/report/new", methods=["GET", "POST"])
def new_report():
    errors = {}
    case = {"recipients": [{}], "increase_type": "progressive", "report_generator": "decree-holder"}
    if request.method == "POST":
        case = _form_to_case(request.form)
        try:
            report_id = get_store().add_report(case)
        except CaseValidationError as exc:
            errors = _errors_by_path(exc)
        else:
            return redirect(url_for("view_report", report_id=report_id))
    return render_template("report_form.html", case=case, errors=errors, report_id=None)


@app.route("/report/<report_id>/edit", methods=["GET", "POST"])
def edit_report(report_id):
    store = get_store()
    try:
        stored = store.get_report(report_id)
    except ReportNotFoundError:
        return render_template("not_found.html"), 404
    errors = {}
    case = normalize_keys(stored["case"])
    if request.method == "POST":
        case = _form_to_case(request.form)
        try:
            store.update_report(report_id, case)
        except CaseValidationError as exc:
            errors = _errors_by_path(exc)
        else:
            return redirect(url_for("view_report", report_id=report_id))
    return render_template("report_form.html", case=case, errors=errors, report_id=report_id)


@app.get("/report/<report_id>")
def view_report(report_id):
    try:
        stored = get_store().get_report(report_id)
    except ReportNotFoundError:
        return render_template("not_found.html"), 404
    report = calculate_decree(parse_case(stored["case"]).to_case_record())
    return render_template(
        "report_view.html",
        report=report,
        report_id=report_id,
        disclaimer=DISCLAIMER,
        generated_on=datetime.now().strftime("%d/%m/%Y %H:%M:%S"),
    )


@app.post("/report/<report_id>/delete")
def delete_report(report_id):
    try:
        get_store().delete_report(report_id)
    except ReportNotFoundError:
        return render_template("not_found.html"), 404
    flash("رپورٹ حذف کر دی گئی۔")
    return redirect(url_for("index"))


@app.get("/report/<report_id>/download")
def download_report(report_id):
    try:
        data = get_store().export_report(report_id)
    except ReportNotFoundError:
        return render_template("not_found.html"), 404
    return _json_download(data, download_filename(data.get("cmsNo") or report_id))


@app.get("/reports/download")
def download_all_reports():
    filename = f"all-sdc-reports-{datetime.now().date().isoformat()}.json"
    return _json_download(get_store().export_reports(), filename)


@app.post("/reports/import")
def import_reports():
    records = []
    unreadable = []
    for upload in request.files.getlist("files"):
        try:
            data = json.loads(upload.read().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Skipping unreadable upload %s", upload.filename)
            unreadable.append(upload.filename)
            continue
        records.extend(data if isinstance(data, list) else [data])
    result = get_store().import_reports(records)
    flash(
        f"{result.imported} رپورٹس درآمد، {result.updated} اپ ڈیٹ، "
        f"{len(result.skipped) + len(unreadable)} نظر انداز"
    )
    return redirect(url_for("index"))


if __name__ == "__main__":
    print("Starting Decree Calculator web app...")
    app.run(host="127.0.0.1", port=8710, debug=True)
