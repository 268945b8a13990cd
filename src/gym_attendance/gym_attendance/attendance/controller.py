from __future__ import annotations

import io
import logging
from typing import Optional

from flask import Flask, jsonify, request, send_file, session

from ..common.datetime_utils import parse_iso_date
from ..common.web import error_response, role_required
from ..core.enums import IdentifierKind, Role, ScanAction
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .model import AttendanceRecord, ScanOutcome
from .qr_codes import decode_qr_image, render_qr_png

logger = logging.getLogger(__name__)

_ACTION_MESSAGES = {
    ScanAction.CHECKED_IN: "Checked in",
    ScanAction.CHECKED_OUT: "Checked out",
    ScanAction.ALREADY_COMPLETED: "Visit already completed today",
}


def _record_json(r: AttendanceRecord) -> dict:
    return {
        "attendance_id": r.attendance_id,
        "member_id": r.member_id,
        "gym_id": r.gym_id,
        "attendance_date": r.attendance_date.isoformat(),
        "check_in_time": r.check_in_time.isoformat(timespec="seconds"),
        "check_out_time": r.check_out_time.isoformat(timespec="seconds") if r.check_out_time else None,
        "duration_minutes": r.duration_minutes,
        "needs_review": r.needs_review,
    }


def _outcome_json(outcome: ScanOutcome) -> dict:
    message = _ACTION_MESSAGES[outcome.action]
    if outcome.action == ScanAction.CHECKED_OUT:
        message = f"{message} after {outcome.duration_minutes} min"
    return {
        "success": True,
        "action": outcome.action.value,
        "message": message,
        "record": _record_json(outcome.record),
    }


def _parse_kind(value: Optional[str]) -> Optional[IdentifierKind]:
    if not value:
        return None
    try:
        return IdentifierKind(value.strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown identifier kind: {value}") from exc


def _parse_multi_session(value) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    raise ValidationError("multi_session must be true, false or null")


def register(app: Flask, container: Container) -> None:
    admin_required = role_required(Role.GYM_ADMIN)
    member_required = role_required(Role.MEMBER)

    def _requested_day(gym_id: int):
        raw = (request.args.get("date") or "").strip()
        if not raw:
            return container.attendance_engine.today_for(gym_id)
        try:
            return parse_iso_date(raw)
        except ValueError as exc:
            raise ValidationError("Date must be YYYY-MM-DD") from exc

    @app.route("/api/scan", methods=["POST"], endpoint="api_scan")
    @admin_required
    def api_scan():
        """Front-desk scan: a member card or typed identifier at the admin's gym."""
        data = request.get_json(silent=True) or {}
        try:
            multi_session = _parse_multi_session(data.get("multi_session"))
            outcome = container.attendance_engine.record_scan(
                str(data.get("identifier") or ""),
                (data.get("gym_qr_code") or "").strip() or None,
                container.clock(),
                kind=_parse_kind(data.get("kind")),
                gym_id=int(session["gym_id"]),
                multi_session=multi_session,
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("front-desk scan failed")
            return jsonify({"success": False, "code": "internal_error", "message": "System error while recording scan"}), 500
        return jsonify(_outcome_json(outcome)), 200

    def _member_checkin(gym_qr_code: str):
        outcome = container.attendance_engine.record_scan(
            str(session["member_id"]),
            gym_qr_code,
            container.clock(),
            kind=IdentifierKind.MEMBER_ID,
        )
        return jsonify(_outcome_json(outcome)), 200

    @app.route("/api/checkin/qr", methods=["POST"], endpoint="api_checkin_qr")
    @member_required
    def api_checkin_qr():
        """Self-service: the member's phone read the gym's printed QR code."""
        data = request.get_json(silent=True) or {}
        code = (data.get("gym_qr_code") or "").strip()
        if not code:
            return error_response(ValidationError("Gym QR code is required"))
        try:
            return _member_checkin(code)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("self check-in failed for member %s", session.get("member_id"))
            return jsonify({"success": False, "code": "internal_error", "message": "System error while checking in"}), 500

    @app.route("/api/checkin/qr/image", methods=["POST"], endpoint="api_checkin_qr_image")
    @member_required
    def api_checkin_qr_image():
        """Same as /api/checkin/qr for clients that upload a photo of the code."""
        upload = request.files.get("image")
        if upload is None or not upload.filename:
            return error_response(ValidationError("Image file is required"))
        try:
            code = decode_qr_image(upload.stream)
            return _member_checkin(code)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("image check-in failed for member %s", session.get("member_id"))
            return jsonify({"success": False, "code": "internal_error", "message": "System error while checking in"}), 500

    @app.route("/api/attendance", methods=["GET"], endpoint="api_attendance")
    @admin_required
    def api_attendance():
        gym_id = int(session["gym_id"])
        try:
            day = _requested_day(gym_id)
            report = container.report_service.build_daily_report(gym_id=gym_id, day=day)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "summary": report.summary, "rows": report.rows}), 200

    @app.route("/api/attendance/present", methods=["GET"], endpoint="api_attendance_present")
    @admin_required
    def api_attendance_present():
        gym_id = int(session["gym_id"])
        try:
            records = container.attendance_engine.currently_present(gym_id)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "count": len(records), "records": [_record_json(r) for r in records]}), 200

    @app.route("/api/attendance/report.csv", methods=["GET"], endpoint="api_attendance_report_csv")
    @admin_required
    def api_attendance_report_csv():
        gym_id = int(session["gym_id"])
        try:
            day = _requested_day(gym_id)
            report = container.report_service.build_daily_report(gym_id=gym_id, day=day)
        except DomainError as e:
            return error_response(e)

        payload = container.report_service.to_csv(report)
        return send_file(
            io.BytesIO(payload),
            mimetype="text/csv",
            as_attachment=True,
            download_name=f"attendance_{day.isoformat()}.csv",
        )

    @app.route("/admin/qr/image", methods=["GET"], endpoint="admin_qr_image")
    @admin_required
    def admin_qr_image():
        """PNG of the gym's check-in code, for printing at the entrance."""
        gym = container.directory.get_gym(int(session["gym_id"]))
        if not gym:
            return jsonify({"success": False, "code": "gym_not_found", "message": "Gym not found"}), 404
        return send_file(io.BytesIO(render_qr_png(gym.gym_qr_code)), mimetype="image/png")
