from __future__ import annotations

import csv
import io

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.web import capability_required, error_response, require_course_access, system_error_response
from ..container import Container
from ..core.capabilities import Capability
from ..core.exceptions import DomainError

CSV_FIELDS = ["week", "date", "student_id", "full_name", "student_number", "status", "attendance_type", "submitted_at"]


def register(app: Flask, container: Container) -> None:
    def _week_arg():
        week_s = request.args.get("week")
        return week_s if week_s not in (None, "") else None

    @app.route("/api/courses/<int:course_id>/attendance", methods=["GET"], endpoint="api_course_attendance")
    @capability_required(Capability.VIEW_REPORTS)
    def api_course_attendance(course_id: int):
        """Weekly statistics plus per-date present/absent breakdown."""
        try:
            require_course_access(container.roster_repo, course_id)
            report = container.report_service.weekly_report(course_id, _week_arg())
            return jsonify({"success": True, **report.to_dict()}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while building attendance report")

    @app.route("/api/courses/<int:course_id>/attendance.csv", methods=["GET"], endpoint="api_course_attendance_csv")
    @capability_required(Capability.VIEW_REPORTS)
    def api_course_attendance_csv(course_id: int):
        try:
            require_course_access(container.roster_repo, course_id)
            week = _week_arg()
            report = container.report_service.weekly_report(course_id, week)
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while exporting attendance report")

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in container.report_service.csv_rows(report):
            writer.writerow(row)

        suffix = f"week{report.week:02d}" if report.week else "all_weeks"
        filename = f"course_{course_id}_attendance_{suffix}.csv"
        return app.response_class(
            out.getvalue().encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route(
        "/api/courses/<int:course_id>/attendance/date/<date_s>",
        methods=["GET"],
        endpoint="api_course_attendance_date",
    )
    @capability_required(Capability.VIEW_REPORTS)
    def api_course_attendance_date(course_id: int, date_s: str):
        try:
            require_course_access(container.roster_repo, course_id)
            day = container.report_service.daily_report(course_id, parse_iso_date(date_s))
            return jsonify({"success": True, **day}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while building attendance report")
