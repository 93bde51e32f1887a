from __future__ import annotations

from flask import Flask, jsonify, request

from .model import AttendanceKey
from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_positive_int
from ..common.web import (
    capability_required,
    current_user_id,
    error_response,
    require_course_access,
    system_error_response,
)
from ..container import Container
from ..core.capabilities import Capability
from ..core.exceptions import DomainError, NotFoundError, ValidationError


def register(app: Flask, container: Container) -> None:
    def _course_material(course_id: int, material_id: int):
        material = container.materials_repo.get_config(material_id)
        if not material or material.course_id != course_id:
            raise NotFoundError(f"Material {material_id} not found in course {course_id}")
        return material

    @app.route("/api/courses/<int:course_id>/attendance/manual", methods=["POST"], endpoint="api_attendance_manual")
    @capability_required(Capability.OVERRIDE_ATTENDANCE)
    def api_attendance_manual(course_id: int):
        """Lecturer override; supersedes an automatic record for the same key."""
        data = request.get_json(silent=True) or {}
        try:
            require_course_access(container.roster_repo, course_id)
            material_id = require_positive_int(data.get("material_id"), "material_id")
            _course_material(course_id, material_id)

            date_s = data.get("date")
            if not date_s:
                raise ValidationError("date is required")

            key = AttendanceKey(
                require_positive_int(data.get("student_id"), "student_id"),
                material_id,
                parse_iso_date(date_s),
            )
            result = container.ledger_service.record_manual(
                key,
                data.get("status", ""),
                actor_id=current_user_id(),
                note=data.get("note"),
            )
            return jsonify(
                {
                    "success": True,
                    "created": result.created,
                    "record": result.record.to_dict() if result.record else None,
                    "superseded": result.superseded.to_dict() if result.superseded else None,
                }
            ), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while saving attendance")

    @app.route("/api/courses/<int:course_id>/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @capability_required(Capability.OVERRIDE_ATTENDANCE)
    def api_attendance_history(course_id: int):
        """Current record for one key plus its supersession audit trail."""
        try:
            require_course_access(container.roster_repo, course_id)
            material_id = require_positive_int(request.args.get("material_id"), "material_id")
            _course_material(course_id, material_id)
            student_id = require_positive_int(request.args.get("student_id"), "student_id")
            attendance_date = parse_iso_date(request.args.get("date"))

            record = container.ledger_service.get(student_id, material_id, attendance_date)
            changes = container.ledger_service.history(student_id, material_id, attendance_date)
            return jsonify(
                {
                    "success": True,
                    "record": record.to_dict() if record else None,
                    "changes": [c.to_dict() for c in changes],
                }
            ), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while loading attendance history")
