from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.web import capability_required, current_user_id, error_response, system_error_response
from ..container import Container
from ..core.capabilities import Capability
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/materials/<int:material_id>/progress", methods=["POST"], endpoint="api_progress_report")
    @capability_required(Capability.TRACK_PROGRESS)
    def api_progress_report(material_id: int):
        """Video player progress report: one watched range of the material."""
        data = request.get_json(silent=True) or {}
        try:
            result = container.progress_service.record_progress(
                student_id=current_user_id(),
                material_id=material_id,
                watched_from=data.get("watched_from"),
                watched_to=data.get("watched_to"),
                client_timestamp=data.get("client_timestamp"),
            )
            return jsonify({"success": True, **result.to_dict()}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while recording progress")

    @app.route("/api/materials/<int:material_id>/progress", methods=["GET"], endpoint="api_progress_get")
    @capability_required(Capability.TRACK_PROGRESS)
    def api_progress_get(material_id: int):
        try:
            date_s = request.args.get("date")
            result = container.progress_service.get_progress(
                student_id=current_user_id(),
                material_id=material_id,
                watch_date=parse_iso_date(date_s) if date_s else None,
            )
            return jsonify({"success": True, **result.to_dict()}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while loading progress")

    @app.route("/api/materials/<int:material_id>/progress/end", methods=["POST"], endpoint="api_progress_end")
    @capability_required(Capability.TRACK_PROGRESS)
    def api_progress_end(material_id: int):
        try:
            result = container.progress_service.end_session(student_id=current_user_id(), material_id=material_id)
            return jsonify({"success": True, **result.to_dict()}), 200
        except DomainError as e:
            return error_response(e)
        except Exception:
            return system_error_response("System error while ending watch session")
