"""Example: drive the services directly (no Flask).

Replays a student watching the seeded week-1 lecture in three chunks, then
prints the course's weekly report.
"""

import importlib
import json

from config import get_settings_module

from src.video_attendance.video_attendance.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    for watched_from, watched_to in [(0, 200), (150, 400), (400, 500)]:
        result = container.progress_service.record_progress(
            student_id=11,
            material_id=1,
            watched_from=watched_from,
            watched_to=watched_to,
        )
        print(f"[{watched_from}, {watched_to}) -> coverage={result.coverage_ratio:.2f} state={result.state.value}")

    report = container.report_service.weekly_report(course_id=1, week=1)
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
