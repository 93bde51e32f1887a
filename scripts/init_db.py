"""Create the video attendance schema.

Applies database/schema.sql (course materials, watch sessions, the
attendance ledger and its change audit) to the database named by the active
settings module, then checks that every table the watch-time pipeline
writes to exists.
"""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.video_attendance.video_attendance.database.bootstrap import (
    apply_schema,
    list_tables,
    missing_attendance_tables,
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    missing = missing_attendance_tables(list_tables(db_config))
    if missing:
        raise SystemExit(f"Attendance schema incomplete on {target}: missing {', '.join(missing)}")
    print(f"OK: Attendance schema ready on {target} (sessions, ledger and audit tables present)")


if __name__ == "__main__":
    main()
