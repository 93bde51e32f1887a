"""Load demo courses, lecture videos and enrolled students from database/seed.sql."""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.video_attendance.video_attendance.database.bootstrap import (
    apply_seed_sql,
    list_tables,
    missing_attendance_tables,
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    missing = missing_attendance_tables(list_tables(db_config))
    if missing:
        raise SystemExit(f"Missing tables {', '.join(missing)}: run scripts/init_db.py first")

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    print(
        "OK: Seeded demo lectures and students -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
