from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.gym_attendance.gym_attendance.database.bootstrap import apply_seed_sql, ensure_demo_credentials


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    ensure_demo_credentials(db_config)

    print(
        "OK: Seeded demo gyms and members -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )
    print("  gym admin: downtown_admin / admin123")
    print("  members:   john, jane, mike (suspended) / member123")


if __name__ == "__main__":
    main()
