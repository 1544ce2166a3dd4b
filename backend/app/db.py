from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlmodel import Session, SQLModel, create_engine

log = logging.getLogger(__name__)


def _default_db_url() -> str:
    # Keep data out of git by default.
    data_dir = Path(os.environ.get("CLASSROOM_SEATING_DATA_DIR", Path.cwd() / "data"))
    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "classroom_seating.db"
    return f"sqlite:///{db_path}"


engine = create_engine(
    os.environ.get("CLASSROOM_SEATING_DB_URL", _default_db_url()),
    echo=False,
    connect_args={"check_same_thread": False},
)


def _maybe_migrate() -> None:
    # Minimal SQLite migrations for local dev; avoids requiring Alembic.
    # Layouts saved before updates-in-place existed have no updated_at column.
    try:
        with engine.connect() as conn:
            res = conn.exec_driver_sql("PRAGMA table_info('roomlayout')").fetchall()
            if not res:
                return
            cols = {r[1] for r in res}  # name is index 1
            if "updated_at" not in cols:
                conn.exec_driver_sql("ALTER TABLE roomlayout ADD COLUMN updated_at DATETIME")
            conn.commit()
    except Exception as e:  # noqa: BLE001 - keep startup resilient; dev can delete ./data DB
        log.warning("skipping sqlite migration: %s", e)


def init_db() -> None:
    from . import models  # noqa: F401 - ensure models are registered

    SQLModel.metadata.create_all(engine)
    _maybe_migrate()


def get_session() -> Session:
    return Session(engine)
