"""Tests for lightweight SQLite schema migrations."""

import json
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from restopos.db.migrations import ensure_local_schema


def _build_legacy_engine(db_file: Path) -> Engine:
    engine = create_engine(f"sqlite:///{db_file}", connect_args={"check_same_thread": False})
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE staff (id INTEGER PRIMARY KEY, name VARCHAR(128) NOT NULL UNIQUE, created_at DATETIME)"))
        connection.execute(
            text(
                """
                CREATE TABLE orders (
                    id INTEGER PRIMARY KEY,
                    table_id INTEGER NOT NULL,
                    staff_name VARCHAR(128) NOT NULL,
                    status VARCHAR(16) NOT NULL,
                    total NUMERIC(10, 2) NOT NULL,
                    created_at DATETIME,
                    completed_at DATETIME
                )
                """
            )
        )
        connection.execute(text("INSERT INTO staff (id, name) VALUES (1, 'Ravi'), (2, 'Anita')"))
        connection.execute(
            text(
                "INSERT INTO orders (table_id, staff_name, status, total) "
                "VALUES (1, 'Ravi', 'pending', 10), (2, 'Ghost', 'pending', 5)"
            )
        )
    return engine


def test_legacy_store_gains_staff_columns_and_permissions(tmp_path: Path) -> None:
    engine = _build_legacy_engine(tmp_path / "legacy.db")

    ensure_local_schema(engine)

    with engine.connect() as connection:
        staff_columns = {row[1] for row in connection.execute(text("PRAGMA table_info(staff)"))}
        roles = connection.execute(text("SELECT DISTINCT role FROM staff")).scalars().all()
        order_staff = connection.execute(text("SELECT staff_name, staff_id FROM orders ORDER BY id")).all()
        permissions = connection.execute(
            text("SELECT staff_id, can_view_all_orders, allowed_staff_ids FROM staff_permissions ORDER BY staff_id")
        ).all()
        tables = set(connection.execute(text("SELECT name FROM sqlite_master WHERE type='table'")).scalars())

    assert {"email", "role"} <= staff_columns
    assert roles == ["staff"]
    assert [tuple(row) for row in order_staff] == [("Ravi", 1), ("Ghost", None)]
    assert [(row[0], row[1], json.loads(row[2])) for row in permissions] == [(1, 0, []), (2, 0, [])]
    assert "audit_logs" in tables


def test_schema_update_is_idempotent(tmp_path: Path) -> None:
    engine = _build_legacy_engine(tmp_path / "legacy.db")

    ensure_local_schema(engine)
    ensure_local_schema(engine)

    with engine.connect() as connection:
        count = connection.execute(text("SELECT COUNT(*) FROM staff_permissions")).scalar_one()
    assert count == 2
