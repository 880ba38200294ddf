"""Lightweight schema migrations for SQLite databases."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from restopos.utils.time import utcnow

logger = logging.getLogger(__name__)


def _sqlite_column_names(connection: Connection, table_name: str) -> set[str]:
    """Return column names for a SQLite table using PRAGMA table_info."""
    rows = connection.execute(text(f"PRAGMA table_info({table_name});")).mappings().all()
    return {str(row["name"]) for row in rows}


def _sqlite_table_names(connection: Connection) -> set[str]:
    rows = connection.execute(text("SELECT name FROM sqlite_master WHERE type='table';")).all()
    return {str(row[0]) for row in rows}


def ensure_local_schema(engine: Engine) -> None:
    """Apply lightweight schema updates for legacy SQLite databases.

    Stores created before staff accounts and permissions existed lack the
    ``staff.email``, ``staff.role`` and ``orders.staff_id`` columns as well as
    the ``staff_permissions`` and ``audit_logs`` tables.
    """
    if engine.dialect.name != "sqlite":
        return

    with engine.begin() as connection:
        table_names: set[str] = _sqlite_table_names(connection)

        if "staff" in table_names:
            staff_columns: set[str] = _sqlite_column_names(connection, "staff")
            if "email" not in staff_columns:
                connection.execute(text("ALTER TABLE staff ADD COLUMN email VARCHAR(255) NULL"))
                logger.info("Added staff.email column")
            if "role" not in staff_columns:
                connection.execute(text("ALTER TABLE staff ADD COLUMN role VARCHAR(32) NOT NULL DEFAULT 'staff'"))
                logger.info("Added staff.role column")

        if "orders" in table_names:
            order_columns: set[str] = _sqlite_column_names(connection, "orders")
            if "staff_id" not in order_columns:
                connection.execute(text("ALTER TABLE orders ADD COLUMN staff_id INTEGER NULL REFERENCES staff(id)"))
                connection.execute(
                    text(
                        """
                        UPDATE orders
                        SET staff_id = (SELECT staff.id FROM staff WHERE staff.name = orders.staff_name)
                        WHERE staff_id IS NULL
                        """
                    )
                )
                logger.info("Added orders.staff_id column")

        if "staff_permissions" not in table_names:
            connection.execute(
                text(
                    """
                    CREATE TABLE staff_permissions (
                        id INTEGER PRIMARY KEY,
                        staff_id INTEGER NOT NULL UNIQUE REFERENCES staff(id) ON DELETE CASCADE,
                        can_view_all_orders BOOLEAN NOT NULL DEFAULT 0,
                        allowed_staff_ids JSON NOT NULL DEFAULT '[]',
                        updated_at DATETIME NOT NULL
                    )
                    """
                )
            )
            table_names.add("staff_permissions")

        if "audit_logs" not in table_names:
            connection.execute(
                text(
                    """
                    CREATE TABLE audit_logs (
                        id INTEGER PRIMARY KEY,
                        actor_name VARCHAR(128) NULL,
                        action VARCHAR(16) NOT NULL,
                        entity_type VARCHAR(32) NOT NULL,
                        entity_id INTEGER NULL,
                        old_values JSON NULL,
                        new_values JSON NULL,
                        created_at DATETIME NOT NULL
                    )
                    """
                )
            )
            table_names.add("audit_logs")

        if "staff" in table_names:
            now_iso: str = utcnow().isoformat(sep=" ", timespec="seconds")
            created = connection.execute(
                text(
                    """
                    INSERT INTO staff_permissions (staff_id, can_view_all_orders, allowed_staff_ids, updated_at)
                    SELECT staff.id, 0, '[]', :updated_at
                    FROM staff
                    WHERE staff.id NOT IN (SELECT staff_id FROM staff_permissions)
                    """
                ),
                {"updated_at": now_iso},
            )
            if created.rowcount:
                logger.info("Created default permissions for %s staff members", created.rowcount)
