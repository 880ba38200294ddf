"""Shared fixtures: local store wiring and an in-memory PostgREST service."""

from __future__ import annotations

import json
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from restopos.db import session as db_session
from restopos.db.base import Base

CONTROL_PARAMS = {"select", "order", "limit", "on_conflict", "or"}
UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "staff": ("name",),
    "staff_permissions": ("staff_id",),
    "bills": ("bill_number",),
    "settings": ("key",),
}
TIMESTAMP_COLUMNS: dict[str, tuple[str, ...]] = {
    "menu": ("created_at",),
    "staff": ("created_at",),
    "staff_permissions": ("updated_at",),
    "orders": ("created_at",),
    "kitchen_orders": ("sent_at",),
    "bills": ("created_at",),
    "audit_logs": ("created_at",),
}


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def local_store(tmp_path: Path, monkeypatch) -> sessionmaker:
    """Point the module-level engine and session factory at a per-test SQLite file."""
    engine = _build_test_engine(tmp_path / "restopos_test.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    return testing_session_local


def _matches(row: dict[str, Any], column: str, expression: str) -> bool:
    operator, _, operand = expression.partition(".")
    value = row.get(column)
    if operator == "eq":
        return str(value) == operand
    if operator == "gt":
        return value is not None and float(value) > float(operand)
    if operator == "gte":
        return value is not None and str(value) >= operand
    raise AssertionError(f"unsupported filter {expression}")


def _matches_or(row: dict[str, Any], expression: str) -> bool:
    for clause in expression.strip("()").split(","):
        column, operator, pattern = clause.split(".", 2)
        assert operator == "ilike"
        if pattern.strip("*").lower() in str(row.get(column, "")).lower():
            return True
    return False


class FakePostgrest:
    """Enough of PostgREST's table API to exercise the managed backend."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.next_ids: dict[str, int] = defaultdict(lambda: 1)
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], int] = {}
        self.unavailable = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail(self, method: str, table: str, times: int = 1) -> None:
        self.failures[(method, table)] = times

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables[table]

    def _filtered(self, table: str, params: httpx.QueryParams) -> list[dict[str, Any]]:
        rows = list(self.tables[table])
        for column, expression in params.multi_items():
            if column in CONTROL_PARAMS:
                continue
            rows = [row for row in rows if _matches(row, column, expression)]
        if "or" in params:
            rows = [row for row in rows if _matches_or(row, params["or"])]
        return rows

    def _shape(self, table: str, rows: list[dict[str, Any]], params: httpx.QueryParams) -> list[dict[str, Any]]:
        select = params.get("select", "*")
        shaped = []
        for row in rows:
            if select == "*" or "(" in select:
                item = dict(row)
            else:
                item = {column: row.get(column) for column in select.split(",")}
            if "order_items(*)" in select:
                item["order_items"] = [dict(line) for line in self.tables["order_items"] if line["order_id"] == row["id"]]
            shaped.append(item)
        for clause in reversed(params.get("order", "").split(",") if params.get("order") else []):
            column, _, direction = clause.partition(".")
            shaped.sort(key=lambda item: (item.get(column) is None, item.get(column)), reverse=direction == "desc")
        if "limit" in params:
            shaped = shaped[: int(params["limit"])]
        return shaped

    def _error(self, status: int, code: str, message: str) -> httpx.Response:
        return httpx.Response(status, json={"code": code, "message": message})

    def _insert(self, table: str, body: Any, params: httpx.QueryParams, prefer: str) -> httpx.Response:
        incoming = body if isinstance(body, list) else [body]
        merge = "merge-duplicates" in prefer
        conflict_column = params.get("on_conflict")
        now = datetime.now(timezone.utc).isoformat()

        staged: list[dict[str, Any]] = []
        updates: list[tuple[dict[str, Any], dict[str, Any]]] = []
        for values in incoming:
            if table == "menu" and float(values.get("price", 0)) < 0:
                return self._error(400, "23514", 'new row for relation "menu" violates check constraint')
            if merge and conflict_column:
                existing = next(
                    (row for row in self.tables[table] if row.get(conflict_column) == values.get(conflict_column)),
                    None,
                )
                if existing is not None:
                    updates.append((existing, values))
                    continue
            for column in UNIQUE_COLUMNS.get(table, ()):
                taken = {row.get(column) for row in self.tables[table]} | {row.get(column) for row in staged}
                if values.get(column) in taken:
                    return self._error(409, "23505", f'duplicate key value violates unique constraint "{table}_{column}_key"')
            row = dict(values)
            if table != "settings":
                row.setdefault("id", None)
            for column in TIMESTAMP_COLUMNS.get(table, ()):
                row.setdefault(column, now)
            staged.append(row)

        for row in staged:
            if "id" in row and row["id"] is None:
                row["id"] = self.next_ids[table]
                self.next_ids[table] += 1
            self.tables[table].append(row)
        for existing, values in updates:
            existing.update(values)

        result = staged + [existing for existing, _ in updates]
        if "return=representation" in prefer:
            return httpx.Response(201, json=result)
        return httpx.Response(201)

    def handle(self, request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit("/", 1)[-1]
        method = request.method
        self.calls.append((method, table))
        if self.unavailable:
            raise httpx.ConnectError("service unreachable", request=request)

        remaining = self.failures.get((method, table), 0)
        if remaining:
            self.failures[(method, table)] = remaining - 1
            return self._error(400, "XX000", f"injected failure on {method} {table}")

        params = request.url.params
        prefer = request.headers.get("Prefer", "")
        body = json.loads(request.content) if request.content else None

        if method == "GET":
            return httpx.Response(200, json=self._shape(table, self._filtered(table, params), params))
        if method == "POST":
            return self._insert(table, body, params, prefer)
        if method == "PATCH":
            rows = self._filtered(table, params)
            for row in rows:
                row.update(body)
            return httpx.Response(200, json=[dict(row) for row in rows]) if "return=representation" in prefer else httpx.Response(204)
        if method == "DELETE":
            rows = self._filtered(table, params)
            ids = {id(row) for row in rows}
            self.tables[table] = [row for row in self.tables[table] if id(row) not in ids]
            if table == "staff":
                gone = {row["id"] for row in rows}
                self.tables["staff_permissions"] = [
                    row for row in self.tables["staff_permissions"] if row["staff_id"] not in gone
                ]
            if table == "orders":
                gone = {row["id"] for row in rows}
                self.tables["order_items"] = [row for row in self.tables["order_items"] if row["order_id"] not in gone]
            return httpx.Response(200, json=rows) if "return=representation" in prefer else httpx.Response(204)
        raise AssertionError(f"unexpected method {method}")


@pytest.fixture
def fake_postgrest() -> FakePostgrest:
    return FakePostgrest()
