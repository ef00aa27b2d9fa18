# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import itertools
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from synka_core.config import SyncSettings
from synka_core.context import SyncContext
from synka_core.errors import RemoteServiceError
from synka_core.offline import LocalDatabase
from synka_core.state import UserSession
from synka_core.utils import to_iso

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FakeClock:
    """Controllable "now"."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeRemote:
    """
    In-memory RemoteDataService.

    - ``fail`` holds (operation, table) pairs that raise RemoteServiceError
    - ``gates`` holds (operation, table) -> asyncio.Event; the call waits on it
    - ``calls`` records every (operation, table) in order
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self.fail: Set[Tuple[str, str]] = set()
        self.gates: Dict[Tuple[str, str], asyncio.Event] = {}
        self._ids = itertools.count(1)

    # --- helpers ---

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [self._store(table, row) for row in rows]

    def count(self, operation: str, table: Optional[str] = None) -> int:
        return sum(1 for op, tbl in self.calls if op == operation and (table is None or tbl == table))

    def _store(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        n = next(self._ids)
        stored = dict(row)
        stored.setdefault("id", f"{table}-{n}")
        stored.setdefault("created_at", to_iso(self.clock() + timedelta(microseconds=n)))
        self.tables[table].append(stored)
        return dict(stored)

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    @staticmethod
    def _project(row: Dict[str, Any], columns: str) -> Dict[str, Any]:
        if columns.strip() == "*":
            return dict(row)
        wanted = [c.strip() for c in columns.split(",")]
        return {c: row.get(c) for c in wanted}

    async def _enter(self, operation: str, table: str, record: bool = True) -> None:
        if record:
            self.calls.append((operation, table))
        gate = self.gates.get((operation, table))
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if (operation, table) in self.fail:
            raise RemoteServiceError(f"{operation} on {table} failed", table=table, operation=operation)

    # --- RemoteDataService ---

    async def list(self, table, filters=None, order_by=None, ascending=True, columns="*"):
        # Reads answer from the state at request time, even when held by a gate
        self.calls.append(("list", table))
        rows = [self._project(r, columns) for r in self.tables[table] if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=not ascending)
        await self._enter("list", table, record=False)
        return rows

    async def list_in(self, table, column, values, columns="*"):
        self.calls.append(("list_in", table))
        wanted = set(values)
        rows = [self._project(r, columns) for r in self.tables[table] if r.get(column) in wanted]
        await self._enter("list_in", table, record=False)
        return rows

    async def insert(self, table, rows):
        await self._enter("insert", table)
        batch = rows if isinstance(rows, list) else [rows]
        return [self._store(table, row) for row in batch]

    async def update(self, table, filters, values):
        await self._enter("update", table)
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        await self._enter("delete", table)
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]


class RecordingNotifier:
    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def notify(self, title: str, variant: str = "default") -> None:
        self.messages.append((title, variant))

    @property
    def titles(self) -> List[str]:
        return [title for title, _ in self.messages]


class RecordingLauncher:
    def __init__(self):
        self.urls: List[str] = []
        self.fail = False

    def open(self, url: str) -> None:
        if self.fail:
            raise OSError("no handler for URL")
        self.urls.append(url)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Clock frozen at T0 until advanced"""
    return FakeClock()


@pytest.fixture
def remote(clock):
    """Empty in-memory backend"""
    return FakeRemote(clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def settings(tmp_path):
    """Defaults with the local database under tmp_path"""
    return SyncSettings(data_dir=tmp_path)


@pytest.fixture
def database(tmp_path):
    db = LocalDatabase(tmp_path / "kv.db")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def context(settings, remote, notifier, clock):
    """SyncContext wired to the fakes"""
    ctx = SyncContext(settings, remote=remote, notifier=notifier, clock=clock)
    yield ctx
    ctx.database.close()


@pytest.fixture
def session():
    return UserSession(user_id="user-1", email="asha.owner@example.com", metadata={"name": "Asha Owner"})
