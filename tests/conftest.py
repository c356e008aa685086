"""
Shared test fixtures.

Services run against InMemoryStore and VirtualScheduler; the Supabase
backend is exercised through MockSupabaseClient.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import Generator

from services.store import InMemoryStore
from services.order_cache import OrderCache
from services.scheduler import VirtualScheduler
from tests.factories import OrderRowFactory

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None):
        self.data = data or []
        self.count = len(self.data)


class MockSupabaseQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, table: "MockSupabaseTable", action: str = "select", payload=None, on_conflict=None):
        self._table = table
        self._action = action
        self._payload = payload
        self._on_conflict = on_conflict
        self._filters: list[tuple] = []
        self._range: tuple = None
        self._limit: int = None

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self) -> MockSupabaseResponse:
        if self._table.fail_with is not None:
            raise self._table.fail_with

        rows = self._table.rows
        if self._action == "upsert":
            key = self._on_conflict
            rows[:] = [row for row in rows if row.get(key) != self._payload.get(key)]
            rows.append(dict(self._payload))
            return MockSupabaseResponse([dict(self._payload)])

        if self._action == "delete":
            removed = [row for row in rows if self._matches(row)]
            rows[:] = [row for row in rows if not self._matches(row)]
            return MockSupabaseResponse(removed)

        data = [dict(row) for row in rows if self._matches(row)]
        if self._range is not None:
            start, end = self._range
            data = data[start:end + 1]
        if self._limit is not None:
            data = data[:self._limit]
        return MockSupabaseResponse(data)


class MockSupabaseTable:
    """Mock Supabase table backed by a list of rows."""

    def __init__(self, rows: list, fail_with: Exception = None):
        self.rows = rows
        self.fail_with = fail_with

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self)

    def upsert(self, data, on_conflict=None):
        return MockSupabaseQuery(self, "upsert", data, on_conflict)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._failures: dict[str, Exception] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def fail_table(self, table_name: str, error: Exception):
        """Make every query on a table raise `error`."""
        self._failures[table_name] = error

    def table(self, name: str) -> MockSupabaseTable:
        rows = self._tables.setdefault(name, [])
        return MockSupabaseTable(rows, self._failures.get(name))


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("orders", [
                {"order_number": "A-1", "row": {...}, ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def order_cache(memory_store) -> OrderCache:
    """Uninitialized cache over an empty in-memory store."""
    return OrderCache(memory_store)


@pytest.fixture
def virtual_scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def sample_rows() -> list:
    """Three imported rows with distinct payment dates."""
    return [
        OrderRowFactory.create(order_number="1001", payment_date="2024/05/01 10:00:00"),
        OrderRowFactory.create(order_number="1002", payment_date="2024/05/03 09:30:00"),
        OrderRowFactory.create(order_number="1003", payment_date="2024/05/02 18:15:00"),
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def fresh_services(memory_store) -> Generator:
    """
    Point every service singleton at a fresh in-memory store.

    Singletons are reset before and after the test.
    """
    import services.store as store_module
    import services.order_cache as order_cache_module
    import services.order_view as order_view_module
    import services.print_settings_service as print_settings_module
    import services.custom_label_service as custom_label_module
    import services.print_plan_service as print_plan_module

    modules_and_globals = [
        (order_cache_module, "_order_cache"),
        (order_view_module, "_order_view"),
        (print_settings_module, "_print_settings_service"),
        (custom_label_module, "_custom_label_service"),
        (print_plan_module, "_print_plan_service"),
    ]

    def reset():
        for module, name in modules_and_globals:
            setattr(module, name, None)

    reset()
    store_module._store = memory_store
    yield memory_store
    reset()
    store_module._store = None


@pytest.fixture
def test_client(fresh_services):
    """
    Create FastAPI test client with the app lifespan running.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/orders")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as client:
        yield client
