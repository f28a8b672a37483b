"""
Pytest configuration for docbridge tests.

Sets up the test environment and provides an in-memory stand-in for the
parts of the Supabase client the document layer talks to.
"""
import copy
import json
import os

import pytest
from unittest.mock import MagicMock

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")

from postgrest.exceptions import APIError  # noqa: E402


class FakeResponse:
    def __init__(self, data):
        self.data = data


def _json_text(value):
    """What Postgres' ->> operator yields for a jsonb value."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _column_value(row, column):
    if "->>" not in column:
        return row.get(column)
    container_path, leaf = column.rsplit("->>", 1)
    value = row
    for part in container_path.split("->"):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    if not isinstance(value, dict):
        return None
    return _json_text(value.get(leaf))


def _compare(op, actual, expected):
    if actual is None:
        return False
    if isinstance(actual, bool):
        actual, expected = ("true" if actual else "false"), str(expected)
    elif isinstance(actual, (int, float)):
        expected = float(expected)
    else:
        actual, expected = str(actual), str(expected)
    return {
        "eq": actual == expected,
        "neq": actual != expected,
        "gt": actual > expected,
        "gte": actual >= expected,
        "lt": actual < expected,
        "lte": actual <= expected,
    }[op]


class FakeTableQuery:
    """Chainable builder mimicking postgrest's request builders."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.values = None
        self.on_conflict = ""
        self.filters = []
        self.orders = []
        self.row_limit = None
        self._negate = False

    # actions
    def select(self, columns="*"):
        self.action, self.columns = "select", columns
        return self

    def insert(self, values):
        self.action, self.values = "insert", copy.deepcopy(values)
        return self

    def upsert(self, values, on_conflict=""):
        self.action, self.values, self.on_conflict = "upsert", copy.deepcopy(values), on_conflict
        return self

    def update(self, values):
        self.action, self.values = "update", copy.deepcopy(values)
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    def _filter(self, op, column, value):
        self.filters.append((op, column, value, self._negate))
        self._negate = False
        return self

    def eq(self, column, value):
        return self._filter("eq", column, value)

    def neq(self, column, value):
        return self._filter("neq", column, value)

    def gt(self, column, value):
        return self._filter("gt", column, value)

    def gte(self, column, value):
        return self._filter("gte", column, value)

    def lt(self, column, value):
        return self._filter("lt", column, value)

    def lte(self, column, value):
        return self._filter("lte", column, value)

    def is_(self, column, value):
        return self._filter("is", column, value)

    @property
    def not_(self):
        self._negate = True
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    # execution
    def _matches(self, row):
        for op, column, value, negate in self.filters:
            actual = _column_value(row, column)
            if op == "is":
                result = actual is None if value == "null" else actual == value
            else:
                result = _compare(op, actual, value)
            if result == negate:
                return False
        return True

    def _key_columns(self):
        if self.on_conflict:
            return [column.strip() for column in self.on_conflict.split(",")]
        return self.client.key_columns.get(self.table, ["id"])

    def execute(self):
        self.client.executed.append(self)
        self.client.raise_if_failing(self.action, self.table)
        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "select":
            matched = [row for row in rows if self._matches(row)]
            for column, desc in reversed(self.orders):
                present = [row for row in matched if _column_value(row, column) is not None]
                missing = [row for row in matched if _column_value(row, column) is None]
                present.sort(key=lambda row: _column_value(row, column), reverse=desc)
                matched = missing + present if desc else present + missing
            if self.row_limit is not None:
                matched = matched[:self.row_limit]
            return FakeResponse(copy.deepcopy(matched))

        if self.action == "insert":
            keys = self._key_columns()
            for row in rows:
                if all(row.get(key) == self.values.get(key) for key in keys):
                    raise APIError({"message": "duplicate key value", "code": "23505"})
            rows.append(copy.deepcopy(self.values))
            return FakeResponse([copy.deepcopy(self.values)])

        if self.action == "upsert":
            keys = self._key_columns()
            for row in rows:
                if all(row.get(key) == self.values.get(key) for key in keys):
                    row.update(copy.deepcopy(self.values))
                    return FakeResponse([copy.deepcopy(row)])
            rows.append(copy.deepcopy(self.values))
            return FakeResponse([copy.deepcopy(self.values)])

        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.values))
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.action == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.client.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(removed))

        raise AssertionError(f"unexpected action {self.action}")


class FakeSupabaseClient:
    """
    In-memory tables behind the table()/rpc()/storage surface.

    fail(action, table) makes the next matching execute() raise APIError.
    """

    def __init__(self):
        self.tables = {}
        self.key_columns = {"firestore_documents": ["collection_path", "doc_id"]}
        self.executed = []
        self.rpc_calls = []
        self._failures = []
        self.storage = MagicMock()
        self.storage.from_.return_value.get_public_url.side_effect = (
            lambda path: f"https://fake.supabase.co/storage/v1/object/public/files/{path}"
        )

    def table(self, name):
        return FakeTableQuery(self, name)

    def fail(self, action, table=None, times=1):
        self._failures.extend([(action, table)] * times)

    def raise_if_failing(self, action, table):
        for index, (fail_action, fail_table) in enumerate(self._failures):
            if fail_action == action and fail_table in (None, table):
                del self._failures[index]
                raise APIError({"message": f"simulated {action} failure", "code": "XX000"})

    def rpc(self, name, params):
        self.rpc_calls.append((name, copy.deepcopy(params)))
        client = self

        class _Call:
            def execute(self):
                client.raise_if_failing("rpc", name)
                return FakeResponse(len(params.get("p_operations", [])))

        return _Call()

    def rows(self, table):
        return self.tables.get(table, [])

    def selects(self):
        return [query for query in self.executed if query.action == "select"]


@pytest.fixture
def fake_supabase():
    """In-memory Supabase client for behavioural tests of the document layer."""
    return FakeSupabaseClient()


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client for call-shape assertions.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    mock_client = MagicMock()
    return mock_client
