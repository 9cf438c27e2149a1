"""Pure Python in-memory database for unit testing."""

import copy
import re
from datetime import UTC, datetime
from typing import Any

from cooked.core.db_client import DatabaseError, DuplicateRecordError, RecordNotFoundError


_COMPARISON = re.compile(r"""^(\w+)\s*(\?=|!=|>=|<=|=|>|<)\s*(?:(['"])([^'"]*)\3|(null))$""")

# UNIQUE constraints mirrored from the SQLite schema
DEFAULT_UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "check_ins": ("pact_id", "user_id", "check_in_date"),
    "pact_participants": ("pact_id", "user_id"),
    "group_members": ("group_id", "user_id"),
    "weekly_recaps": ("group_id", "week_start"),
}


def _split_top_level(filter_str: str, separator: str) -> list[str]:
    """Split on a separator that is not nested inside parentheses."""
    parts = []
    depth = 0
    current = ""
    i = 0
    while i < len(filter_str):
        char = filter_str[i]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth == 0 and filter_str.startswith(separator, i):
            parts.append(current.strip())
            current = ""
            i += len(separator)
            continue
        current += char
        i += 1
    parts.append(current.strip())
    return [p for p in parts if p]


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Mirrors the db_client CRUD surface, the filter mini-language
    (``&&``, parenthesized ``||`` groups, ``= != > < >= <= ?=`` and ``null``)
    and the UNIQUE constraints of the schema.
    """

    def __init__(self, unique_keys: dict[str, tuple[str, ...]] | None = None):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1000
        self._unique_keys = DEFAULT_UNIQUE_KEYS if unique_keys is None else unique_keys

    def _check_unique(self, collection: str, data: dict[str, Any]) -> None:
        fields = self._unique_keys.get(collection)
        if not fields:
            return
        key = tuple(str(data.get(f)) for f in fields)
        for existing in self._collections.get(collection, {}).values():
            if tuple(str(existing.get(f)) for f in fields) == key:
                raise DuplicateRecordError(f"Duplicate record in {collection}: {dict(zip(fields, key, strict=True))}")

    async def create_record(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record in the specified collection.

        Raises:
            DuplicateRecordError: If a UNIQUE key already exists
            DatabaseError: If data is not a dict
        """
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        self._check_unique(collection, data)
        self._collections.setdefault(collection, {})

        record_id = str(self._id_counter)
        self._id_counter += 1

        now = datetime.now(UTC).isoformat()
        record = {"id": record_id, "created": now, "updated": now, **copy.deepcopy(data)}
        self._collections[collection][record_id] = record
        return copy.deepcopy(record)

    async def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID, raising RecordNotFoundError if missing."""
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")

        if record_id not in self._collections.get(collection, {}):
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        return copy.deepcopy(self._collections[collection][record_id])

    async def update_record(self, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record and return it."""
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        if record_id not in self._collections.get(collection, {}):
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        record = self._collections[collection][record_id]
        record.update(copy.deepcopy(data))
        record["updated"] = datetime.now(UTC).isoformat()
        return copy.deepcopy(record)

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with optional filtering, sorting and pagination."""
        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]

        if sort:
            records = self._apply_sort(records, sort)

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def list_all_records(self, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
        """List every matching record (no pagination)."""
        return await self.list_records(collection, per_page=10**9, filter_query=filter_query, sort=sort)

    async def get_first_record(self, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Get the first matching record or None."""
        records = await self.list_records(collection, filter_query=filter_query)
        return records[0] if records else None

    def records(self, collection: str) -> list[dict[str, Any]]:
        """All records of a collection, in insertion order (test helper)."""
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate a filter expression against a record.

        Raises:
            DatabaseError: For invalid filter syntax
        """
        filter_str = filter_str.strip()
        if not filter_str:
            return True

        conditions = _split_top_level(filter_str, "&&")
        if len(conditions) > 1:
            return all(self._parse_filter(cond, record) for cond in conditions)

        if filter_str.startswith("(") and filter_str.endswith(")"):
            options = _split_top_level(filter_str[1:-1], "||")
            return any(self._parse_filter(opt, record) for opt in options)

        return self._evaluate_comparison(filter_str, record)

    def _evaluate_comparison(self, comparison: str, record: dict[str, Any]) -> bool:
        match = _COMPARISON.match(comparison)
        if not match:
            raise DatabaseError(f"Invalid filter syntax: {comparison}")

        field, op, _, value, null = match.groups()
        actual = record.get(field)

        if null is not None:
            if op == "=":
                return actual is None
            if op == "!=":
                return actual is not None
            raise DatabaseError(f"Invalid null comparison: {comparison}")

        if op == "?=":
            allowed = {v.strip() for v in value.split(",") if v.strip()}
            return actual is not None and str(actual) in allowed

        if isinstance(actual, bool) and value.lower() in ("true", "false"):
            actual_str, value = str(actual).lower(), value.lower()
        else:
            actual_str = "" if actual is None else str(actual)

        if op == "=":
            return actual_str == value
        if op == "!=":
            return actual_str != value

        if actual is None:
            return False
        if op == ">":
            return actual_str > value
        if op == "<":
            return actual_str < value
        if op == ">=":
            return actual_str >= value
        return actual_str <= value

    def _apply_sort(self, records: list[dict], sort: str) -> list[dict]:
        """Sort records by field (prefix with - for descending)."""
        reverse = sort.startswith("-")
        field = sort.lstrip("+-")
        return sorted(records, key=lambda r: str(r.get(field, "")), reverse=reverse)
