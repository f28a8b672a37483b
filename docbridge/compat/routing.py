"""
Table routing: which relational table backs a reference.

CRITICAL RULES:
1. Only root collections listed in DEDICATED_COLUMNS get their own table.
   Subcollections (tenants/acme/cities) always use the generic table, even
   when their root is allow-listed.
2. Field placement is a pure function of (collection, field name): a field
   is either a declared column or lives in the payload column, never both.
3. The allow-list is static. Do not infer columns from document shape.

Generic table (settings.DOCUMENTS_TABLE):
    collection_path text, doc_id text, payload jsonb,
    UNIQUE (collection_path, doc_id)

Dedicated tables:
    id text PRIMARY KEY, <declared columns>, payload jsonb
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Tuple

from docbridge.compat.references import Reference, parent_collection_path
from docbridge.config import settings

logger = logging.getLogger(__name__)

PAYLOAD_COLUMN = "payload"
COLLECTION_PATH_COLUMN = "collection_path"
DOC_ID_COLUMN = "doc_id"
PRIMARY_KEY_COLUMN = "id"

# Root collection -> typed columns of its dedicated table
DEDICATED_COLUMNS: Mapping[str, FrozenSet[str]] = {
    "users": frozenset(
        {"id", "uid", "email", "role", "tenantId", "lastLogin", "createdAt"}
    ),
    "customers": frozenset(
        {"id", "uid", "email", "displayName", "phoneNumber", "city", "photoURL", "lastLogin", "createdAt"}
    ),
    "tenants": frozenset(
        {"id", "ownerUid", "name", "status", "plan", "createdAt"}
    ),
}


@dataclass(frozen=True)
class TableRoute:
    """Where a collection's documents are stored."""

    table: str
    is_generic: bool
    collection_path: str
    declared_columns: FrozenSet[str] = frozenset()

    @property
    def key_columns(self) -> Tuple[str, ...]:
        """Columns identifying one document in this table."""
        if self.is_generic:
            return (COLLECTION_PATH_COLUMN, DOC_ID_COLUMN)
        return (PRIMARY_KEY_COLUMN,)

    def key_filter(self, document_id: str) -> Dict[str, str]:
        """Column/value pairs selecting a single document row."""
        if self.is_generic:
            return {
                COLLECTION_PATH_COLUMN: self.collection_path,
                DOC_ID_COLUMN: document_id,
            }
        return {PRIMARY_KEY_COLUMN: document_id}


def resolve_route(ref: Reference) -> TableRoute:
    """
    Decide which table stores the documents addressed by ref.

    Args:
        ref: A collection or document reference.

    Returns:
        TableRoute for the reference's collection.
    """
    collection_path = parent_collection_path(ref)
    declared = DEDICATED_COLUMNS.get(collection_path)

    if declared is not None:
        route = TableRoute(
            table=collection_path,
            is_generic=False,
            collection_path=collection_path,
            declared_columns=declared,
        )
    else:
        route = TableRoute(
            table=settings.DOCUMENTS_TABLE,
            is_generic=True,
            collection_path=collection_path,
        )

    logger.debug(
        f"Routed {ref.path} -> table={route.table} generic={route.is_generic}"
    )
    return route


def is_declared(route: TableRoute, field: str) -> bool:
    """True if field is stored in a typed column of route's table."""
    return not route.is_generic and field in route.declared_columns


def partition_fields(
    route: TableRoute,
    fields: Mapping[str, Any],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Split document fields into declared columns and payload entries.

    On dedicated tables the 'id' key is never written: the primary key
    comes from the reference. On the generic table everything goes to the
    payload.

    Returns:
        Tuple of (declared_columns, payload)
    """
    declared: Dict[str, Any] = {}
    payload: Dict[str, Any] = {}

    for key, value in fields.items():
        if route.is_generic:
            payload[key] = value
        elif key == PRIMARY_KEY_COLUMN:
            continue
        elif key in route.declared_columns:
            declared[key] = value
        else:
            payload[key] = value

    return declared, payload
