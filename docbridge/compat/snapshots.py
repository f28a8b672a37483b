"""
Read path: single-document and query snapshots.

Snapshots are immutable views captured at fetch time. They never update in
place; every fetch (including every poll of a subscription) produces new
snapshot objects.
"""

import copy
import logging
from typing import Any, Dict, Iterator, List, Optional, Union

from docbridge.compat.errors import BackendError
from docbridge.compat.queries import Query, translate_query
from docbridge.compat.references import CollectionReference, DocumentReference, doc_ref
from docbridge.compat.routing import (
    DOC_ID_COLUMN,
    PAYLOAD_COLUMN,
    PRIMARY_KEY_COLUMN,
    TableRoute,
    resolve_route,
)
from docbridge.compat.timestamps import decode_value

logger = logging.getLogger(__name__)


class DocumentSnapshot:
    """Result of reading one document. exists is False for missing documents."""

    __slots__ = ("_ref", "_data")

    def __init__(self, ref: DocumentReference, data: Optional[Dict[str, Any]]):
        self._ref = ref
        self._data = data

    @property
    def id(self) -> str:
        return self._ref.id

    @property
    def ref(self) -> DocumentReference:
        return self._ref

    @property
    def exists(self) -> bool:
        return self._data is not None

    def data(self) -> Optional[Dict[str, Any]]:
        """Document fields, or None if the document does not exist."""
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field: str, default: Any = None) -> Any:
        """Read one field; dotted paths walk nested objects."""
        value: Any = self._data
        for part in field.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return copy.deepcopy(value)

    def __repr__(self) -> str:
        return f"DocumentSnapshot({self._ref.path!r}, exists={self.exists})"


class QuerySnapshot:
    """Result of a query: an ordered, immutable list of document snapshots."""

    __slots__ = ("_query", "_docs")

    def __init__(self, query: Query, docs: List[DocumentSnapshot]):
        self._query = query
        self._docs = tuple(docs)

    @property
    def query(self) -> Query:
        return self._query

    @property
    def docs(self) -> List[DocumentSnapshot]:
        return list(self._docs)

    @property
    def size(self) -> int:
        return len(self._docs)

    @property
    def empty(self) -> bool:
        return not self._docs

    def __iter__(self) -> Iterator[DocumentSnapshot]:
        return iter(self._docs)

    def __len__(self) -> int:
        return len(self._docs)

    def __repr__(self) -> str:
        return f"QuerySnapshot({self._query.path!r}, size={self.size})"


def row_to_fields(route: TableRoute, row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild document fields from a stored row.

    Generic rows hold everything in the payload. Dedicated rows are
    flattened: declared columns first, then payload entries.
    """
    if route.is_generic:
        fields = dict(row.get(PAYLOAD_COLUMN) or {})
    else:
        fields = {key: value for key, value in row.items() if key != PAYLOAD_COLUMN}
        payload = row.get(PAYLOAD_COLUMN)
        if isinstance(payload, dict):
            fields.update(payload)
    return decode_value(fields)


def row_document_id(route: TableRoute, row: Dict[str, Any]) -> str:
    if route.is_generic:
        return str(row[DOC_ID_COLUMN])
    return str(row.get(PRIMARY_KEY_COLUMN) or row.get("uid"))


async def fetch_row(
    client: Any,
    ref: DocumentReference,
    route: Optional[TableRoute] = None,
    columns: str = "*",
) -> Optional[Dict[str, Any]]:
    """
    Fetch the stored row for a document, or None if it does not exist.

    Raises:
        BackendError: If the Supabase call fails.
    """
    route = route or resolve_route(ref)
    builder = client.table(route.table).select(columns)
    for column, value in route.key_filter(ref.id).items():
        builder = builder.eq(column, value)

    try:
        result = builder.limit(1).execute()
    except Exception as e:
        logger.error(
            f"Failed to fetch document {ref.path} from {route.table}: {e}",
            exc_info=True
        )
        raise BackendError.wrap("fetch", ref.path, e) from e

    rows = result.data or []
    return rows[0] if rows else None


async def get_one(client: Any, ref: DocumentReference) -> DocumentSnapshot:
    """
    Read a single document.

    Args:
        client: Supabase client
        ref: Document reference

    Returns:
        DocumentSnapshot; exists is False when no row matches.

    Raises:
        BackendError: If the Supabase call fails.
    """
    route = resolve_route(ref)
    row = await fetch_row(client, ref, route)

    if row is None:
        logger.debug(f"Document {ref.path} not found")
        return DocumentSnapshot(ref, None)

    return DocumentSnapshot(ref, row_to_fields(route, row))


async def get_many(client: Any, target: Union[CollectionReference, Query]) -> QuerySnapshot:
    """
    Run a query (or list a whole collection).

    Args:
        client: Supabase client
        target: Query or collection reference

    Returns:
        QuerySnapshot in backend order (explicit orderings only).

    Raises:
        BackendError: If the Supabase call fails.
    """
    if isinstance(target, CollectionReference):
        target = Query(ref=target)

    route = resolve_route(target.ref)
    builder = translate_query(client, target)

    try:
        result = builder.execute()
    except Exception as e:
        logger.error(
            f"Failed to query {target.path} on {route.table}: {e}",
            exc_info=True
        )
        raise BackendError.wrap("query", target.path, e) from e

    docs = [
        DocumentSnapshot(
            doc_ref(target.ref, row_document_id(route, row)),
            row_to_fields(route, row),
        )
        for row in (result.data or [])
    ]

    logger.debug(f"Query on {target.path} returned {len(docs)} documents")

    return QuerySnapshot(target, docs)
