"""
Write path: create, replace (optionally merging), patch and remove.

CRITICAL RULES:
1. Declared columns are always overwritten by the fields provided; columns
   not provided are left untouched on update and at their default on insert.
2. merge=True shallow-merges the payload key by key with the stored payload.
   The stored payload is fetched first; this is fetch-modify-write without
   compare-and-swap, so concurrent merges of the same document can lose
   updates.
3. If that pre-fetch fails, the write proceeds as if there were no prior
   payload (logged at WARNING). Fields only present in the stored payload
   are then lost.
4. patch_document() never creates a row. Patching a missing document is a
   no-op.
5. Failures of the write itself always raise BackendError.
"""

import logging
import secrets
import string
import time
from typing import Any, Dict, Mapping, Optional, Tuple

from docbridge.compat.errors import BackendError
from docbridge.compat.references import CollectionReference, DocumentReference, doc_ref
from docbridge.compat.routing import (
    COLLECTION_PATH_COLUMN,
    DOC_ID_COLUMN,
    PAYLOAD_COLUMN,
    PRIMARY_KEY_COLUMN,
    TableRoute,
    partition_fields,
    resolve_route,
)
from docbridge.compat.snapshots import fetch_row
from docbridge.compat.timestamps import encode_value

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 11


class ArrayUnion:
    """
    Sentinel: add elements to an array field, skipping ones already present.

    Resolved against the stored value on merge/patch; on a plain replace or
    create it becomes the list of elements.
    """

    __slots__ = ("elements",)

    def __init__(self, elements: Tuple[Any, ...]):
        self.elements = elements

    def apply(self, current: Any) -> list:
        merged = list(current) if isinstance(current, list) else []
        for element in encode_value(list(self.elements)):
            if element not in merged:
                merged.append(element)
        return merged

    def __repr__(self) -> str:
        return f"ArrayUnion({list(self.elements)!r})"


def array_union(*elements: Any) -> ArrayUnion:
    return ArrayUnion(elements)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_document_id() -> str:
    """
    Build a new document id: base-36 epoch milliseconds + random suffix.

    Not monotonic across processes and not guaranteed collision-free
    under heavy concurrent creation.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(_ID_SUFFIX_LENGTH))
    return _to_base36(millis) + suffix


def _resolve_fields(
    fields: Mapping[str, Any],
    current: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Resolve sentinels against current values and encode timestamps."""
    current = current or {}
    resolved: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, ArrayUnion):
            resolved[key] = value.apply(current.get(key))
        else:
            resolved[key] = encode_value(value)
    return resolved


def _build_row(
    route: TableRoute,
    document_id: str,
    declared: Dict[str, Any],
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    if route.is_generic:
        return {
            COLLECTION_PATH_COLUMN: route.collection_path,
            DOC_ID_COLUMN: document_id,
            PAYLOAD_COLUMN: payload,
        }
    return {PRIMARY_KEY_COLUMN: document_id, **declared, PAYLOAD_COLUMN: payload}


def _existing_values(route: TableRoute, row: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a stored row into (declared column values, payload)."""
    if row is None:
        return {}, {}
    payload = row.get(PAYLOAD_COLUMN)
    payload = dict(payload) if isinstance(payload, dict) else {}
    declared = {
        key: value
        for key, value in row.items()
        if key in route.declared_columns and key != PRIMARY_KEY_COLUMN
    }
    return declared, payload


async def _fetch_for_merge(
    client: Any,
    ref: DocumentReference,
    route: TableRoute,
) -> Tuple[Optional[Dict[str, Any]], bool]:
    """
    Fetch the stored row before a merge.

    Returns:
        Tuple of (row or None, fetch_succeeded)
    """
    try:
        return await fetch_row(client, ref, route), True
    except BackendError:
        logger.warning(
            f"Pre-merge fetch failed for {ref.path}; merging against empty state"
        )
        return None, False


async def create_document(
    client: Any,
    collection: CollectionReference,
    fields: Mapping[str, Any],
) -> str:
    """
    Insert a new document with a generated id.

    Args:
        client: Supabase client
        collection: Collection to add the document to
        fields: Document fields

    Returns:
        The generated document id.

    Raises:
        BackendError: If the insert fails.
    """
    route = resolve_route(collection)
    document_id = generate_document_id()
    ref = doc_ref(collection, document_id)

    declared, payload = partition_fields(route, _resolve_fields(fields))
    row = _build_row(route, document_id, declared, payload)

    logger.info(
        f"Creating document {ref.path} in {route.table} "
        f"(declared={sorted(declared)}, payload_keys={len(payload)})"
    )

    try:
        client.table(route.table).insert(row).execute()
    except Exception as e:
        logger.error(f"Failed to create document {ref.path}: {e}", exc_info=True)
        raise BackendError.wrap("create", ref.path, e) from e

    return document_id


async def replace_document(
    client: Any,
    ref: DocumentReference,
    fields: Mapping[str, Any],
    merge: bool = False,
) -> None:
    """
    Write a document, creating it if needed (upsert).

    merge=False: declared columns in fields are set, the payload is
    replaced wholesale by the non-declared fields.
    merge=True: the payload is shallow-merged with the stored payload;
    declared columns in fields still overwrite.

    Raises:
        BackendError: If the upsert fails.
    """
    route = resolve_route(ref)

    if merge:
        row, _ = await _fetch_for_merge(client, ref, route)
        current_declared, current_payload = _existing_values(route, row)
        declared, payload = partition_fields(
            route, _resolve_fields(fields, {**current_payload, **current_declared})
        )
        payload = {**current_payload, **payload}
    else:
        declared, payload = partition_fields(route, _resolve_fields(fields))

    values = _build_row(route, ref.id, declared, payload)

    logger.info(
        f"Writing document {ref.path} in {route.table} (merge={merge}, "
        f"declared={sorted(declared)}, payload_keys={len(payload)})"
    )

    try:
        client.table(route.table).upsert(
            values, on_conflict=",".join(route.key_columns)
        ).execute()
    except Exception as e:
        logger.error(f"Failed to write document {ref.path}: {e}", exc_info=True)
        raise BackendError.wrap("replace", ref.path, e) from e


async def patch_document(
    client: Any,
    ref: DocumentReference,
    fields: Mapping[str, Any],
) -> bool:
    """
    Merge fields into an existing document.

    Never creates a row: if the document does not exist this is a no-op.
    If the pre-fetch fails, an UPDATE is still issued against empty prior
    state (it matches no row if the document is missing).

    Returns:
        True if an update was sent, False if the document was missing.

    Raises:
        BackendError: If the update fails.
    """
    route = resolve_route(ref)
    row, fetched = await _fetch_for_merge(client, ref, route)

    if fetched and row is None:
        logger.info(f"Patch skipped: document {ref.path} does not exist")
        return False

    current_declared, current_payload = _existing_values(route, row)
    declared, payload = partition_fields(
        route, _resolve_fields(fields, {**current_payload, **current_declared})
    )
    values = {**declared, PAYLOAD_COLUMN: {**current_payload, **payload}}

    logger.info(
        f"Patching document {ref.path} in {route.table} "
        f"(declared={sorted(declared)}, payload_keys={len(payload)})"
    )

    builder = client.table(route.table).update(values)
    for column, value in route.key_filter(ref.id).items():
        builder = builder.eq(column, value)

    try:
        builder.execute()
    except Exception as e:
        logger.error(f"Failed to patch document {ref.path}: {e}", exc_info=True)
        raise BackendError.wrap("patch", ref.path, e) from e

    return True


async def remove_document(client: Any, ref: DocumentReference) -> None:
    """
    Delete a document. Deleting a missing document is not an error.

    Raises:
        BackendError: If the delete fails.
    """
    route = resolve_route(ref)

    builder = client.table(route.table).delete()
    for column, value in route.key_filter(ref.id).items():
        builder = builder.eq(column, value)

    logger.info(f"Deleting document {ref.path} from {route.table}")

    try:
        builder.execute()
    except Exception as e:
        logger.error(f"Failed to delete document {ref.path}: {e}", exc_info=True)
        raise BackendError.wrap("remove", ref.path, e) from e
