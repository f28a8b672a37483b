"""
Atomic batched writes.

Operations are queued locally and sent to Postgres in a single RPC call
(commit_document_batch, defined in sql/document_store.sql), which applies
them inside one transaction: either every operation lands or none does.

Batched set/update semantics match replace_document/patch_document, with
the merge happening inside the database (payload || new_payload), so
batched merges do not suffer the fetch-modify-write race of single writes.
"""

import logging
from typing import Any, Dict, List, Mapping

from docbridge.compat.errors import BackendError, DocumentStoreError, InvalidReferenceError
from docbridge.compat.references import DocumentReference
from docbridge.compat.routing import partition_fields, resolve_route
from docbridge.compat.timestamps import encode_value
from docbridge.compat.writes import ArrayUnion

logger = logging.getLogger(__name__)

BATCH_RPC = "commit_document_batch"

# Postgres caps a single statement's size; keep batches modest
MAX_BATCH_OPERATIONS = 500


class WriteBatch:
    """
    Collects writes and commits them atomically.

    Example:
        >>> batch = WriteBatch()
        >>> batch.set(doc_ref(None, "activities", "a1"), {"type": "signup"})
        >>> batch.delete(doc_ref(None, "activities", "old"))
        >>> await batch.commit(client)
    """

    def __init__(self) -> None:
        self._operations: List[Dict[str, Any]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def committed(self) -> bool:
        return self._committed

    def _check_writable(self) -> None:
        if self._committed:
            raise DocumentStoreError("This batch has already been committed")
        if len(self._operations) >= MAX_BATCH_OPERATIONS:
            raise InvalidReferenceError(
                f"A batch holds at most {MAX_BATCH_OPERATIONS} operations"
            )

    def _encode(self, op: str, ref: DocumentReference, fields: Mapping[str, Any], merge: bool) -> Dict[str, Any]:
        if not isinstance(ref, DocumentReference):
            raise InvalidReferenceError("Batched writes require a document reference")
        for key, value in fields.items():
            if isinstance(value, ArrayUnion):
                raise InvalidReferenceError(
                    f"array_union() is not supported in batched writes (field {key!r})"
                )
        route = resolve_route(ref)
        declared, payload = partition_fields(route, encode_value(dict(fields)))
        return {
            "op": op,
            "path": ref.path,
            "table": route.table,
            "generic": route.is_generic,
            "key": route.key_filter(ref.id),
            "declared": declared,
            "payload": payload,
            "merge": merge,
        }

    def set(self, ref: DocumentReference, fields: Mapping[str, Any], merge: bool = False) -> "WriteBatch":
        self._check_writable()
        self._operations.append(self._encode("set", ref, fields, merge))
        return self

    def update(self, ref: DocumentReference, fields: Mapping[str, Any]) -> "WriteBatch":
        self._check_writable()
        self._operations.append(self._encode("update", ref, fields, True))
        return self

    def delete(self, ref: DocumentReference) -> "WriteBatch":
        self._check_writable()
        self._operations.append(self._encode("delete", ref, {}, False))
        return self

    async def commit(self, client: Any) -> int:
        """
        Apply all queued operations in one transaction.

        Returns:
            Number of operations sent (0 for an empty batch, which makes no
            backend call).

        Raises:
            DocumentStoreError: If the batch was already committed.
            BackendError: If the RPC fails; nothing was applied.
        """
        if self._committed:
            raise DocumentStoreError("This batch has already been committed")
        self._committed = True

        if not self._operations:
            logger.debug("Empty batch commit skipped")
            return 0

        logger.info(f"Committing batch of {len(self._operations)} operations")

        try:
            client.rpc(BATCH_RPC, {"p_operations": self._operations}).execute()
        except Exception as e:
            logger.error(f"Batch commit failed: {e}", exc_info=True)
            raise BackendError.wrap("batch", f"{len(self._operations)} operations", e) from e

        return len(self._operations)


def write_batch() -> WriteBatch:
    return WriteBatch()
