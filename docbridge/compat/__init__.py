"""
Document-store compatibility layer over Supabase.

Lets code written against a hierarchical document API (collections,
documents, where/order_by/limit queries, merge writes, snapshot
listeners) run against relational tables:

- references:    path parsing, CollectionReference / DocumentReference
- timestamps:    Timestamp value type and the temporal codec
- routing:       dedicated table vs generic catch-all table
- queries:       Query descriptor and PostgREST translation
- writes:        create / replace / patch / remove
- batch:         atomic batched writes through one RPC
- snapshots:     get_one / get_many and snapshot objects
- subscriptions: polling listeners

The second block of names mirrors the document-database call contract so
existing callers can switch imports without changing call sites.
"""

from .batch import WriteBatch, write_batch
from .errors import BackendError, DocumentStoreError, InvalidReferenceError
from .queries import FieldFilter, Limit, Ordering, Query, limit, order_by, query, translate_query, where
from .references import (
    CollectionReference,
    DocumentReference,
    collection_ref,
    doc_ref,
    parent_collection_path,
)
from .routing import DEDICATED_COLUMNS, TableRoute, partition_fields, resolve_route
from .snapshots import DocumentSnapshot, QuerySnapshot, get_many, get_one
from .subscriptions import Subscription, SubscriptionState, on_snapshot, subscribe
from .timestamps import Timestamp, server_timestamp
from .writes import (
    array_union,
    create_document,
    generate_document_id,
    patch_document,
    remove_document,
    replace_document,
)

# Document-database call contract
collection = collection_ref
doc = doc_ref
get_doc = get_one
get_docs = get_many
add_doc = create_document
set_doc = replace_document
update_doc = patch_document
delete_doc = remove_document


__all__ = [
    "BackendError",
    "DocumentStoreError",
    "InvalidReferenceError",
    "CollectionReference",
    "DocumentReference",
    "collection_ref",
    "doc_ref",
    "parent_collection_path",
    "Timestamp",
    "server_timestamp",
    "DEDICATED_COLUMNS",
    "TableRoute",
    "resolve_route",
    "partition_fields",
    "Query",
    "FieldFilter",
    "Ordering",
    "Limit",
    "where",
    "order_by",
    "limit",
    "query",
    "translate_query",
    "array_union",
    "generate_document_id",
    "create_document",
    "replace_document",
    "patch_document",
    "remove_document",
    "WriteBatch",
    "write_batch",
    "DocumentSnapshot",
    "QuerySnapshot",
    "get_one",
    "get_many",
    "Subscription",
    "SubscriptionState",
    "subscribe",
    "on_snapshot",
    "collection",
    "doc",
    "get_doc",
    "get_docs",
    "add_doc",
    "set_doc",
    "update_doc",
    "delete_doc",
]
