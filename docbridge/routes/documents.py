"""
Document API endpoints.

Exposes the document-store layer over HTTP. The URL path after
/documents/ is the document-store path: an even number of segments
addresses a document, an odd number a collection.

Endpoints:
- GET /documents/{path} - Read a document, or query a collection
- POST /documents/{collection path} - Create a document with a generated id
- PUT /documents/{document path} - Replace (or merge with ?merge=true)
- PATCH /documents/{document path} - Merge into an existing document (no-op if missing)
- DELETE /documents/{document path} - Delete a document (idempotent)
- POST /batch - Commit several writes atomically

Query syntax for collection reads:
- where=field:op:value (repeatable). op is ==, !=, >, >=, <, <= or
  eq, neq, gt, gte, lt, lte. value is parsed as JSON when possible
  (true, 12, null), otherwise used as a string.
- order_by=field or order_by=field:desc (repeatable, primary first)
- limit=n
"""

import json
import logging
from typing import Annotated, Any, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query as QueryParam, status

from docbridge.auth.dependencies import AuthenticatedUser, get_authenticated_user
from docbridge.compat import (
    BackendError,
    CollectionReference,
    DocumentReference,
    DocumentSnapshot,
    InvalidReferenceError,
    WriteBatch,
    create_document,
    get_many,
    get_one,
    patch_document,
    remove_document,
    replace_document,
)
from docbridge.compat.queries import Query, limit as limit_constraint, order_by, where
from docbridge.compat.timestamps import encode_value
from docbridge.db.client import get_supabase_client
from docbridge.schemas.documents import (
    BatchRequest,
    BatchResponse,
    DocumentCreateResponse,
    DocumentDeleteResponse,
    DocumentResponse,
    DocumentWriteRequest,
    DocumentWriteResponse,
    QueryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


def parse_reference(path: str) -> Union[DocumentReference, CollectionReference]:
    """Document or collection reference by segment parity."""
    segments = path.strip("/").split("/")
    if len(segments) % 2 == 0:
        return DocumentReference(segments)
    return CollectionReference(segments)


def parse_where(raw: str) -> Any:
    """Parse 'field:op:value' into a filter constraint."""
    parts = raw.split(":", 2)
    if len(parts) != 3:
        raise InvalidReferenceError(f"where must look like field:op:value, got {raw!r}")
    field, op, value_text = parts
    try:
        value = json.loads(value_text)
    except ValueError:
        value = value_text
    return where(field, op, value)


def parse_order_by(raw: str) -> Any:
    """Parse 'field' or 'field:asc|desc' into an ordering constraint."""
    field, _, direction = raw.partition(":")
    return order_by(field, direction or "asc")


def _snapshot_response(snapshot: DocumentSnapshot) -> DocumentResponse:
    return DocumentResponse(
        id=snapshot.id,
        path=snapshot.ref.path,
        exists=snapshot.exists,
        data=encode_value(snapshot.data()) if snapshot.exists else None,
    )


def _bad_request(e: InvalidReferenceError) -> HTTPException:
    logger.warning(f"Rejected malformed document request: {e}")
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "invalid_reference", "details": str(e)}
    )


def _backend_unavailable(e: BackendError) -> HTTPException:
    logger.error(f"Document backend error: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": "backend_error", "details": f"{e.operation} failed for {e.path}"}
    )


def _require_document(path: str) -> DocumentReference:
    ref = parse_reference(path)
    if not isinstance(ref, DocumentReference):
        raise InvalidReferenceError(f"{path!r} is a collection path, expected a document path")
    return ref


@router.get(
    "/documents/{path:path}",
    response_model=Union[DocumentResponse, QueryResponse],
    status_code=status.HTTP_200_OK,
    summary="Read a document or query a collection",
)
async def read_documents(
    path: str,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    where_: Annotated[Optional[List[str]], QueryParam(alias="where")] = None,
    order_by_: Annotated[Optional[List[str]], QueryParam(alias="order_by")] = None,
    limit: Annotated[Optional[int], QueryParam(ge=1)] = None,
) -> Union[DocumentResponse, QueryResponse]:
    """Read one document (even segment count) or run a collection query."""
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        ref = parse_reference(path)

        if isinstance(ref, DocumentReference):
            snapshot = await get_one(supabase_client, ref)
            if not snapshot.exists:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"error": "not_found", "details": f"Document {ref.path} not found"}
                )
            return _snapshot_response(snapshot)

        constraints = [parse_where(raw) for raw in where_ or []]
        constraints += [parse_order_by(raw) for raw in order_by_ or []]
        if limit is not None:
            constraints.append(limit_constraint(limit))

        query_snapshot = await get_many(supabase_client, Query(ref=ref).with_constraints(*constraints))

    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    logger.info(f"Query on {ref.path} returned {query_snapshot.size} documents")

    return QueryResponse(
        path=ref.path,
        docs=[_snapshot_response(doc) for doc in query_snapshot],
        size=query_snapshot.size,
        empty=query_snapshot.empty,
    )


@router.post(
    "/documents/{path:path}",
    response_model=DocumentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document with a generated id",
)
async def create_document_in_collection(
    path: str,
    request: DocumentWriteRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
) -> DocumentCreateResponse:
    """Add a document to a collection."""
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        ref = parse_reference(path)
        if not isinstance(ref, CollectionReference):
            raise InvalidReferenceError(f"{path!r} is a document path, expected a collection path")
        document_id = await create_document(supabase_client, ref, request.fields)
    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    return DocumentCreateResponse(id=document_id, path=f"{ref.path}/{document_id}")


@router.put(
    "/documents/{path:path}",
    response_model=DocumentWriteResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace or merge a document (upsert)",
)
async def replace_document_at_path(
    path: str,
    request: DocumentWriteRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    merge: bool = QueryParam(False, description="Merge payload fields instead of replacing them"),
) -> DocumentWriteResponse:
    """Write a document, creating it if needed."""
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        ref = _require_document(path)
        await replace_document(supabase_client, ref, request.fields, merge=merge)
    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    return DocumentWriteResponse(status="WRITTEN", path=ref.path, applied=True)


@router.patch(
    "/documents/{path:path}",
    response_model=DocumentWriteResponse,
    status_code=status.HTTP_200_OK,
    summary="Merge fields into an existing document",
)
async def patch_document_at_path(
    path: str,
    request: DocumentWriteRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
) -> DocumentWriteResponse:
    """Update an existing document. Missing documents are left missing."""
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        ref = _require_document(path)
        applied = await patch_document(supabase_client, ref, request.fields)
    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    return DocumentWriteResponse(
        status="WRITTEN" if applied else "SKIPPED",
        path=ref.path,
        applied=applied,
    )


@router.delete(
    "/documents/{path:path}",
    response_model=DocumentDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete a document",
)
async def delete_document_at_path(
    path: str,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
) -> DocumentDeleteResponse:
    """Delete a document. Deleting a missing document succeeds."""
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        ref = _require_document(path)
        await remove_document(supabase_client, ref)
    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    return DocumentDeleteResponse(path=ref.path)


@router.post(
    "/batch",
    response_model=BatchResponse,
    status_code=status.HTTP_200_OK,
    summary="Commit several writes atomically",
)
async def commit_batch(
    request: BatchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
) -> BatchResponse:
    """Apply all operations in one database transaction."""
    supabase_client = get_supabase_client(auth_user.access_token)
    batch = WriteBatch()

    try:
        for operation in request.operations:
            ref = _require_document(operation.path)
            if operation.op == "set":
                batch.set(ref, operation.fields, merge=operation.merge)
            elif operation.op == "update":
                batch.update(ref, operation.fields)
            else:
                batch.delete(ref)
        applied = await batch.commit(supabase_client)
    except InvalidReferenceError as e:
        raise _bad_request(e)
    except BackendError as e:
        raise _backend_unavailable(e)

    logger.info(f"Committed batch of {applied} operations for user {auth_user.user_id}")

    return BatchResponse(applied=applied)
