"""
Pydantic models for document endpoints.

Documents are schemaless, so field maps are Dict[str, Any]. Timestamp
values in responses are rendered as ISO-8601 strings.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class DocumentResponse(BaseModel):
    """
    Response model for a single document snapshot.

    Fields:
        id: Document id (last path segment)
        path: Full document path
        exists: False when the document has never been written or was deleted
        data: Document fields (None when exists is False)
    """
    id: str = Field(..., description="Document id")
    path: str = Field(..., description="Full document path", examples=["tenants/acme/cities/mumbai"])
    exists: bool = Field(..., description="Whether the document exists")
    data: Optional[Dict[str, Any]] = Field(None, description="Document fields")


class QueryResponse(BaseModel):
    """Response model for a collection query."""
    path: str = Field(..., description="Collection path")
    docs: List[DocumentResponse] = Field(default_factory=list)
    size: int = Field(..., ge=0, description="Number of documents returned")
    empty: bool = Field(..., description="True when no documents matched")


class DocumentWriteRequest(BaseModel):
    """Request body for create, replace and patch."""
    fields: Dict[str, Any] = Field(
        ...,
        description="Document fields",
        examples=[{"name": "Mumbai", "enabled": True}]
    )


class DocumentCreateResponse(BaseModel):
    status: Literal["CREATED"] = "CREATED"
    id: str = Field(..., description="Generated document id")
    path: str = Field(..., description="Full path of the new document")


class DocumentWriteResponse(BaseModel):
    """
    Response for replace and patch.

    applied is False when a patch targeted a missing document (no-op).
    """
    status: Literal["WRITTEN", "SKIPPED"]
    path: str
    applied: bool


class DocumentDeleteResponse(BaseModel):
    status: Literal["DELETED"] = "DELETED"
    path: str


class BatchOperation(BaseModel):
    """One queued write inside a batch."""
    op: Literal["set", "update", "delete"]
    path: str = Field(..., min_length=1, description="Document path")
    fields: Dict[str, Any] = Field(default_factory=dict)
    merge: bool = Field(False, description="Only meaningful for 'set'")

    @model_validator(mode="after")
    def check_fields(self) -> "BatchOperation":
        if self.op == "update" and not self.fields:
            raise ValueError("'update' operations require at least one field")
        return self


class BatchRequest(BaseModel):
    operations: List[BatchOperation] = Field(..., min_length=1, max_length=500)


class BatchResponse(BaseModel):
    status: Literal["COMMITTED"] = "COMMITTED"
    applied: int = Field(..., ge=0, description="Number of operations committed")
