"""
Pydantic models for the storage upload endpoint.
"""

from pydantic import BaseModel, Field


class StorageUploadResponse(BaseModel):
    """Response model for POST /storage/{path}."""
    path: str = Field(..., description="Object path inside the bucket")
    bucket: str = Field(..., description="Storage bucket name")
    public_url: str = Field(..., description="Publicly accessible URL of the object")
