"""
Storage upload endpoint.

Endpoints:
- POST /storage/{path} - Upload a file (multipart) and return its public URL
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from docbridge.auth.dependencies import AuthenticatedUser, get_authenticated_user
from docbridge.db.client import get_supabase_client
from docbridge.schemas.storage import StorageUploadResponse
from docbridge.services.storage import get_public_url, put_bytes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.post(
    "/{path:path}",
    response_model=StorageUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file to object storage",
    description="""
    Store the uploaded file at the given path in the configured bucket
    (overwriting any existing object) and return its public URL.

    Security:
    - Requires valid authentication token
    - Supabase Storage policies decide which paths the user may write
    """
)
async def upload_object(
    path: str,
    file: Annotated[UploadFile, File(description="File to store")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
) -> StorageUploadResponse:
    """Upload a file and return where it can be fetched."""
    supabase_client = get_supabase_client(auth_user.access_token)
    data = await file.read()

    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "empty_file", "details": "Uploaded file is empty"}
        )

    try:
        ref = await put_bytes(supabase_client, path, data, file.content_type)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_path", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Upload failed for user {auth_user.user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "storage_error", "details": "Failed to store file"}
        )

    return StorageUploadResponse(
        path=ref.path,
        bucket=ref.bucket,
        public_url=get_public_url(supabase_client, ref),
    )
