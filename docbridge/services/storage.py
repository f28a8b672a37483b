"""
Supabase Storage service for binary blobs.

Two primitives back every file upload in the application:
- put_bytes(): store bytes at a path in the configured bucket
- get_public_url(): public URL for a stored object
"""

import logging
import mimetypes
from dataclasses import dataclass
from typing import Optional

from supabase import Client

from docbridge.config import settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StorageRef:
    """Location of an object in Supabase Storage."""

    path: str
    bucket: str


def _clean_path(path: str) -> str:
    cleaned = path.strip("/")
    if not cleaned or any(segment == "" for segment in cleaned.split("/")):
        raise ValueError(f"Invalid storage path: {path!r}")
    return cleaned


async def put_bytes(
    supabase_client: Client,
    path: str,
    data: bytes,
    content_type: Optional[str] = None,
) -> StorageRef:
    """
    Upload bytes to Supabase Storage, overwriting any existing object.

    Args:
        supabase_client: Authenticated Supabase client
        path: Object path inside the bucket (e.g. "portfolio/acme/hero.jpg")
        data: Raw file bytes
        content_type: Optional MIME type. If not provided, inferred from
                     the path, falling back to application/octet-stream.

    Returns:
        StorageRef for the stored object.

    Raises:
        ValueError: If the path is empty or has empty segments
        Exception: If the upload fails
    """
    storage_path = _clean_path(path)
    bucket = settings.SUPABASE_STORAGE_BUCKET

    # Infer MIME type if not provided
    if not content_type:
        content_type, _ = mimetypes.guess_type(storage_path)
        if not content_type:
            content_type = DEFAULT_CONTENT_TYPE

    logger.info(
        f"Uploading object: bucket={bucket}, storage_path={storage_path}, "
        f"size={len(data)} bytes, content_type={content_type}"
    )

    try:
        supabase_client.storage.from_(bucket).upload(
            path=storage_path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"}
        )
    except Exception as e:
        logger.error(
            f"Failed to upload object to storage: storage_path={storage_path}, error={e}",
            exc_info=True
        )
        raise

    logger.info(f"Successfully uploaded object: storage_path={storage_path}")

    return StorageRef(path=storage_path, bucket=bucket)


def get_public_url(supabase_client: Client, ref: StorageRef) -> str:
    """
    Public URL for a stored object.

    Args:
        supabase_client: Supabase client
        ref: StorageRef returned by put_bytes()

    Returns:
        Publicly accessible URL string
    """
    response = supabase_client.storage.from_(ref.bucket).get_public_url(ref.path)

    # Extract URL from response - handle both dict-like and plain string responses
    if isinstance(response, dict):
        url = response.get("publicUrl") or response.get("public_url") or ""
    else:
        url = str(response)

    logger.debug(f"Resolved public URL for storage_path={ref.path}")
    return url


async def upload_file(
    supabase_client: Client,
    path: str,
    data: bytes,
    content_type: Optional[str] = None,
) -> str:
    """Upload bytes and return their public URL."""
    ref = await put_bytes(supabase_client, path, data, content_type)
    return get_public_url(supabase_client, ref)
