"""
Service layer for docbridge.

Application-facing helpers built on top of the document-store layer:
- Object storage primitives (Supabase Storage)
- Tenant lookups with an injected, time-bounded cache
"""

from .storage import StorageRef, get_public_url, put_bytes, upload_file
from .tenant_cache import TenantCache
from .tenant_service import get_tenant_by_email, get_tenant_by_id

__all__ = [
    "StorageRef",
    "put_bytes",
    "get_public_url",
    "upload_file",
    "TenantCache",
    "get_tenant_by_email",
    "get_tenant_by_id",
]
