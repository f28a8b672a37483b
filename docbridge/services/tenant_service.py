"""
Tenant lookups through the document-store layer.

Tenants live in the dedicated 'tenants' table; columns outside the
declared set (email, businessName, subscription, ...) are read from the
payload transparently.
"""

import logging
from typing import Any, Dict, Optional

from docbridge.compat import collection_ref, doc_ref, get_many, get_one, limit, query, where
from docbridge.services.tenant_cache import TenantCache

logger = logging.getLogger(__name__)

TENANTS_COLLECTION = "tenants"


async def get_tenant_by_id(
    supabase_client: Any,
    tenant_id: str,
) -> Optional[Dict[str, Any]]:
    """
    Fetch a tenant document by id.

    Returns:
        Tenant fields with 'id' set, or None if no such tenant exists.
    """
    snapshot = await get_one(supabase_client, doc_ref(None, TENANTS_COLLECTION, tenant_id))
    if not snapshot.exists:
        return None
    return {**snapshot.data(), "id": snapshot.id}


async def get_tenant_by_email(
    supabase_client: Any,
    email: str,
    cache: Optional[TenantCache] = None,
) -> Optional[Dict[str, Any]]:
    """
    Find the tenant registered with an email address.

    Args:
        supabase_client: Supabase client
        email: Owner email, matched exactly (callers canonicalize case)
        cache: Optional cache; hits skip the query, only found tenants
               are cached. Each call returns its own copy of the tenant.

    Returns:
        Tenant fields with 'id' set, or None if no tenant matches.
    """
    if cache is not None:
        cached = cache.get(email)
        if cached is not None:
            logger.debug("Tenant lookup served from cache")
            return cached

    tenants = collection_ref(None, TENANTS_COLLECTION)
    snapshot = await get_many(
        supabase_client,
        query(tenants, where("email", "==", email), limit(1)),
    )

    if snapshot.empty:
        logger.info("No tenant found for email lookup")
        return None

    tenant_snapshot = snapshot.docs[0]
    tenant = {**tenant_snapshot.data(), "id": tenant_snapshot.id}

    if cache is not None:
        cache.set(email, tenant)

    return tenant
