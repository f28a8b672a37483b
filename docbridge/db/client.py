"""
Supabase client factory with RLS enforcement.

This module provides the Supabase clients that every document-store
operation receives as its first argument.

CRITICAL SECURITY RULES:
1. NEVER use the service_role key for user operations
2. ALWAYS use the user's JWT token from Supabase Auth for per-user access
3. RLS policies decide which documents a caller can see or write
"""

import logging

from docbridge.config import settings
from supabase import Client, create_client

logger = logging.getLogger(__name__)


def get_supabase_client(access_token: str) -> Client:
    """
    Create an authenticated Supabase client for a specific user.

    This client respects Row Level Security (RLS) policies because it uses
    the user's JWT access token from Supabase Auth. Reads and writes made
    through the document layer are scoped by those policies.

    Args:
        access_token: The user's JWT access token from Supabase Auth.
                     This is the token verified in docbridge/auth/dependencies.py.

    Returns:
        An authenticated Supabase client that enforces RLS.

    Example:
        >>> from docbridge.compat import doc_ref, get_one
        >>> client = get_supabase_client(token)
        >>> snapshot = await get_one(client, doc_ref(None, "tenants", "acme"))
    """
    # Create client with publishable key (respects RLS)
    client: Client = create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )

    # Set the user's JWT token - this is what makes RLS work
    client.auth.set_session(access_token, access_token)

    logger.debug(
        "Created authenticated Supabase client with user token "
        "(RLS enforced)"
    )

    return client
