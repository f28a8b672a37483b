"""
Database access layer for docbridge.

All database operations MUST:
- Respect Row Level Security (RLS)
- Go through the document-store layer in docbridge.compat
- Never invent table names outside docbridge.compat.routing

DO NOT define table schemas or migrations here. The reference schema for
the generic and dedicated tables lives in sql/document_store.sql.
"""

from .client import get_supabase_client

__all__ = ["get_supabase_client"]
