"""
Tests for the Supabase client factory.
"""

from unittest.mock import patch

import docbridge.db as db
from docbridge.db.client import get_supabase_client


def test_authenticated_client_sets_user_session():
    with patch("docbridge.db.client.create_client") as create_client:
        client = get_supabase_client("user-jwt")

    assert client is create_client.return_value
    create_client.assert_called_once()
    client.auth.set_session.assert_called_once_with("user-jwt", "user-jwt")


def test_only_rls_scoped_factory_is_exported():
    """Every client handed out carries a user session; there is no anonymous factory."""
    assert db.__all__ == ["get_supabase_client"]
    assert not hasattr(db, "get_public_client")
