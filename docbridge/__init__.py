"""docbridge: document-store compatibility layer over Supabase."""

__version__ = "0.1.0"
