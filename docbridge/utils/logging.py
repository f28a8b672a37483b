"""
Logging utilities for docbridge.

Provides standardized logger configuration following privacy rules.

CRITICAL PRIVACY RULES:
- NEVER log document field values (payloads may contain PII)
- NEVER log uploaded bytes or object contents
- NEVER log Supabase Auth tokens, API keys, or secrets

Acceptable logging:
- Reference paths and document ids (e.g., "tenants/abc123")
- Table routing decisions (e.g., "route=firestore_documents generic=True")
- Query shape (field names, operators, counts), never filter values
- Error codes and sanitized error messages
"""

import logging
from typing import Optional

from docbridge.config import settings


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to settings.LOG_LEVEL)

    Returns:
        Configured logger instance

    Usage:
        >>> from docbridge.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Subscription started")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    # Add handler if not already configured (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
