"""Canonical ID and timestamp factories.

All modules import from here instead of defining local _uuid()/_now() copies.

Timestamp Rule
--------------
All timestamps are ``datetime`` with ``tzinfo=timezone.utc``; never naive.
Trade open/close dates are plain calendar ``date`` values.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all trade IDs."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Current calendar date (UTC)."""
    return utc_now().date()
