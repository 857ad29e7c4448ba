from __future__ import annotations

import os
from functools import lru_cache
from typing import Any


@lru_cache(maxsize=1)
def get_client() -> Any:
    """Shared Supabase client for the repositories in supabase mode."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set when SKYRESERVE_STORAGE_BACKEND=supabase")
    try:
        from supabase import create_client
    except ImportError as exc:  # pragma: no cover - only reached in supabase mode
        raise RuntimeError("The supabase package is not installed.") from exc
    return create_client(url, key)
