"""
Cache utilities for the share price endpoint.

Cached payloads are keyed by a ledger version number. Any change to a ledger
model bumps the version, so older payloads are simply never read again.
"""

import hashlib
import logging
import time
from typing import Optional

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

LEDGER_VERSION_KEY = "terracotta:ledger_version"


def make_key(key: str, key_prefix: str = "", version: Optional[int] = None) -> str:
    """
    Build a safe, consistent cache key.

    Args:
        key: base key
        key_prefix: optional prefix
        version: optional key version

    Returns:
        Key string safe for any cache backend
    """
    full_key = f"{key_prefix}:{key}" if key_prefix else key
    if version is not None:
        full_key = f"{full_key}:v{version}"

    # SECRET_KEY hash isolates projects sharing one cache server
    secret_hash = hashlib.sha256(settings.SECRET_KEY.encode()).hexdigest()[:10]
    full_key = f"{full_key}:{secret_hash}"

    if len(full_key) > 240 or " " in full_key:
        hashed = hashlib.sha256(full_key.encode()).hexdigest()
        return f"hashed:{hashed}"

    return full_key


def ledger_version() -> int:
    version = cache.get(LEDGER_VERSION_KEY)
    if version is None:
        # Time-based seed so an evicted counter never reuses an old version
        cache.add(LEDGER_VERSION_KEY, int(time.time() * 1000), timeout=None)
        version = cache.get(LEDGER_VERSION_KEY)
    return version


def bump_ledger_version() -> None:
    try:
        cache.incr(LEDGER_VERSION_KEY)
    except ValueError:
        cache.set(LEDGER_VERSION_KEY, int(time.time() * 1000), timeout=None)
    logger.debug("Ledger cache version bumped")


def share_price_cache_key(period) -> str:
    return make_key(f"share_price:{period.label}", key_prefix="terracotta", version=ledger_version())
