"""
WAGERX - Utility functions: parameter digests, time helpers.
"""

import xxhash
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def compute_params_hash(data: Dict[str, Any]) -> str:
    """
    Compute a deterministic xxhash digest of a parameter set.

    Args:
        data: Dictionary of parameters

    Returns:
        Hex-encoded xxhash digest
    """
    # Sort keys for deterministic hashing
    sorted_data = sorted(data.items())
    data_str = str(sorted_data)

    hash_obj = xxhash.xxh64()
    hash_obj.update(data_str.encode("utf-8"))

    return hash_obj.hexdigest()


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def from_timestamp(seconds: int) -> Optional[datetime]:
    """
    Convert a ledger timestamp to a UTC datetime.

    Args:
        seconds: Unix seconds; 0 means unset

    Returns:
        UTC datetime, or None for 0
    """
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
