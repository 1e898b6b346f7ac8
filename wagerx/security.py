"""
WAGERX - HMAC signing for relayed wager creation.

The signed message is the xxhash digest of the canonical wager parameters, so
any change to a parameter (or the nonce) invalidates the signature.
"""

import hmac
import hashlib
from typing import Any, Dict, Optional, Sequence

from wagerx.config import settings
from wagerx.escrow.types import ZERO_ADDRESS
from wagerx.utils import compute_params_hash


def canonical_wager_params(
    user: str,
    participants: Sequence[str],
    amount: int,
    condition: str,
    charity_enabled: bool,
    charity_percentage: int,
    charity_address: Optional[str],
    nonce: int,
) -> Dict[str, Any]:
    """Build the parameter set covered by a relay signature."""
    return {
        "user": user.lower(),
        "participants": tuple(p.lower() for p in participants),
        "amount": int(amount),
        "condition": condition,
        "charity_enabled": bool(charity_enabled),
        "charity_percentage": int(charity_percentage or 0),
        "charity_address": (charity_address or ZERO_ADDRESS).lower(),
        "nonce": int(nonce),
    }


def sign_hmac_v1(params: Dict[str, Any], secret: Optional[str] = None) -> str:
    """
    Generate HMAC-SHA256 signature over a parameter digest.

    Args:
        params: Canonical wager parameters
        secret: Secret key (defaults to RELAY_SECRET)

    Returns:
        Hex-encoded HMAC signature
    """
    secret = secret or settings.relay_secret
    digest = compute_params_hash(params)

    return hmac.new(
        secret.encode("utf-8"),
        digest.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_hmac_v1(params: Dict[str, Any], sig: str, secret: Optional[str] = None) -> bool:
    """
    Verify HMAC-SHA256 signature over a parameter digest.

    Args:
        params: Canonical wager parameters
        sig: The signature to verify against
        secret: Secret key (defaults to RELAY_SECRET)

    Returns:
        True if signature is valid, False otherwise
    """
    expected_sig = sign_hmac_v1(params, secret)

    # Constant-time comparison
    return hmac.compare_digest(expected_sig, sig)
