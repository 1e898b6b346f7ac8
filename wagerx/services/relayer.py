"""
WAGERX - Relayer for signed wager creation.

A user signs the wager parameters plus their current nonce; the relayer checks
the signature, reserves the nonce, then submits `create_wager` itself, attaching the
stake. The escrow sees the relayer as the caller.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import func, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wagerx.config import settings
from wagerx.models import RelayNonce
from wagerx.schemas import RelayWagerRequest
from wagerx.security import canonical_wager_params, verify_hmac_v1
from wagerx.services.escrow import CreateWagerParams, EscrowClient

logger = logging.getLogger(__name__)


class RelayError(RuntimeError):
    pass


async def get_nonce(db: AsyncSession, address: str) -> int:
    """
    Get the next expected nonce for an address.

    Args:
        db: Database session
        address: User address

    Returns:
        Nonce (0 for an address that never relayed)
    """
    row = await db.get(RelayNonce, address.lower(), populate_existing=True)
    return row.nonce if row else 0


def _advance(address: str, current: int, new: int):
    return (
        update(RelayNonce)
        .where(RelayNonce.address == address, RelayNonce.nonce == current)
        .values(nonce=new, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )


async def _reserve_nonce(db: AsyncSession, address: str, nonce: int) -> None:
    """
    Atomically move the stored nonce from `nonce` to `nonce + 1`.

    Concurrent requests carrying the same nonce race on this write; exactly
    one of them wins.

    Raises:
        RelayError: If the stored nonce is no longer `nonce`
    """
    address = address.lower()
    if nonce == 0:
        try:
            await db.execute(insert(RelayNonce).values(address=address, nonce=1))
            await db.commit()
            return
        except IntegrityError:
            # Row already exists; fall through to the compare-and-set
            await db.rollback()

    result = await db.execute(_advance(address, nonce, nonce + 1))
    if result.rowcount != 1:
        await db.rollback()
        current = await get_nonce(db, address)
        raise RelayError(f"Invalid nonce: expected {current}, got {nonce}")
    await db.commit()


async def _release_nonce(db: AsyncSession, address: str, nonce: int) -> None:
    await db.execute(_advance(address.lower(), nonce + 1, nonce))
    await db.commit()


async def relay_create_wager(
    db: AsyncSession,
    client: EscrowClient,
    request: RelayWagerRequest,
    relayer: Optional[str] = None,
    secret: Optional[str] = None,
) -> Tuple[str, int]:
    """
    Verify a signed creation request and submit it on the user's behalf.

    The nonce is reserved before the escrow call and handed back if the escrow
    rejects the creation, so a signed request is relayed at most once.

    Args:
        db: Database session
        client: Escrow client
        request: Signed creation request
        relayer: Relayer address (defaults to RELAYER_ADDRESS)
        secret: Signing secret (defaults to RELAY_SECRET)

    Returns:
        Tuple of (tx_hash, wager_id)

    Raises:
        RelayError: If the signature, signer or nonce is invalid
        EscrowError: If the escrow rejects the creation
    """
    relayer = relayer or settings.relayer_address

    params = canonical_wager_params(
        user=request.user,
        participants=request.participants,
        amount=request.amount,
        condition=request.condition,
        charity_enabled=request.charity_enabled,
        charity_percentage=request.charity_percentage,
        charity_address=request.charity_address,
        nonce=request.nonce,
    )
    if not verify_hmac_v1(params, request.sig, secret):
        raise RelayError("Invalid signature")

    # participants[0] holds the creator's cancellation rights
    if not request.participants or request.participants[0].lower() != request.user.lower():
        raise RelayError("Signer must be the first participant")

    expected = await get_nonce(db, request.user)
    if request.nonce != expected:
        raise RelayError(f"Invalid nonce: expected {expected}, got {request.nonce}")

    await _reserve_nonce(db, request.user, request.nonce)
    try:
        tx_hash, wager_id = client.create_wager(
            relayer,
            CreateWagerParams(
                participants=request.participants,
                amount=request.amount,
                condition=request.condition,
                charity_enabled=request.charity_enabled,
                charity_percentage=request.charity_percentage,
                charity_address=request.charity_address,
            ),
        )
    except Exception:
        await _release_nonce(db, request.user, request.nonce)
        logger.warning(f"Relay for {request.user} reverted; nonce {request.nonce} released")
        raise

    logger.info(f"Relayed wager {wager_id} for {request.user} via {relayer}")
    return tx_hash, wager_id
