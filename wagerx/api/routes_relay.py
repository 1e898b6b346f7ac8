"""
WAGERX - Relayer routes.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wagerx.api.errors import raise_escrow_http_error
from wagerx.db import get_db
from wagerx.escrow import EscrowError, is_address
from wagerx.schemas import NonceResponse, RelayWagerRequest, TransactionResponse
from wagerx.services.charity import CharityRegistry, get_charity_registry
from wagerx.services.escrow import EscrowClient, get_escrow_client
from wagerx.services.relayer import RelayError, get_nonce, relay_create_wager
from wagerx.services.sync import sync_wager

router = APIRouter(prefix="/relay", tags=["relay"])


@router.get("/nonce", response_model=NonceResponse)
async def nonce(address: str, db: AsyncSession = Depends(get_db)):
    """
    Get the nonce the next signed request from `address` must carry.

    Raises:
        HTTPException: If the address is malformed
    """
    if not is_address(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid address: {address}",
        )
    return NonceResponse(address=address.lower(), nonce=await get_nonce(db, address))


@router.post("/wagers", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def relay_wager(
    request: RelayWagerRequest,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """
    Submit a signed wager creation on the user's behalf.

    Raises:
        HTTPException: If the signature or nonce is invalid, or the escrow
            rejects the creation
    """
    try:
        tx_hash, wager_id = await relay_create_wager(db, client, request)
    except RelayError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )
    except EscrowError as e:
        raise_escrow_http_error(e)

    record, _ = await sync_wager(db, client, wager_id, registry)
    return TransactionResponse(tx_hash=tx_hash, wager_id=wager_id, status=record.status)
