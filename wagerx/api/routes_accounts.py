"""
WAGERX - Account routes for the devnet ledger.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from wagerx.config import settings
from wagerx.escrow import is_address
from wagerx.schemas import BalanceResponse, FundRequest
from wagerx.services.escrow import EscrowClient, get_escrow_client

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _check(address: str) -> str:
    if not is_address(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid address: {address}",
        )
    return address.lower()


@router.get("/{address}/balance", response_model=BalanceResponse)
async def balance(address: str, client: EscrowClient = Depends(get_escrow_client)):
    """Native balance of an account."""
    address = _check(address)
    return BalanceResponse(address=address, balance=str(client.get_balance(address)))


@router.post("/{address}/fund", response_model=BalanceResponse)
async def fund(
    address: str,
    request: FundRequest,
    client: EscrowClient = Depends(get_escrow_client),
):
    """
    Credit an account from the faucet.

    Raises:
        HTTPException: If the faucet is disabled or the address is malformed
    """
    if not settings.enable_faucet:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Faucet is disabled",
        )
    address = _check(address)
    new_balance = client.fund(address, request.amount)
    return BalanceResponse(address=address, balance=str(new_balance))
