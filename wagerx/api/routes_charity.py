"""
WAGERX - Charity routes.
"""

from typing import List

from fastapi import APIRouter, Depends

from wagerx.schemas import CharitySchema, DonationRequest, DonationResponse
from wagerx.services.charity import CharityRegistry, calculate_donation, get_charity_registry

router = APIRouter(prefix="/charities", tags=["charities"])


@router.get("", response_model=List[CharitySchema])
async def get_charities(registry: CharityRegistry = Depends(get_charity_registry)):
    """
    List the curated charities.

    Returns:
        List of charities
    """
    return [charity.model_dump() for charity in registry.list()]


@router.post("/donation", response_model=DonationResponse)
async def calculate(request: DonationRequest):
    """
    Compute how a pool would be split between the charity and the winner.

    Args:
        request: Charity settings and pool size

    Returns:
        Donation and winner amounts
    """
    split = calculate_donation(
        request.charity_enabled,
        request.charity_percentage,
        request.charity_address,
        request.total_pool,
    )
    donation, winner = split if split else (0, request.total_pool)
    return DonationResponse(donation_amount=str(donation), winner_amount=str(winner))
