"""
WAGERX - Wager routes.

Mutating routes submit to the escrow and then refresh the mirror row, so a
client can read either the on-chain view or the mirrored one right after.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wagerx.api.errors import raise_escrow_http_error
from wagerx.db import get_db
from wagerx.escrow import EscrowError, WagerStatus
from wagerx.models import WAGER_STATUSES
from wagerx.schemas import (
    CharityVerificationSchema,
    ResolveRequest,
    SyncResponse,
    TransactionResponse,
    VerifyRequest,
    WagerActionRequest,
    WagerCreateRequest,
    WagerRecordSchema,
    WagerSchema,
)
from wagerx.services.charity import CharityRegistry, get_charity_registry, verify_charity_donation
from wagerx.services.escrow import CreateWagerParams, EscrowClient, get_escrow_client
from wagerx.services.oracle import OracleError, OutcomeOracleClient, get_oracle_client
from wagerx.services.sync import get_wager_record, list_wager_records, record_evidence, sync_all, sync_wager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wagers", tags=["wagers"])


@router.get("", response_model=List[WagerRecordSchema])
async def get_wagers(
    status_filter: Optional[str] = Query(None, alias="status"),
    participant: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """
    List mirrored wagers.

    Args:
        status_filter: Filter by status (pending, active, resolved, cancelled)
        participant: Filter by participant address
        limit: Maximum number of wagers to return
        offset: Number of wagers to skip
        db: Database session

    Returns:
        List of mirrored wagers
    """
    if status_filter and status_filter not in WAGER_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown status: {status_filter}",
        )
    return await list_wager_records(db, status=status_filter, participant=participant, limit=limit, offset=offset)


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_wager(
    request: WagerCreateRequest,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """
    Create a wager; the sender becomes participants[0] and attaches the stake.

    Raises:
        HTTPException: If the escrow rejects the creation
    """
    params = CreateWagerParams(
        participants=request.participants,
        amount=request.amount,
        condition=request.condition,
        charity_enabled=request.charity_enabled,
        charity_percentage=request.charity_percentage,
        charity_address=request.charity_address,
        value=request.value,
    )
    try:
        tx_hash, wager_id = client.create_wager(request.sender, params)
    except EscrowError as e:
        raise_escrow_http_error(e)

    record, _ = await sync_wager(db, client, wager_id, registry)
    return TransactionResponse(tx_hash=tx_hash, wager_id=wager_id, status=record.status)


@router.post("/sync", status_code=status.HTTP_200_OK)
async def sync_wagers(
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """Mirror every wager from the escrow."""
    stats = await sync_all(db, client, registry)
    return {"status": "success", "stats": stats}


@router.get("/{wager_id}", response_model=WagerSchema)
async def get_wager(wager_id: int, client: EscrowClient = Depends(get_escrow_client)):
    """
    Read a wager straight from the escrow.

    Raises:
        HTTPException: If the wager does not exist
    """
    try:
        wager = client.get_wager(wager_id)
    except EscrowError as e:
        raise_escrow_http_error(e)
    return WagerSchema.from_wager(wager)


@router.get("/{wager_id}/record", response_model=WagerRecordSchema)
async def get_record(wager_id: int, db: AsyncSession = Depends(get_db)):
    """Read the mirrored row of a wager."""
    record = await get_wager_record(db, wager_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Wager {wager_id} is not mirrored",
        )
    return record


@router.post("/{wager_id}/accept", response_model=TransactionResponse)
async def accept_wager(
    wager_id: int,
    request: WagerActionRequest,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """Accept a pending wager as a listed participant, attaching the stake."""
    try:
        tx_hash = client.accept_wager(request.sender, wager_id, value=request.value)
    except EscrowError as e:
        raise_escrow_http_error(e)

    record, _ = await sync_wager(db, client, wager_id, registry)
    return TransactionResponse(tx_hash=tx_hash, wager_id=wager_id, status=record.status)


@router.post("/{wager_id}/resolve", response_model=TransactionResponse)
async def resolve_wager(
    wager_id: int,
    request: ResolveRequest,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """Resolve an active wager, paying the charity cut and then the winner."""
    try:
        tx_hash = client.resolve_wager(request.sender, wager_id, request.winner, request.evidence)
    except EscrowError as e:
        raise_escrow_http_error(e)

    record, _ = await sync_wager(db, client, wager_id, registry)
    if request.evidence:
        await record_evidence(db, wager_id, request.evidence)
    return TransactionResponse(tx_hash=tx_hash, wager_id=wager_id, status=record.status)


@router.post("/{wager_id}/cancel", response_model=TransactionResponse)
async def cancel_wager(
    wager_id: int,
    request: WagerActionRequest,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """Cancel a pending or active wager and refund the participants."""
    try:
        tx_hash = client.cancel_wager(request.sender, wager_id)
    except EscrowError as e:
        raise_escrow_http_error(e)

    record, _ = await sync_wager(db, client, wager_id, registry)
    return TransactionResponse(tx_hash=tx_hash, wager_id=wager_id, status=record.status)


@router.post("/{wager_id}/sync", response_model=SyncResponse)
async def sync_one(
    wager_id: int,
    db: AsyncSession = Depends(get_db),
    client: EscrowClient = Depends(get_escrow_client),
    registry: CharityRegistry = Depends(get_charity_registry),
):
    """Refresh the mirrored row of one wager."""
    try:
        record, _ = await sync_wager(db, client, wager_id, registry)
    except EscrowError as e:
        raise_escrow_http_error(e)
    return SyncResponse(wager_id=wager_id, status=record.status, synced_at=record.synced_at)


@router.post("/{wager_id}/verify")
async def verify_outcome(
    wager_id: int,
    request: VerifyRequest,
    client: EscrowClient = Depends(get_escrow_client),
    oracle: OutcomeOracleClient = Depends(get_oracle_client),
):
    """
    Ask the outcome oracle who won an active wager.

    Nothing is submitted to the escrow; resolution stays a separate call.

    Raises:
        HTTPException: If the wager is missing, not active, or the oracle fails
    """
    try:
        wager = client.get_wager(wager_id)
    except EscrowError as e:
        raise_escrow_http_error(e)

    if wager.status is not WagerStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Wager {wager_id} is {wager.status.label}, not active",
        )

    try:
        result = await oracle.verify(
            wager_id=wager_id,
            condition=wager.condition,
            participants=wager.participants,
            category=request.category,
        )
    except OracleError as e:
        logger.error(f"Oracle verification failed for wager {wager_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        )

    return {"wager_id": wager_id, **result.model_dump(mode="json")}


@router.get("/{wager_id}/charity", response_model=CharityVerificationSchema)
async def verify_charity(wager_id: int, client: EscrowClient = Depends(get_escrow_client)):
    """Check the charity donation of a wager against the expected split."""
    try:
        wager = client.get_wager(wager_id)
    except EscrowError as e:
        raise_escrow_http_error(e)
    return verify_charity_donation(wager).to_dict()
