"""
WAGERX - Wager mirror sync service.

Reads wagers from the escrow and mirrors them into the database, keyed by
on-chain wager id. The escrow is the source of truth; the mirror is only ever
overwritten from it.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wagerx.escrow import ZERO_ADDRESS, EscrowError, Wager, WagerStatus
from wagerx.models import CharityDonation, WagerParticipant, WagerRecord
from wagerx.services.charity import CharityRegistry
from wagerx.services.escrow import EscrowClient
from wagerx.utils import from_timestamp, now_utc

logger = logging.getLogger(__name__)


def status_label(status: int) -> str:
    """Translate a numeric on-chain status to its mirror string."""
    return WagerStatus(int(status)).label


def _optional_address(address: str) -> Optional[str]:
    return None if address == ZERO_ADDRESS else address


async def get_wager_record(db: AsyncSession, wager_id: int) -> Optional[WagerRecord]:
    """
    Get a mirrored wager with its participants and donations.

    Args:
        db: Database session
        wager_id: On-chain wager id

    Returns:
        WagerRecord or None
    """
    query = (
        select(WagerRecord)
        .where(WagerRecord.wager_id == wager_id)
        .options(selectinload(WagerRecord.participants), selectinload(WagerRecord.donations))
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_wager_records(
    db: AsyncSession,
    status: Optional[str] = None,
    participant: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[WagerRecord]:
    """
    List mirrored wagers, newest first.

    Args:
        db: Database session
        status: Only wagers in this status
        participant: Only wagers listing this address
        limit: Maximum number of wagers to return
        offset: Number of wagers to skip

    Returns:
        List of wager records
    """
    query = select(WagerRecord).options(selectinload(WagerRecord.participants))
    if status:
        query = query.where(WagerRecord.status == status)
    if participant:
        query = query.where(
            WagerRecord.participants.any(WagerParticipant.address == participant.lower())
        )
    query = query.order_by(WagerRecord.wager_id.desc()).limit(limit).offset(offset)

    result = await db.execute(query)
    return list(result.scalars().all())


def _apply(record: WagerRecord, wager: Wager, contract_address: str) -> None:
    record.contract_address = contract_address
    record.creator = wager.participants[0]
    record.amount = str(wager.amount)
    record.condition = wager.condition
    record.status = wager.status.label
    record.winner = _optional_address(wager.winner)
    record.charity_enabled = wager.charity_enabled
    record.charity_percentage = wager.charity_percentage
    record.charity_address = _optional_address(wager.charity_address)
    record.charity_donated = str(wager.charity_donated)
    record.created_at = from_timestamp(wager.created_at) or now_utc()
    record.resolved_at = from_timestamp(wager.resolved_at)
    record.synced_at = now_utc()


async def sync_wager(
    db: AsyncSession,
    client: EscrowClient,
    wager_id: int,
    registry: Optional[CharityRegistry] = None,
) -> Tuple[WagerRecord, bool]:
    """
    Mirror one wager from the escrow.

    Args:
        db: Database session
        client: Escrow client
        wager_id: On-chain wager id
        registry: Charity registry used to name donation recipients

    Returns:
        Tuple of (WagerRecord, created)

    Raises:
        WagerNotFound: If the escrow has no such wager
    """
    wager = client.get_wager(wager_id)
    record = await get_wager_record(db, wager_id)
    created = record is None

    participants = [
        WagerParticipant(position=position, address=address)
        for position, address in enumerate(wager.participants)
    ]

    if created:
        record = WagerRecord(wager_id=wager_id, participants=participants, donations=[])
        db.add(record)
    elif [p.address for p in record.participants] != wager.participants:
        # Participants never change on-chain; a mismatch means the mirror was stale
        logger.warning(f"Participant list of wager {wager_id} differs from escrow, rewriting")
        record.participants.clear()
        await db.flush()
        record.participants.extend(participants)

    _apply(record, wager, client.contract_address)

    if wager.status is WagerStatus.RESOLVED and wager.charity_donated > 0 and not record.donations:
        charity = registry.get(wager.charity_address) if registry else None
        record.donations.append(
            CharityDonation(
                charity_address=wager.charity_address,
                charity_name=charity.name if charity else None,
                amount=str(wager.charity_donated),
                percentage=wager.charity_percentage,
                donated_at=record.resolved_at or now_utc(),
            )
        )

    await db.commit()
    logger.info(f"Synced wager {wager_id} ({record.status}, {'created' if created else 'updated'})")
    return record, created


async def sync_all(
    db: AsyncSession,
    client: EscrowClient,
    registry: Optional[CharityRegistry] = None,
) -> Dict[str, int]:
    """
    Mirror every wager the escrow has created.

    Args:
        db: Database session
        client: Escrow client
        registry: Charity registry used to name donation recipients

    Returns:
        Dictionary with sync stats
    """
    count = client.wager_count()
    stats = {
        "fetched": count,
        "created": 0,
        "updated": 0,
        "errors": 0,
    }

    for wager_id in range(1, count + 1):
        try:
            _, created = await sync_wager(db, client, wager_id, registry)
        except EscrowError as e:
            logger.error(f"Error syncing wager {wager_id}: {e}")
            await db.rollback()
            stats["errors"] += 1
            continue
        stats["created" if created else "updated"] += 1

    return stats


async def record_evidence(db: AsyncSession, wager_id: int, evidence: str) -> bool:
    """
    Store resolution evidence on a mirrored wager.

    Args:
        db: Database session
        wager_id: On-chain wager id
        evidence: Evidence text from the resolver or oracle

    Returns:
        True if the wager is mirrored and was updated
    """
    record = await db.get(WagerRecord, wager_id)
    if record is None:
        return False

    record.evidence = evidence
    await db.commit()
    return True
