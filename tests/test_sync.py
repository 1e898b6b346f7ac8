"""Tests for mirroring wagers into the database."""
import pytest

from wagerx.escrow import WagerNotFound
from wagerx.models import CharityDonation, WagerParticipant
from wagerx.services.escrow import CreateWagerParams
from wagerx.services.sync import (
    get_wager_record,
    list_wager_records,
    record_evidence,
    status_label,
    sync_all,
    sync_wager,
)

from conftest import ALICE, BOB, CAROL, CHARITY


def create(client, participants=(ALICE, BOB), **kwargs):
    params = CreateWagerParams(participants=list(participants), amount=100, condition="Derby winner", **kwargs)
    return client.create_wager(participants[0], params)[1]


class TestSyncWager:
    """Tests for sync_wager."""

    @pytest.mark.asyncio
    async def test_creates_then_updates(self, db_session, client, registry):
        """Test that the first sync inserts and later syncs follow the escrow."""
        wager_id = create(client)

        record, created = await sync_wager(db_session, client, wager_id, registry)
        assert created
        assert record.status == "pending"
        assert record.creator == ALICE
        assert record.amount == "100"
        assert record.winner is None
        assert [p.address for p in record.participants] == [ALICE, BOB]
        assert record.contract_address == client.contract_address

        client.accept_wager(BOB, wager_id)
        record, created = await sync_wager(db_session, client, wager_id, registry)
        assert not created
        assert record.status == "active"

    @pytest.mark.asyncio
    async def test_resolved_wager_records_donation(self, db_session, client, registry):
        """Test that a donation row is written once for a resolved wager."""
        wager_id = create(client, charity_enabled=True, charity_percentage=10, charity_address=CHARITY)
        client.accept_wager(BOB, wager_id)
        client.resolve_wager(ALICE, wager_id, BOB)

        record, _ = await sync_wager(db_session, client, wager_id, registry)
        await sync_wager(db_session, client, wager_id, registry)

        assert record.status == "resolved"
        assert record.winner == BOB
        assert record.charity_donated == "20"
        assert record.resolved_at is not None
        assert len(record.donations) == 1
        donation: CharityDonation = record.donations[0]
        assert donation.amount == "20"
        assert donation.charity_name == "Test Charity"
        assert donation.percentage == 10

    @pytest.mark.asyncio
    async def test_stale_participants_are_rewritten(self, db_session, client):
        """Test that a mirror whose participants drifted is corrected."""
        wager_id = create(client)
        record, _ = await sync_wager(db_session, client, wager_id)

        record.participants.append(WagerParticipant(position=2, address=CAROL))
        await db_session.commit()

        record, _ = await sync_wager(db_session, client, wager_id)
        assert [p.address for p in record.participants] == [ALICE, BOB]

    @pytest.mark.asyncio
    async def test_unknown_wager(self, db_session, client):
        with pytest.raises(WagerNotFound):
            await sync_wager(db_session, client, 99)


class TestSyncAll:
    """Tests for sync_all and listing."""

    @pytest.mark.asyncio
    async def test_sync_all_stats(self, db_session, client, registry):
        first = create(client)
        create(client, participants=(BOB, CAROL))
        await sync_wager(db_session, client, first, registry)

        stats = await sync_all(db_session, client, registry)

        assert stats == {"fetched": 2, "created": 1, "updated": 1, "errors": 0}

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session, client):
        """Test filtering the mirror by status and participant."""
        first = create(client)
        second = create(client, participants=(BOB, CAROL))
        client.cancel_wager(BOB, second)
        await sync_all(db_session, client)

        assert [r.wager_id for r in await list_wager_records(db_session)] == [second, first]
        assert [r.wager_id for r in await list_wager_records(db_session, status="cancelled")] == [second]
        assert [r.wager_id for r in await list_wager_records(db_session, participant=CAROL)] == [second]
        assert [r.wager_id for r in await list_wager_records(db_session, participant=ALICE.upper().replace("0X", "0x"))] == [first]
        assert await list_wager_records(db_session, limit=1, offset=1) == [await get_wager_record(db_session, first)]

    @pytest.mark.asyncio
    async def test_record_evidence(self, db_session, client):
        wager_id = create(client)
        assert not await record_evidence(db_session, wager_id, "box score")

        await sync_wager(db_session, client, wager_id)
        assert await record_evidence(db_session, wager_id, "box score")
        assert (await get_wager_record(db_session, wager_id)).evidence == "box score"


def test_status_label():
    assert [status_label(i) for i in range(4)] == ["pending", "active", "resolved", "cancelled"]
