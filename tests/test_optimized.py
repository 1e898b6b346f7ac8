"""Tests specific to the storage-optimized escrow."""
import pytest

from wagerx.escrow import (
    OptimizedWagerEscrow,
    WagerAccepted,
    WagerCancelled,
    WagerEscrow,
    WagerStatus,
)
from wagerx.services.escrow import CreateWagerParams, EscrowClient, EscrowClientError

from conftest import ALICE, BOB, CAROL, CHARITY, OWNER


@pytest.fixture
def optimized(ledger):
    return EscrowClient.deploy(owner=OWNER, variant="optimized", ledger=ledger)


@pytest.fixture
def baseline(ledger):
    return EscrowClient.deploy(owner=OWNER, variant="baseline", ledger=ledger)


def run_lifecycle(client):
    # Only ALICE and BOB ever stake; cover the payouts assumed for CAROL
    client.ledger.mint(client.contract_address, 120)
    params = CreateWagerParams(
        participants=[ALICE, BOB, CAROL],
        amount=40,
        condition="BTC above 100k on Friday",
        charity_enabled=True,
        charity_percentage=15,
        charity_address=CHARITY,
    )
    _, resolved_id = client.create_wager(ALICE, params)
    client.accept_wager(BOB, resolved_id)
    client.resolve_wager(OWNER, resolved_id, BOB, "closing price feed")

    _, cancelled_id = client.create_wager(ALICE, params)
    client.cancel_wager(OWNER, cancelled_id)
    return resolved_id, cancelled_id


class TestOptimizedStorage:
    """Tests for the split storage layout."""

    def test_deploys_optimized_contract(self, optimized):
        """Test that the optimized variant is selected by name."""
        assert isinstance(optimized.contract, OptimizedWagerEscrow)

    def test_unknown_variant(self, ledger):
        """Test that an unknown variant name is rejected."""
        with pytest.raises(EscrowClientError):
            EscrowClient.deploy(owner=OWNER, variant="turbo", ledger=ledger)

    def test_immutable_fields_are_stored_once(self, optimized):
        """Test that participants and condition live in their own mappings."""
        resolved_id, _ = run_lifecycle(optimized)
        storage = optimized.contract.storage

        assert storage.participants[resolved_id] == (ALICE, BOB, CAROL)
        assert storage.conditions[resolved_id] == "BTC above 100k on Friday"
        assert storage.cores[resolved_id].status is WagerStatus.RESOLVED
        assert not hasattr(storage.cores[resolved_id], "participants")

    def test_same_logical_shape_as_baseline(self, ledger):
        """Test that both variants return identical wagers for the same calls."""
        results = []
        for variant in ("baseline", "optimized"):
            client = EscrowClient.deploy(owner=OWNER, variant=variant, ledger=ledger)
            ids = run_lifecycle(client)
            results.append([client.get_wager(wager_id) for wager_id in ids])

        assert results[0] == results[1]

    def test_returned_wager_is_a_copy(self, optimized):
        """Test that mutating a read wager does not touch storage."""
        resolved_id, _ = run_lifecycle(optimized)
        wager = optimized.get_wager(resolved_id)
        wager.participants.append(OWNER)
        assert optimized.get_wager(resolved_id).participants == [ALICE, BOB, CAROL]


class TestOptimizedEvents:
    """Tests for the additional lifecycle events."""

    def test_accept_and_cancel_events(self, optimized, ledger):
        """Test that accept and cancel are announced."""
        resolved_id, cancelled_id = run_lifecycle(optimized)

        assert ledger.events("WagerAccepted") == [WagerAccepted(wager_id=resolved_id, participant=BOB)]
        assert ledger.events("WagerCancelled") == [WagerCancelled(wager_id=cancelled_id)]

    def test_baseline_emits_no_extra_events(self, baseline, ledger):
        """Test that the baseline only announces creation and resolution."""
        run_lifecycle(baseline)

        names = {event.name for event in ledger.events()}
        assert names == {"WagerCreated", "WagerResolved"}
        assert type(baseline.contract) is WagerEscrow
