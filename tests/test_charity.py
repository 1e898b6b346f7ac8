"""Tests for the charity registry and donation verification."""
import json

import pytest

from wagerx.escrow import ZERO_ADDRESS, Wager, WagerStatus
from wagerx.services.charity import (
    DEFAULT_CHARITIES,
    CharityRegistry,
    CharityRegistryError,
    calculate_donation,
    verify_charity_donation,
)

from conftest import ALICE, BOB, CHARITY, NOW


def make_wager(**overrides):
    values = dict(
        id=1,
        participants=[ALICE, BOB],
        amount=100,
        condition="Rain tomorrow",
        status=WagerStatus.ACTIVE,
        charity_enabled=True,
        charity_percentage=10,
        charity_address=CHARITY,
    )
    values.update(overrides)
    return Wager(**values)


class TestRegistry:
    """Tests for CharityRegistry."""

    def test_defaults(self):
        """Test that the default registry lists the curated charities."""
        names = [c.name for c in CharityRegistry().list()]
        assert names == [c.name for c in DEFAULT_CHARITIES]

    def test_lookup_by_address(self, registry):
        assert registry.get(CHARITY.upper().replace("0X", "0x")).name == "Test Charity"
        assert registry.get(ALICE) is None
        assert registry.get(ZERO_ADDRESS) is None

    def test_from_file(self, tmp_path):
        """Test loading a registry from JSON."""
        path = tmp_path / "charities.json"
        path.write_text(json.dumps([
            {"name": "Food Bank", "address": "0x" + "AB" * 20, "description": "Meals"},
        ]))

        registry = CharityRegistry.from_file(path)

        assert registry.list()[0].address == "0x" + "ab" * 20

    @pytest.mark.parametrize("content", [
        "{}",
        "not json",
        json.dumps([{"name": "No address"}]),
        json.dumps([{"name": "Bad", "address": "0x123", "description": "short address"}]),
    ])
    def test_from_file_rejects_bad_content(self, tmp_path, content):
        path = tmp_path / "charities.json"
        path.write_text(content)
        with pytest.raises(CharityRegistryError):
            CharityRegistry.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CharityRegistryError):
            CharityRegistry.from_file(tmp_path / "missing.json")

    def test_valid_charity_address(self):
        assert CharityRegistry.is_valid_charity_address(CHARITY)
        assert not CharityRegistry.is_valid_charity_address(ZERO_ADDRESS)
        assert not CharityRegistry.is_valid_charity_address(None)


class TestCalculateDonation:
    """Tests for calculate_donation."""

    def test_split(self):
        assert calculate_donation(True, 10, CHARITY, 200) == (20, 180)

    def test_rounds_charity_down(self):
        assert calculate_donation(True, 33, CHARITY, 10) == (3, 7)

    @pytest.mark.parametrize("enabled,percentage,address", [
        (False, 10, CHARITY),
        (True, 0, CHARITY),
        (True, 10, None),
        (True, 10, ZERO_ADDRESS),
    ])
    def test_no_donation(self, enabled, percentage, address):
        assert calculate_donation(enabled, percentage, address, 200) is None


class TestVerifyDonation:
    """Tests for verify_charity_donation."""

    def test_active_wager_reports_expected_split(self):
        """Test that an unresolved wager is valid with nothing donated yet."""
        result = verify_charity_donation(make_wager())

        assert result.is_valid
        assert result.expected_donation == 20
        assert result.actual_donation == 0
        assert result.winner_amount == 180

    def test_resolved_wager_with_matching_donation(self):
        wager = make_wager(status=WagerStatus.RESOLVED, winner=ALICE, charity_donated=20, resolved_at=NOW)
        result = verify_charity_donation(wager)
        assert result.is_valid
        assert result.to_dict()["actual_donation"] == "20"

    def test_resolved_wager_with_wrong_donation(self):
        wager = make_wager(status=WagerStatus.RESOLVED, winner=ALICE, charity_donated=5, resolved_at=NOW)
        result = verify_charity_donation(wager)
        assert not result.is_valid
        assert "Donation amount mismatch: expected 20, got 5" in result.errors

    def test_missing_charity_address(self):
        result = verify_charity_donation(make_wager(charity_address=ZERO_ADDRESS))
        assert not result.is_valid
        assert result.charity_address is None
        assert result.expected_donation == 0

    def test_disabled_charity(self):
        result = verify_charity_donation(make_wager(charity_enabled=False))
        assert result.is_valid
        assert result.percentage == 0
        assert result.winner_amount == 200
