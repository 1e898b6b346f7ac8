"""
WAGERX - Charity registry and donation verification.

The registry is the curated list the UI offers; the escrow itself only needs a
valid address and a percentage. Donation maths mirrors the escrow payout.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from wagerx.config import settings
from wagerx.escrow import ZERO_ADDRESS, Wager, is_address, split_pool

logger = logging.getLogger(__name__)


class Charity(BaseModel):
    name: str
    address: str
    description: str


# Placeholders until the foundations' donation addresses are verified
DEFAULT_CHARITIES = [
    Charity(name="GiveDirectly", address=ZERO_ADDRESS, description="Direct cash transfers to people in need"),
    Charity(name="UNICEF", address=ZERO_ADDRESS, description="Children's emergency fund"),
    Charity(name="Red Cross", address=ZERO_ADDRESS, description="Humanitarian aid organization"),
    Charity(name="World Wildlife Fund", address=ZERO_ADDRESS, description="Wildlife conservation"),
]


class CharityRegistryError(RuntimeError):
    pass


class CharityRegistry:
    def __init__(self, charities: Optional[List[Charity]] = None):
        self._charities = list(DEFAULT_CHARITIES if charities is None else charities)

    @classmethod
    def from_file(cls, path: Path) -> "CharityRegistry":
        """
        Load a registry from a JSON list of {name, address, description}.

        Raises:
            CharityRegistryError: If the file is missing or malformed
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CharityRegistryError(f"Cannot read charity registry {path}: {exc}") from exc

        if not isinstance(raw, list):
            raise CharityRegistryError("Charity registry must be a JSON list")

        charities = []
        for item in raw:
            try:
                charity = Charity.model_validate(item)
            except ValidationError as exc:
                raise CharityRegistryError(f"Invalid charity entry: {exc}") from exc
            if not is_address(charity.address):
                raise CharityRegistryError(f"Invalid charity address for {charity.name}: {charity.address}")
            charities.append(charity.model_copy(update={"address": charity.address.lower()}))

        logger.info(f"Loaded {len(charities)} charities from {path}")
        return cls(charities)

    def list(self) -> List[Charity]:
        return list(self._charities)

    def get(self, address: str) -> Optional[Charity]:
        if not is_address(address) or address.lower() == ZERO_ADDRESS:
            return None
        for charity in self._charities:
            if charity.address == address.lower():
                return charity
        return None

    @staticmethod
    def is_valid_charity_address(address: Optional[str]) -> bool:
        return is_address(address) and address.lower() != ZERO_ADDRESS


def calculate_donation(
    charity_enabled: bool,
    charity_percentage: int,
    charity_address: Optional[str],
    total_pool: int,
) -> Optional[Tuple[int, int]]:
    """
    Compute the charity/winner split of a pool.

    Args:
        charity_enabled: Whether the wager donates
        charity_percentage: Percentage of the pool (0-100)
        charity_address: Charity recipient
        total_pool: Pool to split

    Returns:
        Tuple of (donation_amount, winner_amount), or None if no donation applies
    """
    address = (charity_address or ZERO_ADDRESS).lower()
    if not charity_enabled or not charity_percentage or address == ZERO_ADDRESS:
        return None
    return split_pool(total_pool, charity_enabled, charity_percentage, address)


@dataclass
class CharityVerification:
    is_valid: bool
    expected_donation: int
    actual_donation: int
    percentage: int
    charity_address: Optional[str]
    total_pool: int
    winner_amount: int
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "expected_donation": str(self.expected_donation),
            "actual_donation": str(self.actual_donation),
            "percentage": self.percentage,
            "charity_address": self.charity_address,
            "total_pool": str(self.total_pool),
            "winner_amount": str(self.winner_amount),
            "errors": list(self.errors),
        }


def verify_charity_donation(wager: Wager) -> CharityVerification:
    """
    Check the donation recorded on a wager against the expected split.

    Args:
        wager: Wager read from the escrow

    Returns:
        CharityVerification
    """
    total_pool = wager.total_pool

    if not wager.charity_enabled:
        return CharityVerification(
            is_valid=wager.charity_donated == 0,
            expected_donation=0,
            actual_donation=wager.charity_donated,
            percentage=0,
            charity_address=None,
            total_pool=total_pool,
            winner_amount=total_pool - wager.charity_donated,
            errors=[] if wager.charity_donated == 0 else ["Donation recorded but charity is disabled"],
        )

    errors = []
    if not 0 <= wager.charity_percentage <= 100:
        errors.append(f"Invalid charity percentage: {wager.charity_percentage}% (must be 0-100%)")
    if wager.charity_address == ZERO_ADDRESS:
        errors.append("Charity address is not set or is zero address")

    expected, _ = split_pool(
        total_pool,
        wager.charity_enabled,
        wager.charity_percentage,
        wager.charity_address,
    )

    # Nothing is donated until the wager is resolved
    if wager.resolved_at and wager.charity_donated != expected:
        errors.append(f"Donation amount mismatch: expected {expected}, got {wager.charity_donated}")

    return CharityVerification(
        is_valid=not errors,
        expected_donation=expected,
        actual_donation=wager.charity_donated,
        percentage=wager.charity_percentage,
        charity_address=None if wager.charity_address == ZERO_ADDRESS else wager.charity_address,
        total_pool=total_pool,
        winner_amount=total_pool - (wager.charity_donated if wager.resolved_at else expected),
        errors=errors,
    )


_registry: Optional[CharityRegistry] = None


def get_charity_registry() -> CharityRegistry:
    """Dependency for FastAPI: registry from CHARITY_REGISTRY_PATH, or the defaults."""
    global _registry
    if _registry is None:
        if settings.charity_registry_path:
            _registry = CharityRegistry.from_file(Path(settings.charity_registry_path))
        else:
            _registry = CharityRegistry()
    return _registry
