"""
WAGERX - Escrow data model: wager record, status, events, addresses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from wagerx.escrow.errors import InvalidParameters

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_address(value: object) -> bool:
    """Check that value is a 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def normalize_address(value: str) -> str:
    """
    Validate and lowercase an address.

    Args:
        value: Hex address with 0x prefix

    Returns:
        Lowercased address

    Raises:
        InvalidParameters: If value is not a 20-byte hex address
    """
    if not is_address(value):
        raise InvalidParameters(f"Invalid address: {value!r}")
    return value.lower()


class WagerStatus(IntEnum):
    PENDING = 0
    ACTIVE = 1
    RESOLVED = 2
    CANCELLED = 3

    @property
    def label(self) -> str:
        """String form used by the off-chain mirror."""
        return self.name.lower()

    @property
    def is_terminal(self) -> bool:
        if self is WagerStatus.PENDING or self is WagerStatus.ACTIVE:
            return False
        if self is WagerStatus.RESOLVED or self is WagerStatus.CANCELLED:
            return True
        raise AssertionError(f"Unhandled status: {self!r}")


@dataclass
class Wager:
    """One escrowed wager. Amounts are in the smallest currency unit."""

    id: int
    participants: List[str]
    amount: int
    condition: str
    status: WagerStatus = WagerStatus.PENDING
    winner: str = ZERO_ADDRESS
    charity_enabled: bool = False
    charity_percentage: int = 0
    charity_address: str = ZERO_ADDRESS
    charity_donated: int = 0
    created_at: int = 0
    resolved_at: int = 0

    @property
    def creator(self) -> str:
        return self.participants[0]

    @property
    def total_pool(self) -> int:
        """Pool assuming every listed participant staked."""
        return self.amount * len(self.participants)

    def is_participant(self, address: str) -> bool:
        return address.lower() in self.participants


@dataclass(frozen=True)
class EscrowEvent:
    """Base class for events emitted by the escrow."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class WagerCreated(EscrowEvent):
    wager_id: int
    creator: str
    amount: int


@dataclass(frozen=True)
class WagerResolved(EscrowEvent):
    wager_id: int
    winner: str


@dataclass(frozen=True)
class WagerAccepted(EscrowEvent):
    wager_id: int
    participant: str


@dataclass(frozen=True)
class WagerCancelled(EscrowEvent):
    wager_id: int


@dataclass
class Message:
    """Call context: who called, what they attached, and when."""

    sender: str
    value: int = 0
    timestamp: int = 0


@dataclass
class Receipt:
    tx_hash: str
    sender: str
    method: str
    value: int
    return_value: object = None
    events: List[EscrowEvent] = field(default_factory=list)
    timestamp: int = 0

    def find_event(self, event_type: type) -> Optional[EscrowEvent]:
        for event in self.events:
            if isinstance(event, event_type):
                return event
        return None
