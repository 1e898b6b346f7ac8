"""
WAGERX - Wager escrow contract (baseline variant).

Holds stakes for peer-to-peer wagers, enforces the wager lifecycle and pays
out on resolution (winner plus optional charity cut) or refunds on
cancellation.

Lifecycle::

    PENDING --accept--> ACTIVE --resolve--> RESOLVED
    PENDING --cancel--> CANCELLED
    ACTIVE  --cancel--> CANCELLED

State is committed before any value leaves the contract, and every mutating
call holds a contract-wide reentrancy lock.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from wagerx.escrow.errors import (
    AlreadyFunded,
    InsufficientPayment,
    InvalidParameters,
    InvalidStatus,
    NotParticipant,
    ReentrantCall,
    Unauthorized,
    WagerNotFound,
)
from wagerx.escrow.ledger import Contract, external
from wagerx.escrow.types import (
    ZERO_ADDRESS,
    Message,
    Wager,
    WagerCreated,
    WagerResolved,
    WagerStatus,
    normalize_address,
)

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
MAX_CHARITY_PERCENTAGE = 100

# Allowed transitions per status; a missing operation means the call reverts.
TRANSITIONS: Dict[WagerStatus, Dict[str, WagerStatus]] = {
    WagerStatus.PENDING: {
        "accept": WagerStatus.ACTIVE,
        "cancel": WagerStatus.CANCELLED,
    },
    WagerStatus.ACTIVE: {
        "resolve": WagerStatus.RESOLVED,
        "cancel": WagerStatus.CANCELLED,
    },
    WagerStatus.RESOLVED: {},
    WagerStatus.CANCELLED: {},
}

_STATUS_ERRORS = {
    "accept": "Wager not pending",
    "resolve": "Wager not active",
    "cancel": "Wager cannot be cancelled",
}


def split_pool(
    total_pool: int,
    charity_enabled: bool,
    charity_percentage: int,
    charity_address: str,
) -> Tuple[int, int]:
    """
    Split a pool between charity and winner.

    The charity share is floor(pool * percentage / 100); the winner gets the
    rest, so the two always add up to the pool.

    Args:
        total_pool: Pool to split
        charity_enabled: Whether the wager donates to charity
        charity_percentage: Percentage of the pool for charity (0-100)
        charity_address: Charity recipient; the zero address disables the cut

    Returns:
        Tuple of (charity_amount, winner_amount)
    """
    charity_amount = 0
    if charity_enabled and charity_percentage > 0 and charity_address != ZERO_ADDRESS:
        charity_amount = total_pool * charity_percentage // 100
    return charity_amount, total_pool - charity_amount


def non_reentrant(fn: Callable) -> Callable:
    """Reject calls that re-enter the contract while a mutating call runs."""

    @functools.wraps(fn)
    def wrapper(self: "WagerEscrow", msg: Message, *args):
        if self.storage.entered:
            raise ReentrantCall("Reentrant call")
        self.storage.entered = True
        try:
            return fn(self, msg, *args)
        finally:
            self.storage.entered = False

    return wrapper


@dataclass
class EscrowStorage:
    next_wager_id: int = 1
    wagers: Dict[int, Wager] = field(default_factory=dict)
    funded: Dict[int, List[str]] = field(default_factory=dict)
    entered: bool = False


class WagerEscrow(Contract):
    """
    Baseline escrow.

    Args:
        owner: Contract owner; may cancel any open wager
        track_funding: Track which participants staked. Off by default, in
            which case one accept activates the whole wager and payouts assume
            every participant staked.
    """

    def __init__(self, owner: str, track_funding: bool = False):
        super().__init__()
        self.owner = normalize_address(owner)
        self.track_funding = track_funding
        self.storage = self._new_storage()

    def _new_storage(self):
        return EscrowStorage()

    # Storage access, overridden by the optimized variant

    def _allocate_id(self) -> int:
        wager_id = self.storage.next_wager_id
        self._write_attr(self.storage, "next_wager_id", wager_id + 1)
        return wager_id

    def _save(self, wager: Wager) -> None:
        self._write(self.storage.wagers, wager.id, wager)

    def _load(self, wager_id: int) -> Wager:
        wager = self.storage.wagers.get(wager_id)
        if wager is None:
            raise WagerNotFound("Wager does not exist")
        # Callers mutate the result before saving it back
        return replace(wager, participants=list(wager.participants))

    def _count(self) -> int:
        return self.storage.next_wager_id - 1

    # Event hooks, overridden by the optimized variant

    def _on_accepted(self, wager: Wager, participant: str) -> None:
        pass

    def _on_cancelled(self, wager: Wager) -> None:
        pass

    def _transition(self, wager: Wager, operation: str) -> WagerStatus:
        next_status = TRANSITIONS[wager.status].get(operation)
        if next_status is None:
            raise InvalidStatus(_STATUS_ERRORS[operation])
        return next_status

    # External interface

    @external(payable=True)
    @non_reentrant
    def create_wager(
        self,
        msg: Message,
        participants: Sequence[str],
        amount: int,
        condition: str,
        charity_enabled: bool = False,
        charity_percentage: int = 0,
        charity_address: Optional[str] = None,
    ) -> int:
        """
        Create a wager funded by the caller's stake.

        Any value above `amount` stays in the contract.

        Returns:
            The new wager id
        """
        if not isinstance(amount, int) or amount < 0:
            raise InvalidParameters("Invalid amount")
        if msg.value < amount:
            raise InsufficientPayment("Insufficient payment")
        if len(participants) < MIN_PARTICIPANTS:
            raise InvalidParameters("Need at least 2 participants")
        if not isinstance(charity_percentage, int) or not 0 <= charity_percentage <= MAX_CHARITY_PERCENTAGE:
            raise InvalidParameters("Invalid charity percentage")

        members = [normalize_address(p) for p in participants]
        wager = Wager(
            id=self._allocate_id(),
            participants=members,
            amount=amount,
            condition=condition,
            status=WagerStatus.PENDING,
            winner=ZERO_ADDRESS,
            charity_enabled=bool(charity_enabled),
            charity_percentage=charity_percentage,
            charity_address=normalize_address(charity_address or ZERO_ADDRESS),
            charity_donated=0,
            created_at=msg.timestamp,
            resolved_at=0,
        )
        self._save(wager)

        if self.track_funding:
            # A relayed creation stakes on behalf of the creator
            staker = msg.sender if msg.sender in members else members[0]
            self._write(self.storage.funded, wager.id, [staker])

        self._emit(WagerCreated(wager_id=wager.id, creator=msg.sender, amount=amount))
        logger.info(f"Wager {wager.id} created by {msg.sender} ({len(members)} participants, stake {amount})")
        return wager.id

    @external(payable=True)
    @non_reentrant
    def accept_wager(self, msg: Message, wager_id: int) -> None:
        """Stake into a pending wager as one of its participants."""
        wager = self._load(wager_id)
        next_status = self._transition(wager, "accept")
        if not wager.is_participant(msg.sender):
            raise NotParticipant("Not a participant")
        if msg.value < wager.amount:
            raise InsufficientPayment("Insufficient payment")

        if self.track_funding:
            funded = list(self.storage.funded.get(wager_id, []))
            if msg.sender in funded:
                raise AlreadyFunded("Already funded")
            funded.append(msg.sender)
            self._write(self.storage.funded, wager_id, funded)
            if set(funded) != set(wager.participants):
                next_status = WagerStatus.PENDING

        wager.status = next_status
        self._save(wager)
        self._on_accepted(wager, msg.sender)
        logger.info(f"Wager {wager_id} accepted by {msg.sender}, now {wager.status.label}")

    @external()
    @non_reentrant
    def resolve_wager(self, msg: Message, wager_id: int, winner: str, evidence: str = "") -> None:
        """
        Name the winner of an active wager and pay out the pool.

        The charity share (if any) is sent first, then the remainder to the
        winner. A rejected transfer reverts the whole call.
        """
        wager = self._load(wager_id)
        next_status = self._transition(wager, "resolve")
        winner = normalize_address(winner)
        if not wager.is_participant(winner):
            raise NotParticipant("Winner not a participant")

        charity_amount, winner_amount = split_pool(
            self._pool(wager),
            wager.charity_enabled,
            wager.charity_percentage,
            wager.charity_address,
        )

        wager.status = next_status
        wager.winner = winner
        wager.resolved_at = msg.timestamp
        wager.charity_donated = charity_amount
        self._save(wager)

        if charity_amount > 0:
            self._transfer(wager.charity_address, charity_amount)
        self._transfer(winner, winner_amount)

        self._emit(WagerResolved(wager_id=wager_id, winner=winner))
        logger.info(
            f"Wager {wager_id} resolved: {winner_amount} to {winner}, "
            f"{charity_amount} to charity (evidence: {evidence[:80]!r})"
        )

    @external()
    @non_reentrant
    def cancel_wager(self, msg: Message, wager_id: int) -> None:
        """Cancel an open wager and refund the stake to each participant."""
        wager = self._load(wager_id)
        next_status = self._transition(wager, "cancel")
        if msg.sender != self.owner and msg.sender != wager.creator:
            raise Unauthorized("Not authorized")

        refunds = self._refund_list(wager)
        wager.status = next_status
        self._save(wager)

        for participant in refunds:
            self._transfer(participant, wager.amount)

        self._on_cancelled(wager)
        logger.info(f"Wager {wager_id} cancelled by {msg.sender}, refunded {len(refunds)} participant(s)")

    def _pool(self, wager: Wager) -> int:
        if self.track_funding:
            return wager.amount * len(self.storage.funded.get(wager.id, []))
        return wager.total_pool

    def _refund_list(self, wager: Wager) -> List[str]:
        if self.track_funding:
            return list(self.storage.funded.get(wager.id, []))
        return list(wager.participants)

    # Views

    def get_wager(self, wager_id: int) -> Wager:
        return self._load(wager_id)

    def wager_count(self) -> int:
        return self._count()

    def funded_participants(self, wager_id: int) -> List[str]:
        """Participants known to have staked; empty unless funding is tracked."""
        self._load(wager_id)
        return list(self.storage.funded.get(wager_id, []))
