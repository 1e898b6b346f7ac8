"""
WAGERX - Wager escrow contract (storage-optimized variant).

Same interface and semantics as `WagerEscrow`. The mutable core of each wager
lives in one compact record while the participant list and condition text,
which never change after creation, sit in their own mappings and are written
once. `get_wager` reassembles the full record.

This variant also emits WagerAccepted and WagerCancelled.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from wagerx.escrow.contract import WagerEscrow
from wagerx.escrow.errors import WagerNotFound
from wagerx.escrow.types import Wager, WagerAccepted, WagerCancelled, WagerStatus


@dataclass
class WagerCore:
    amount: int
    status: WagerStatus
    winner: str
    charity_enabled: bool
    charity_percentage: int
    charity_address: str
    charity_donated: int
    created_at: int
    resolved_at: int


@dataclass
class OptimizedStorage:
    next_wager_id: int = 1
    cores: Dict[int, WagerCore] = field(default_factory=dict)
    participants: Dict[int, Tuple[str, ...]] = field(default_factory=dict)
    conditions: Dict[int, str] = field(default_factory=dict)
    funded: Dict[int, List[str]] = field(default_factory=dict)
    entered: bool = False


class OptimizedWagerEscrow(WagerEscrow):

    def _new_storage(self):
        return OptimizedStorage()

    def _save(self, wager: Wager) -> None:
        self._write(self.storage.cores, wager.id, WagerCore(
            amount=wager.amount,
            status=wager.status,
            winner=wager.winner,
            charity_enabled=wager.charity_enabled,
            charity_percentage=wager.charity_percentage,
            charity_address=wager.charity_address,
            charity_donated=wager.charity_donated,
            created_at=wager.created_at,
            resolved_at=wager.resolved_at,
        ))
        if wager.id not in self.storage.participants:
            self._write(self.storage.participants, wager.id, tuple(wager.participants))
            self._write(self.storage.conditions, wager.id, wager.condition)

    def _load(self, wager_id: int) -> Wager:
        core = self.storage.cores.get(wager_id)
        if core is None:
            raise WagerNotFound("Wager does not exist")
        return Wager(
            id=wager_id,
            participants=list(self.storage.participants[wager_id]),
            amount=core.amount,
            condition=self.storage.conditions[wager_id],
            status=core.status,
            winner=core.winner,
            charity_enabled=core.charity_enabled,
            charity_percentage=core.charity_percentage,
            charity_address=core.charity_address,
            charity_donated=core.charity_donated,
            created_at=core.created_at,
            resolved_at=core.resolved_at,
        )

    def _on_accepted(self, wager: Wager, participant: str) -> None:
        self._emit(WagerAccepted(wager_id=wager.id, participant=participant))

    def _on_cancelled(self, wager: Wager) -> None:
        self._emit(WagerCancelled(wager_id=wager.id))
