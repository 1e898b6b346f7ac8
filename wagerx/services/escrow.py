"""
WAGERX - Escrow client.

Submits calls to the wager escrow on the ledger and reads wagers back.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from wagerx.config import settings
from wagerx.escrow import (
    Ledger,
    OptimizedWagerEscrow,
    Receipt,
    Wager,
    WagerCreated,
    WagerEscrow,
    WagerNotFound,
    normalize_address,
)

logger = logging.getLogger(__name__)

VARIANTS = {
    "baseline": WagerEscrow,
    "optimized": OptimizedWagerEscrow,
}


class EscrowClientError(RuntimeError):
    pass


@dataclass
class CreateWagerParams:
    participants: List[str]
    amount: int
    condition: str
    charity_enabled: bool = False
    charity_percentage: int = 0
    charity_address: Optional[str] = None
    value: Optional[int] = None  # attached payment, defaults to amount


class EscrowClient:
    """
    Client for one deployed escrow contract.

    Args:
        ledger: Ledger the contract runs on
        contract: Deployed escrow contract
    """

    def __init__(self, ledger: Ledger, contract: WagerEscrow):
        if contract.ledger is not ledger:
            raise EscrowClientError("Contract is not deployed on the given ledger")
        self.ledger = ledger
        self.contract = contract

    @classmethod
    def deploy(
        cls,
        owner: str,
        variant: str = "baseline",
        track_funding: bool = False,
        ledger: Optional[Ledger] = None,
        chain_id: int = 97,
    ) -> "EscrowClient":
        """
        Deploy a fresh escrow and return a client for it.

        Args:
            owner: Contract owner address
            variant: "baseline" or "optimized"
            track_funding: Track per-participant funding
            ledger: Existing ledger (a new one is created if omitted)
            chain_id: Chain id for a new ledger

        Returns:
            EscrowClient
        """
        contract_cls = VARIANTS.get(variant)
        if contract_cls is None:
            raise EscrowClientError(f"Unknown escrow variant: {variant}")

        ledger = ledger or Ledger(chain_id=chain_id)
        contract = contract_cls(owner=owner, track_funding=track_funding)
        ledger.deploy(contract, deployer=owner)
        return cls(ledger, contract)

    @property
    def contract_address(self) -> str:
        return self.contract.address

    def create_wager(self, sender: str, params: CreateWagerParams) -> Tuple[str, int]:
        """
        Create a wager, attaching the stake.

        Args:
            sender: Caller address
            params: Wager parameters

        Returns:
            Tuple of (tx_hash, wager_id)

        Raises:
            EscrowError: If the escrow rejects the call
        """
        value = params.amount if params.value is None else params.value
        receipt = self.ledger.execute(
            sender,
            self.contract,
            "create_wager",
            list(params.participants),
            params.amount,
            params.condition,
            params.charity_enabled,
            params.charity_percentage,
            params.charity_address,
            value=value,
        )

        event = receipt.find_event(WagerCreated)
        if event is not None:
            wager_id = event.wager_id
        else:
            logger.warning(f"No WagerCreated event in {receipt.tx_hash}, using return value")
            wager_id = receipt.return_value
        if not wager_id:
            raise EscrowClientError(f"Failed to extract wager id from {receipt.tx_hash}")

        logger.info(f"Created wager {wager_id} in {receipt.tx_hash}")
        return receipt.tx_hash, wager_id

    def accept_wager(self, sender: str, wager_id: int, value: Optional[int] = None) -> str:
        """Accept a wager, attaching the wager amount unless `value` is given."""
        if value is None:
            value = self.get_wager(wager_id).amount
        receipt = self.ledger.execute(sender, self.contract, "accept_wager", wager_id, value=value)
        return receipt.tx_hash

    def resolve_wager(self, sender: str, wager_id: int, winner: str, evidence: str = "") -> str:
        receipt = self.ledger.execute(sender, self.contract, "resolve_wager", wager_id, winner, evidence)
        return receipt.tx_hash

    def cancel_wager(self, sender: str, wager_id: int) -> str:
        receipt = self.ledger.execute(sender, self.contract, "cancel_wager", wager_id)
        return receipt.tx_hash

    def get_wager(self, wager_id: int) -> Wager:
        return self.ledger.call(self.contract, "get_wager", wager_id)

    def wager_exists(self, wager_id: int) -> bool:
        try:
            self.get_wager(wager_id)
        except WagerNotFound:
            return False
        return True

    def wager_count(self) -> int:
        return self.ledger.call(self.contract, "wager_count")

    def get_balance(self, address: str) -> int:
        return self.ledger.balance_of(address)

    def has_sufficient_balance(self, address: str, required_amount: int) -> bool:
        return self.get_balance(address) >= required_amount

    def fund(self, address: str, amount: int) -> int:
        """Credit an account on the devnet. Returns the new balance."""
        self.ledger.mint(address, amount)
        logger.info(f"Funded {normalize_address(address)} with {amount}")
        return self.get_balance(address)

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        return self.ledger.get_receipt(tx_hash)


_client: Optional[EscrowClient] = None


def get_escrow_client() -> EscrowClient:
    """Dependency for FastAPI: the process-wide escrow client, deployed on first use."""
    global _client
    if _client is None:
        _client = EscrowClient.deploy(
            owner=settings.contract_owner,
            variant=settings.escrow_variant,
            track_funding=settings.track_funding,
            chain_id=settings.chain_id,
        )
    return _client
