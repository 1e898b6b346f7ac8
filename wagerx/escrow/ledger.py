"""
WAGERX - In-process ledger.

Executes contract calls one at a time with all-or-nothing semantics. While a
call runs, every balance and storage write records the value it replaced in an
undo journal; if the call raises, the journal is replayed in reverse and the
events it emitted are dropped. Rolling back costs only what the call touched.
"""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from wagerx.escrow.errors import (
    EscrowError,
    InsufficientBalance,
    InvalidParameters,
    NotPayable,
    TransferFailed,
)
from wagerx.escrow.types import EscrowEvent, Message, Receipt, normalize_address

logger = logging.getLogger(__name__)

# hook(ledger, source, amount); raise to reject the value
ReceiveHook = Callable[["Ledger", str, int], None]

_MISSING = object()


def external(payable: bool = False) -> Callable:
    """Mark a contract method as callable through `Ledger.execute`."""

    def decorator(fn: Callable) -> Callable:
        fn._external = True
        fn._payable = payable
        return fn

    return decorator


def _derive_address(*parts: Any) -> str:
    digest = hashlib.sha256(":".join(str(p) for p in parts).encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]


class Contract:
    """
    Base class for contracts deployed on a `Ledger`.

    Subclasses keep their mutable state in `self.storage` and change it only
    through `_write` and `_write_attr`, so the ledger can undo a failed call.
    Values handed to `_write` must not be mutated in place afterwards.
    """

    storage: Any = None

    def __init__(self) -> None:
        self.address: Optional[str] = None
        self.ledger: Optional["Ledger"] = None

    def _bind(self, ledger: "Ledger", address: str) -> None:
        self.ledger = ledger
        self.address = address

    def _write(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        self.ledger.write(mapping, key, value)

    def _write_attr(self, obj: Any, name: str, value: Any) -> None:
        self.ledger.write_attr(obj, name, value)

    def _emit(self, event: EscrowEvent) -> None:
        self.ledger.emit(event)

    def _transfer(self, to: str, amount: int) -> None:
        if amount == 0:
            return
        self.ledger.transfer(self.address, to, amount)


@dataclass
class _Undo:
    target: Any
    key: Any
    old: Any
    attribute: bool = False

    def apply(self) -> None:
        if self.attribute:
            setattr(self.target, self.key, self.old)
        elif self.old is _MISSING:
            self.target.pop(self.key, None)
        else:
            self.target[self.key] = self.old


class Ledger:
    """
    Totally ordered execution environment for escrow contracts.

    Args:
        chain_id: Chain identifier mixed into addresses and tx hashes
        clock: Returns the current time in seconds (defaults to time.time)
    """

    def __init__(self, chain_id: int = 97, clock: Optional[Callable[[], float]] = None):
        self.chain_id = chain_id
        self._clock = clock or time.time
        self._balances: Dict[str, int] = {}
        self._contracts: Dict[str, Contract] = {}
        self._receivers: Dict[str, ReceiveHook] = {}
        self._events: List[EscrowEvent] = []
        self._receipts: Dict[str, Receipt] = {}
        self._journal: List[_Undo] = []
        self._tx_count = 0
        self._depth = 0
        self._lock = threading.RLock()

    # Journaled writes

    def write(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        """Set mapping[key], journaling the replaced value while a call runs."""
        if self._depth:
            self._journal.append(_Undo(mapping, key, mapping.get(key, _MISSING)))
        mapping[key] = value

    def write_attr(self, obj: Any, name: str, value: Any) -> None:
        """Set an attribute, journaling the replaced value while a call runs."""
        if self._depth:
            self._journal.append(_Undo(obj, name, getattr(obj, name), attribute=True))
        setattr(obj, name, value)

    def _credit(self, address: str, amount: int) -> None:
        self.write(self._balances, address, self._balances.get(address, 0) + amount)

    # Accounts

    def now(self) -> int:
        return int(self._clock())

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def mint(self, address: str, amount: int) -> None:
        if amount < 0:
            raise InvalidParameters("Mint amount must be non-negative")
        address = normalize_address(address)
        with self._lock:
            self._credit(address, amount)

    def register_receiver(self, address: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or with None, remove) the value-receive hook for an address."""
        address = normalize_address(address)
        if hook is None:
            self._receivers.pop(address, None)
        else:
            self._receivers[address] = hook

    def transfer(self, source: str, to: str, amount: int) -> None:
        """
        Move value from source to a recipient.

        Raises:
            TransferFailed: If source lacks funds or the recipient rejects the value
        """
        to = normalize_address(to)
        if amount < 0:
            raise InvalidParameters("Transfer amount must be non-negative")
        if self._balances.get(source, 0) < amount:
            raise TransferFailed("Transfer failed")

        self._credit(source, -amount)
        self._credit(to, amount)

        hook = self._receivers.get(to)
        if hook is not None:
            try:
                hook(self, source, amount)
            except Exception as exc:
                logger.warning(f"Recipient {to} rejected {amount}: {exc}")
                raise TransferFailed("Transfer failed") from exc

    # Contracts

    def deploy(self, contract: Contract, deployer: Optional[str] = None) -> str:
        with self._lock:
            address = _derive_address(self.chain_id, deployer or "genesis", len(self._contracts))
            contract._bind(self, address)
            self._contracts[address] = contract
            self._balances.setdefault(address, 0)
        logger.info(f"Deployed {type(contract).__name__} at {address}")
        return address

    def emit(self, event: EscrowEvent) -> None:
        self._events.append(event)

    def events(self, name: Optional[str] = None) -> List[EscrowEvent]:
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        return self._receipts.get(tx_hash)

    def call(self, contract: Contract, method: str, *args: Any) -> Any:
        """Read-only call. The result is a copy; mutating it does not touch storage."""
        with self._lock:
            return copy.deepcopy(getattr(contract, method)(*args))

    def execute(
        self,
        sender: str,
        contract: Contract,
        method: str,
        *args: Any,
        value: int = 0,
    ) -> Receipt:
        """
        Execute a state-changing contract call.

        Args:
            sender: Caller address
            contract: Deployed contract
            method: Name of an `@external` method
            *args: Call arguments
            value: Value attached to the call

        Returns:
            Receipt of the committed call

        Raises:
            EscrowError: If the call reverts; all state is restored first
        """
        fn = getattr(contract, method, None)
        if fn is None or not getattr(fn, "_external", False):
            raise InvalidParameters(f"Unknown method: {method}")
        if contract.ledger is not self:
            raise InvalidParameters("Contract is not deployed on this ledger")

        with self._lock:
            sender = normalize_address(sender)
            journal_mark = len(self._journal)
            first_event = len(self._events)
            timestamp = self.now()
            self._depth += 1
            try:
                if value < 0:
                    raise InvalidParameters("Value must be non-negative")
                if value and not fn._payable:
                    raise NotPayable("Function is not payable")
                if value:
                    if self._balances.get(sender, 0) < value:
                        raise InsufficientBalance("Insufficient balance for call value")
                    self._credit(sender, -value)
                    self._credit(contract.address, value)

                result = fn(Message(sender=sender, value=value, timestamp=timestamp), *args)
            except Exception as exc:
                self._rollback(journal_mark, first_event)
                if isinstance(exc, EscrowError):
                    logger.warning(f"{method} by {sender} reverted: {exc.reason}")
                else:
                    logger.error(f"{method} by {sender} failed: {exc}")
                raise
            finally:
                self._depth -= 1

            # A nested call's writes stay journaled until the outer call settles
            if self._depth == 0:
                self._journal.clear()

            self._tx_count += 1
            receipt = Receipt(
                tx_hash="0x" + hashlib.sha256(
                    f"{self.chain_id}:{self._tx_count}:{sender}:{method}:{args!r}:{value}".encode("utf-8")
                ).hexdigest(),
                sender=sender,
                method=method,
                value=value,
                return_value=result,
                events=self._events[first_event:],
                timestamp=timestamp,
            )
            if self._depth == 0:
                self._receipts[receipt.tx_hash] = receipt
            return receipt

    def _rollback(self, journal_mark: int, event_count: int) -> None:
        while len(self._journal) > journal_mark:
            self._journal.pop().apply()
        del self._events[event_count:]
