from .errors import (
    AlreadyFunded,
    EscrowError,
    InsufficientBalance,
    InsufficientPayment,
    InvalidParameters,
    InvalidStatus,
    NotParticipant,
    NotPayable,
    ReentrantCall,
    TransferFailed,
    Unauthorized,
    WagerNotFound,
    describe_error,
)
from .types import (
    ZERO_ADDRESS,
    Message,
    Receipt,
    Wager,
    WagerAccepted,
    WagerCancelled,
    WagerCreated,
    WagerResolved,
    WagerStatus,
    is_address,
    normalize_address,
)
from .ledger import Contract, Ledger, external
from .contract import WagerEscrow, split_pool
from .optimized import OptimizedWagerEscrow

__all__ = [
    "AlreadyFunded",
    "Contract",
    "EscrowError",
    "InsufficientBalance",
    "InsufficientPayment",
    "InvalidParameters",
    "InvalidStatus",
    "Ledger",
    "Message",
    "NotParticipant",
    "NotPayable",
    "OptimizedWagerEscrow",
    "Receipt",
    "ReentrantCall",
    "TransferFailed",
    "Unauthorized",
    "Wager",
    "WagerAccepted",
    "WagerCancelled",
    "WagerCreated",
    "WagerEscrow",
    "WagerNotFound",
    "WagerResolved",
    "WagerStatus",
    "ZERO_ADDRESS",
    "describe_error",
    "external",
    "is_address",
    "normalize_address",
    "split_pool",
]
