"""
WAGERX - Pydantic models for request/response validation.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from wagerx.escrow.types import ZERO_ADDRESS, Wager, is_address
from wagerx.utils import from_timestamp

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _check_address(value: str) -> str:
    if not is_address(value):
        raise ValueError(f"invalid address: {value}")
    return value.lower()


class WagerCreateRequest(BaseModel):
    """Create a wager; `value` defaults to the stake."""

    sender: str
    participants: List[str]
    amount: int = Field(..., ge=0)
    condition: str
    charity_enabled: bool = False
    charity_percentage: int = Field(0, ge=0)
    charity_address: Optional[str] = None
    value: Optional[int] = Field(None, ge=0)

    @field_validator("sender")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        return _check_address(v)


class WagerActionRequest(BaseModel):
    """Accept or cancel a wager; `value` only applies to accept and defaults to the stake."""

    sender: str
    value: Optional[int] = Field(None, ge=0)

    @field_validator("sender")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        return _check_address(v)


class ResolveRequest(BaseModel):
    sender: str
    winner: str
    evidence: str = ""

    @field_validator("sender")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        return _check_address(v)


class VerifyRequest(BaseModel):
    category: str = "general"


class WagerSchema(BaseModel):
    """On-chain wager as returned by the escrow."""

    id: int
    participants: List[str]
    amount: str
    condition: str
    status: str
    winner: Optional[str] = None
    charity_enabled: bool
    charity_percentage: int
    charity_address: Optional[str] = None
    charity_donated: str
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_wager(cls, wager: Wager) -> "WagerSchema":
        return cls(
            id=wager.id,
            participants=list(wager.participants),
            amount=str(wager.amount),
            condition=wager.condition,
            status=wager.status.label,
            winner=None if wager.winner == ZERO_ADDRESS else wager.winner,
            charity_enabled=wager.charity_enabled,
            charity_percentage=wager.charity_percentage,
            charity_address=None if wager.charity_address == ZERO_ADDRESS else wager.charity_address,
            charity_donated=str(wager.charity_donated),
            created_at=from_timestamp(wager.created_at) or EPOCH,
            resolved_at=from_timestamp(wager.resolved_at),
        )


class WagerRecordSchema(BaseModel):
    """Mirrored wager row."""

    wager_id: int
    contract_address: str
    creator: str
    participants: List[str]
    amount: str
    condition: str
    status: str
    winner: Optional[str] = None
    charity_enabled: bool
    charity_percentage: int
    charity_address: Optional[str] = None
    charity_donated: str
    evidence: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("participants", mode="before")
    @classmethod
    def flatten_participants(cls, v):
        return [p if isinstance(p, str) else p.address for p in v]


class TransactionResponse(BaseModel):
    tx_hash: str
    wager_id: int
    status: str


class SyncResponse(BaseModel):
    wager_id: int
    status: str
    synced_at: datetime


class CharitySchema(BaseModel):
    name: str
    address: str
    description: str


class DonationRequest(BaseModel):
    charity_enabled: bool
    charity_percentage: int = Field(..., ge=0, le=100)
    charity_address: Optional[str] = None
    total_pool: int = Field(..., ge=0)


class DonationResponse(BaseModel):
    donation_amount: str
    winner_amount: str


class CharityVerificationSchema(BaseModel):
    is_valid: bool
    expected_donation: str
    actual_donation: str
    percentage: int
    charity_address: Optional[str] = None
    total_pool: str
    winner_amount: str
    errors: List[str] = []


class NonceResponse(BaseModel):
    address: str
    nonce: int


class RelayWagerRequest(BaseModel):
    """Wager creation signed by `user` and submitted by the relayer."""

    user: str
    participants: List[str]
    amount: int = Field(..., ge=0)
    condition: str
    charity_enabled: bool = False
    charity_percentage: int = Field(0, ge=0)
    charity_address: Optional[str] = None
    nonce: int = Field(..., ge=0)
    sig: str

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: str) -> str:
        return _check_address(v)


class BalanceResponse(BaseModel):
    address: str
    balance: str


class FundRequest(BaseModel):
    amount: int = Field(..., gt=0)


class ErrorResponse(BaseModel):
    code: str
    message: str
    user_message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "OK"
