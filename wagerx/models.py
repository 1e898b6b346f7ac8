"""
WAGERX - SQLAlchemy models for the off-chain wager mirror.

Rows are keyed by on-chain wager id and written only by the sync service.
Amounts are stored as decimal strings of the smallest currency unit.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from wagerx.db import Base

WAGER_STATUSES = ("pending", "active", "resolved", "cancelled")


class WagerRecord(Base):
    """Mirror of one on-chain wager."""

    __tablename__ = "wagers"

    wager_id = Column(BigInteger, primary_key=True, autoincrement=False)
    contract_address = Column(String, nullable=False)
    creator = Column(String, nullable=False, index=True)
    amount = Column(String, nullable=False)
    condition = Column(Text, nullable=False)
    status = Column(String, nullable=False, index=True)
    winner = Column(String, nullable=True)
    charity_enabled = Column(Boolean, default=False, nullable=False)
    charity_percentage = Column(Integer, default=0, nullable=False)
    charity_address = Column(String, nullable=True)
    charity_donated = Column(String, default="0", nullable=False)
    evidence = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    synced_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    participants = relationship(
        "WagerParticipant",
        back_populates="wager",
        order_by="WagerParticipant.position",
        cascade="all, delete-orphan",
    )
    donations = relationship("CharityDonation", back_populates="wager")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'resolved', 'cancelled')",
            name="wagers_status_check",
        ),
        CheckConstraint(
            "charity_percentage >= 0 AND charity_percentage <= 100",
            name="wagers_charity_percentage_check",
        ),
    )


class WagerParticipant(Base):
    """Participant list of a wager, in on-chain order (position 0 is the creator)."""

    __tablename__ = "wager_participants"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    wager_id = Column(BigInteger, ForeignKey("wagers.wager_id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    address = Column(String, nullable=False, index=True)

    wager = relationship("WagerRecord", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("wager_id", "position", name="uq_wager_participants_position"),
        Index("idx_wager_participants_address_wager", "address", "wager_id"),
    )


class CharityDonation(Base):
    """Charity payout observed on a resolved wager."""

    __tablename__ = "charity_donations"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    wager_id = Column(BigInteger, ForeignKey("wagers.wager_id", ondelete="CASCADE"), nullable=False, unique=True)
    charity_address = Column(String, nullable=False)
    charity_name = Column(Text, nullable=True)
    amount = Column(String, nullable=False)
    percentage = Column(Integer, nullable=False)
    donated_at = Column(DateTime(timezone=True), nullable=False)

    wager = relationship("WagerRecord", back_populates="donations")


class RelayNonce(Base):
    """Next expected relay nonce per user address."""

    __tablename__ = "relay_nonces"

    address = Column(String, primary_key=True)
    nonce = Column(BigInteger, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
