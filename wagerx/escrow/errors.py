"""
WAGERX - Escrow revert reasons.

Every failed escrow call raises one of these. The ledger restores its snapshot
before the exception leaves `Ledger.execute`.
"""

from typing import Any, Dict


class EscrowError(Exception):
    """Base class for a reverted escrow call."""

    code = "UNKNOWN_ERROR"
    user_message = "An unexpected error occurred. Please try again or contact support."

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InsufficientPayment(EscrowError):
    code = "INSUFFICIENT_FUNDS"
    user_message = "You don't have enough funds attached to complete this transaction."


class InsufficientBalance(InsufficientPayment):
    """Sender cannot cover the value attached to a call."""


class InvalidParameters(EscrowError):
    code = "INVALID_PARAMS"
    user_message = "The wager parameters are invalid."


class NotPayable(InvalidParameters):
    pass


class WagerNotFound(EscrowError):
    code = "NOT_FOUND"
    user_message = "This wager does not exist."


class InvalidStatus(EscrowError):
    code = "INVALID_STATUS"
    user_message = "This wager is not in the correct status for this action."


class AlreadyFunded(InvalidStatus):
    pass


class NotParticipant(EscrowError):
    code = "NOT_PARTICIPANT"
    user_message = "You are not a participant in this wager."


class Unauthorized(EscrowError):
    code = "UNAUTHORIZED"
    user_message = "Only the wager creator or the contract owner can do this."


class TransferFailed(EscrowError):
    code = "TRANSFER_FAILED"
    user_message = "A payout transfer failed, so nothing was paid out. Please try again later."


class ReentrantCall(EscrowError):
    code = "REENTRANT_CALL"
    user_message = "The transaction was rejected because it re-entered the escrow."


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """
    Turn an exception into a user-facing error description.

    Args:
        exc: Any exception raised while talking to the escrow

    Returns:
        Dict with code, message and user_message
    """
    if isinstance(exc, EscrowError):
        return {
            "code": exc.code,
            "message": exc.reason,
            "user_message": exc.user_message,
        }

    return {
        "code": EscrowError.code,
        "message": str(exc),
        "user_message": EscrowError.user_message,
    }
