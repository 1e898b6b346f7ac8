"""
WAGERX - Outcome-verification oracle client.

Asks the external oracle who won a wager. Only the returned winner is fed to
the escrow; the evidence is kept alongside the mirrored wager.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from types import TracebackType
from typing import Any, Dict, NoReturn, Optional, Sequence, Type

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from wagerx.config import settings
from wagerx.escrow import is_address
from wagerx.utils import now_utc

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = {429}
RETRY_STATUS_CODES.update(range(500, 600))

ORACLE_BACKOFF_SECONDS = 1.0


class OracleError(RuntimeError):
    pass


class OutcomeVerification(BaseModel):
    verified: bool
    winner: Optional[str] = None
    evidence: str = ""
    verified_at: datetime

    @field_validator("winner", mode="before")
    @classmethod
    def _normalize_winner(cls, value):
        if value in (None, ""):
            return None
        if not is_address(value):
            raise ValueError(f"winner is not an address: {value}")
        return value.lower()


class OutcomeOracleClient:
    """
    Async HTTP client for the outcome oracle.

    Args:
        base_url: Verification endpoint (defaults to ORACLE_URL)
        api_key: Bearer token sent to the oracle
        timeout: Request timeout in seconds
        max_retries: Retries after the first attempt on transient failures
        backoff_seconds: Base for exponential backoff between retries
        session: Pre-built httpx.AsyncClient (the caller keeps ownership)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = ORACLE_BACKOFF_SECONDS,
        session: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.oracle_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.oracle_api_key
        self.timeout = timeout if timeout is not None else settings.oracle_timeout
        self.max_retries = max_retries if max_retries is not None else settings.oracle_max_retries
        self.backoff_seconds = backoff_seconds
        self._session = session or httpx.AsyncClient(timeout=self.timeout)
        self._owns_session = session is None

    async def __aenter__(self) -> "OutcomeOracleClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session:
            await self._session.aclose()

    async def verify(
        self,
        *,
        wager_id: int,
        condition: str,
        participants: Sequence[str],
        category: str = "general",
    ) -> OutcomeVerification:
        """
        Ask the oracle to verify a wager outcome.

        Args:
            wager_id: On-chain wager id
            condition: Free-form wager condition
            participants: Wager participants, creator first
            category: Wager category hint (e.g. sports, crypto)

        Returns:
            OutcomeVerification

        Raises:
            OracleError: On transport failure, a bad payload, or a winner
                that is not one of the participants
        """
        members = [p.lower() for p in participants]
        payload = {
            "wager_id": wager_id,
            "condition": condition,
            "category": category,
            "participants": members,
        }
        response = await self._request_with_retries(payload)

        try:
            data = response.json()
        except ValueError as exc:
            raise OracleError("Oracle returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise OracleError("Unexpected response format from oracle")
        data.setdefault("verified_at", now_utc().isoformat())

        try:
            result = OutcomeVerification.model_validate(data)
        except ValidationError as exc:
            raise OracleError(f"Invalid oracle response: {exc}") from exc

        if result.verified:
            if result.winner is None:
                raise OracleError("Oracle verified the wager without naming a winner")
            if result.winner not in members:
                raise OracleError(f"Oracle winner {result.winner} is not a participant")

        logger.info(
            f"Oracle verification for wager {wager_id}: verified={result.verified} winner={result.winner}"
        )
        return result

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request_with_retries(self, payload: Dict[str, Any]) -> httpx.Response:
        attempt = 0
        max_attempts = self.max_retries + 1

        while attempt < max_attempts:
            attempt += 1

            if attempt > 1:
                logger.info(f"Oracle retry attempt {attempt}/{max_attempts}")

            try:
                response = await self._session.post(self.base_url, json=payload, headers=self._headers())
            except httpx.TimeoutException as exc:
                logger.error(f"Oracle request timed out after {self.timeout}s (attempt {attempt}/{max_attempts})")
                raise OracleError(f"Oracle request timed out after {self.timeout}s") from exc
            except httpx.HTTPError as exc:
                logger.warning(f"Oracle request failed (attempt {attempt}/{max_attempts}): {exc}")
                if attempt >= max_attempts:
                    raise OracleError("Failed to reach oracle after all retries") from exc
                await self._sleep_backoff(attempt)
                continue

            if response.status_code == 200:
                return response

            if response.status_code in RETRY_STATUS_CODES and attempt < max_attempts:
                logger.warning(
                    f"Oracle transient error (status={response.status_code}, "
                    f"attempt {attempt}/{max_attempts}), retrying..."
                )
                await self._sleep_backoff(attempt)
                continue

            self._log_and_raise(response)
        raise OracleError("Exhausted retries for oracle")

    async def _sleep_backoff(self, attempt: int) -> None:
        delay = min(30.0, self.backoff_seconds * (2 ** (attempt - 1)))
        await asyncio.sleep(delay)

    @staticmethod
    def _log_and_raise(response: httpx.Response) -> NoReturn:
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        logger.error(f"Oracle request failed with status {response.status_code}: {payload}")
        raise OracleError(f"Oracle request failed with status {response.status_code}")


async def get_oracle_client():
    """Dependency for FastAPI: an oracle client closed after the request."""
    async with OutcomeOracleClient() as client:
        yield client
