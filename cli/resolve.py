"""
WAGERX - Resolve a wager through the gateway.

Reads the wager from a running gateway, asks the outcome oracle for the winner
(unless one is given), then submits the resolution.
"""

import asyncio
import argparse
import sys
from typing import Optional

import httpx

from wagerx.config import settings
from wagerx.services.oracle import OracleError, OutcomeOracleClient


async def resolve(
    gateway: httpx.AsyncClient,
    oracle: Optional[OutcomeOracleClient],
    wager_id: int,
    sender: str,
    winner: Optional[str] = None,
    category: str = "general",
) -> Optional[str]:
    """
    Resolve one wager.

    Args:
        gateway: Client bound to the gateway base URL
        oracle: Oracle client, used when no winner is given
        wager_id: On-chain wager id
        sender: Address submitting the resolution
        winner: Winner to submit, skipping the oracle
        category: Category hint for the oracle

    Returns:
        Transaction hash, or None if the wager was not resolved
    """
    response = await gateway.get(f"/wagers/{wager_id}")
    if response.status_code == 404:
        print(f"✗ Wager {wager_id} not found")
        return None
    response.raise_for_status()
    wager = response.json()

    if wager["status"] != "active":
        print(f"⚠ Wager {wager_id} is {wager['status']}, skipping")
        return None

    evidence = "manual resolution"
    if winner is None:
        if oracle is None:
            raise ValueError("No winner given and no oracle configured")
        result = await oracle.verify(
            wager_id=wager_id,
            condition=wager["condition"],
            participants=wager["participants"],
            category=category,
        )
        if not result.verified:
            print(f"⚠ Oracle could not verify wager {wager_id} yet")
            return None
        winner = result.winner
        evidence = result.evidence

    response = await gateway.post(
        f"/wagers/{wager_id}/resolve",
        json={"sender": sender, "winner": winner, "evidence": evidence},
    )
    if response.status_code != 200:
        print(f"✗ Resolution of wager {wager_id} rejected: {response.json().get('detail')}")
        return None

    tx_hash = response.json()["tx_hash"]
    print(f"✓ Resolved wager {wager_id}: winner {winner} ({tx_hash})")
    return tx_hash


async def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Resolve a wager")
    parser.add_argument("--wager", required=True, type=int, help="Wager ID")
    parser.add_argument("--sender", required=True, help="Address submitting the resolution")
    parser.add_argument("--winner", help="Winner address (skips the oracle)")
    parser.add_argument("--category", default="general", help="Category hint for the oracle")
    parser.add_argument(
        "--gateway",
        default=f"http://localhost:{settings.port}",
        help="Gateway base URL",
    )

    args = parser.parse_args()

    async with httpx.AsyncClient(base_url=args.gateway, timeout=settings.oracle_timeout) as gateway:
        try:
            if args.winner:
                tx_hash = await resolve(gateway, None, args.wager, args.sender, winner=args.winner)
            else:
                async with OutcomeOracleClient() as oracle:
                    tx_hash = await resolve(
                        gateway, oracle, args.wager, args.sender, category=args.category
                    )
        except (httpx.HTTPError, OracleError) as e:
            print(f"✗ {e}")
            return 1

    return 0 if tx_hash else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
