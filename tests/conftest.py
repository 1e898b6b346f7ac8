import pytest
import pytest_asyncio

from wagerx.db import build_engine, build_session_factory, init_db
from wagerx.escrow import Ledger
from wagerx.services.charity import Charity, CharityRegistry
from wagerx.services.escrow import EscrowClient

NOW = 1_700_000_000


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


OWNER = addr(0xA1)
ALICE = addr(0xA)
BOB = addr(0xB)
CAROL = addr(0xC)
DAVE = addr(0xD)
MALLORY = addr(0xE)
CHARITY = addr(0xCC)
RELAYER = addr(0xB2)


class Clock:
    """Settable ledger clock."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def ledger(clock):
    ledger = Ledger(chain_id=97, clock=clock)
    for account in (ALICE, BOB, CAROL, DAVE, MALLORY, RELAYER):
        ledger.mint(account, 10_000)
    return ledger


@pytest.fixture(params=["baseline", "optimized"])
def client(request, ledger):
    return EscrowClient.deploy(owner=OWNER, variant=request.param, ledger=ledger)


@pytest.fixture
def registry():
    return CharityRegistry([
        Charity(name="Test Charity", address=CHARITY, description="Receives test donations"),
    ])


@pytest_asyncio.fixture
async def db_session():
    engine = build_engine("sqlite+aiosqlite://")
    await init_db(engine)

    async with build_session_factory(engine)() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Session factory over an on-disk database, for tests that need independent connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}")
    await init_db(engine)

    yield build_session_factory(engine)

    await engine.dispose()
