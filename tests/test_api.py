"""Tests for the HTTP gateway."""
import httpx
import pytest
import pytest_asyncio

from wagerx.config import settings
from wagerx.db import get_db
from wagerx.main import create_app
from wagerx.security import canonical_wager_params, sign_hmac_v1
from wagerx.services.charity import get_charity_registry
from wagerx.services.escrow import CreateWagerParams, EscrowClient, get_escrow_client
from wagerx.services.oracle import OutcomeOracleClient, get_oracle_client

from conftest import ALICE, BOB, CAROL, CHARITY, MALLORY, OWNER, RELAYER

ORACLE_ANSWER = {"verified": True, "winner": ALICE, "evidence": "Official result"}


@pytest.fixture
def escrow(ledger):
    return EscrowClient.deploy(owner=OWNER, ledger=ledger)


@pytest_asyncio.fixture
async def api(db_session, escrow, registry, monkeypatch):
    monkeypatch.setattr(settings, "relayer_address", RELAYER)
    monkeypatch.setattr(settings, "relay_secret", "api-secret")

    oracle_session = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=ORACLE_ANSWER))
    )

    async def override_get_db():
        yield db_session

    async def override_get_oracle_client():
        yield OutcomeOracleClient("http://oracle.test/verify", session=oracle_session, backoff_seconds=0)

    app = create_app(init_database=False)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_escrow_client] = lambda: escrow
    app.dependency_overrides[get_charity_registry] = lambda: registry
    app.dependency_overrides[get_oracle_client] = override_get_oracle_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    await oracle_session.aclose()


async def create_wager(api, **overrides):
    body = {
        "sender": ALICE,
        "participants": [ALICE, BOB],
        "amount": 100,
        "condition": "Home team wins",
    }
    body.update(overrides)
    return await api.post("/wagers", json=body)


class TestWagerRoutes:
    """Tests for the wager lifecycle over HTTP."""

    @pytest.mark.asyncio
    async def test_health_and_root(self, api):
        assert (await api.get("/healthz")).json() == {"status": "OK"}
        assert (await api.get("/")).json()["name"] == "WAGERX"

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, api, ledger):
        """Test create, accept and resolve with a charity cut."""
        response = await create_wager(
            api, charity_enabled=True, charity_percentage=10, charity_address=CHARITY
        )
        assert response.status_code == 201
        created = response.json()
        assert created["wager_id"] == 1
        assert created["status"] == "pending"
        assert created["tx_hash"].startswith("0x")

        response = await api.post("/wagers/1/accept", json={"sender": BOB})
        assert response.json()["status"] == "active"

        response = await api.post(
            "/wagers/1/resolve", json={"sender": CAROL, "winner": ALICE, "evidence": "Final whistle"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "resolved"

        wager = (await api.get("/wagers/1")).json()
        assert wager["status"] == "resolved"
        assert wager["winner"] == ALICE
        assert wager["charity_donated"] == "20"

        record = (await api.get("/wagers/1/record")).json()
        assert record["evidence"] == "Final whistle"
        assert record["participants"] == [ALICE, BOB]

        charity = (await api.get("/wagers/1/charity")).json()
        assert charity["is_valid"] is True
        assert charity["actual_donation"] == "20"

        assert ledger.balance_of(CHARITY) == 20
        assert ledger.balance_of(ALICE) == 10_000 - 100 + 180

    @pytest.mark.asyncio
    async def test_cancel(self, api, ledger):
        await create_wager(api)
        response = await api.post("/wagers/1/cancel", json={"sender": ALICE})
        assert response.json()["status"] == "cancelled"

        listed = (await api.get("/wagers", params={"status": "cancelled"})).json()
        assert [w["wager_id"] for w in listed] == [1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides,status_code,code", [
        ({"participants": [ALICE]}, 400, "INVALID_PARAMS"),
        ({"value": 10}, 400, "INSUFFICIENT_FUNDS"),
        ({"charity_percentage": 150}, 400, "INVALID_PARAMS"),
    ])
    async def test_create_rejections(self, api, overrides, status_code, code):
        response = await create_wager(api, **overrides)
        assert response.status_code == status_code
        detail = response.json()["detail"]
        assert detail["code"] == code
        assert detail["user_message"]

    @pytest.mark.asyncio
    async def test_action_rejections(self, api):
        """Test the status codes of reverted lifecycle calls."""
        await create_wager(api)

        response = await api.post("/wagers/1/accept", json={"sender": MALLORY})
        assert response.status_code == 403
        assert response.json()["detail"]["message"] == "Not a participant"

        response = await api.post("/wagers/1/cancel", json={"sender": BOB})
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"

        response = await api.post("/wagers/1/resolve", json={"sender": ALICE, "winner": ALICE})
        assert response.status_code == 409
        assert response.json()["detail"]["message"] == "Wager not active"

        response = await api.get("/wagers/9")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_status_filter(self, api):
        response = await api.get("/wagers", params={"status": "open"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_sync_routes(self, api, escrow):
        """Test syncing wagers created outside the gateway."""
        escrow.create_wager(BOB, CreateWagerParams(participants=[BOB, CAROL], amount=5, condition="Coin flip"))

        response = await api.post("/wagers/1/sync")
        assert response.json()["status"] == "pending"

        response = await api.post("/wagers/sync")
        assert response.json() == {
            "status": "success",
            "stats": {"fetched": 1, "created": 0, "updated": 1, "errors": 0},
        }

        assert (await api.post("/wagers/2/sync")).status_code == 404

    @pytest.mark.asyncio
    async def test_verify_outcome(self, api):
        await create_wager(api)

        response = await api.post("/wagers/1/verify", json={})
        assert response.status_code == 409

        await api.post("/wagers/1/accept", json={"sender": BOB})
        response = await api.post("/wagers/1/verify", json={"category": "sports"})
        assert response.status_code == 200
        body = response.json()
        assert body["verified"] is True
        assert body["winner"] == ALICE
        assert body["evidence"] == "Official result"


class TestCharityRoutes:
    """Tests for charity listing and donation maths."""

    @pytest.mark.asyncio
    async def test_list(self, api):
        assert (await api.get("/charities")).json() == [
            {"name": "Test Charity", "address": CHARITY, "description": "Receives test donations"},
        ]

    @pytest.mark.asyncio
    async def test_donation(self, api):
        body = {"charity_enabled": True, "charity_percentage": 15, "charity_address": CHARITY, "total_pool": 301}
        assert (await api.post("/charities/donation", json=body)).json() == {
            "donation_amount": "45",
            "winner_amount": "256",
        }

        body["charity_enabled"] = False
        assert (await api.post("/charities/donation", json=body)).json()["donation_amount"] == "0"


class TestRelayRoutes:
    """Tests for the relayer endpoints."""

    @pytest.mark.asyncio
    async def test_relay_flow(self, api, ledger):
        """Test nonce lookup, a relayed creation and a replay."""
        response = await api.get("/relay/nonce", params={"address": ALICE})
        assert response.json() == {"address": ALICE, "nonce": 0}

        values = dict(
            user=ALICE, participants=[ALICE, BOB], amount=100, condition="Relayed",
            charity_enabled=False, charity_percentage=0, charity_address=None, nonce=0,
        )
        body = dict(values, sig=sign_hmac_v1(canonical_wager_params(**values), "api-secret"))

        response = await api.post("/relay/wagers", json=body)
        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert ledger.balance_of(RELAYER) == 10_000 - 100

        response = await api.post("/relay/wagers", json=body)
        assert response.status_code == 401

        assert (await api.get("/relay/nonce", params={"address": ALICE})).json()["nonce"] == 1

    @pytest.mark.asyncio
    async def test_bad_signature(self, api):
        body = {
            "user": ALICE, "participants": [ALICE, BOB], "amount": 1, "condition": "x",
            "nonce": 0, "sig": "00" * 32,
        }
        response = await api.post("/relay/wagers", json=body)
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid signature"

    @pytest.mark.asyncio
    async def test_bad_address(self, api):
        assert (await api.get("/relay/nonce", params={"address": "alice"})).status_code == 400


class TestAccountRoutes:
    """Tests for balances and the faucet."""

    @pytest.mark.asyncio
    async def test_balance(self, api):
        response = await api.get(f"/accounts/{ALICE}/balance")
        assert response.json() == {"address": ALICE, "balance": "10000"}

    @pytest.mark.asyncio
    async def test_faucet_disabled(self, api, monkeypatch):
        monkeypatch.setattr(settings, "enable_faucet", False)
        response = await api.post(f"/accounts/{ALICE}/fund", json={"amount": 5})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_faucet(self, api, monkeypatch):
        monkeypatch.setattr(settings, "enable_faucet", True)
        response = await api.post(f"/accounts/{ALICE}/fund", json={"amount": 5})
        assert response.json()["balance"] == "10005"
