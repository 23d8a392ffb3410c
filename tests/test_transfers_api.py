"""
Test transfer and account endpoints
"""
import json
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, patch

from wallet.core.auth import create_access_token
from wallet.main import app, lifespan
from wallet.services.transfer_service import TransferEngine
from wallet.utils.qr_payload import build_receive_payload
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, balance_of, ledger_count


def auth_headers(account_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(account_id)}"}


@pytest_asyncio.fixture
async def client(engine):
    app.state.transfer_engine = engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.state.transfer_engine = None


@pytest.mark.asyncio
async def test_send_funds(client, test_db, alice, bob):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": "@bob", "amount": "250.00", "note": "Dinner"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["replayed"] is False
    assert data["transaction"]["sender_id"] == alice.id
    assert data["transaction"]["receiver_id"] == bob.id
    assert data["transaction"]["amount_cents"] == 25000
    assert data["transaction"]["note"] == "Dinner"
    assert await balance_of(test_db, alice.id) == 75000
    assert await balance_of(test_db, bob.id) == 30000


@pytest.mark.asyncio
async def test_send_funds_insufficient(client, test_db, alice, bob):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver": alice.id, "amount": 100},
        headers=auth_headers(bob.id)
    )

    assert response.status_code == 409
    data = response.json()
    assert data["success"] is False
    assert data["error"]["code"] == "INSUFFICIENT_FUNDS"
    assert data["error"]["outcome"] == "rejected"
    assert data["error"]["message"] == "Insufficient balance. Available: ₱50.00"
    assert await ledger_count(test_db) == 0


@pytest.mark.asyncio
async def test_send_funds_receiver_not_found(client, alice):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": "@nobody", "amount": "1.00"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RECEIVER_NOT_FOUND"


@pytest.mark.asyncio
async def test_send_funds_to_self(client, alice):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": "@alice", "amount": "1.00"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cannot send funds to yourself"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-5.00"])
async def test_send_funds_non_positive_amount(client, alice, bob, amount):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": amount},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_AMOUNT"


@pytest.mark.asyncio
async def test_send_funds_sub_cent_amount(client, test_db, alice, bob):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "1.005"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_AMOUNT"
    assert await ledger_count(test_db) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["1e3000000", "1e100000"])
async def test_send_funds_oversized_amount(client, test_db, alice, bob, amount):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": amount},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_AMOUNT"
    assert await ledger_count(test_db) == 0


@pytest.mark.asyncio
async def test_send_funds_unsupported_currency(client, alice, bob):
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "1.00", "currency": "USD"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UNSUPPORTED_CURRENCY"


@pytest.mark.asyncio
async def test_send_funds_for_someone_else(client, test_db, alice, bob):
    response = await client.post(
        "/api/v1/transfers",
        json={"sender_id": bob.id, "receiver_id": alice.id, "amount": "1.00"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 403
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "FORBIDDEN_SENDER"
    assert await ledger_count(test_db) == 0


@pytest.mark.asyncio
async def test_send_funds_idempotency_header(client, test_db, alice, bob):
    headers = {**auth_headers(alice.id), "Idempotency-Key": "checkout-42"}
    body = {"receiver_id": bob.id, "amount": "10.00"}

    first = await client.post("/api/v1/transfers", json=body, headers=headers)
    second = await client.post("/api/v1/transfers", json=body, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["replayed"] is True
    assert second.json()["transaction"]["id"] == first.json()["transaction"]["id"]
    assert await balance_of(test_db, alice.id) == 99000
    assert await ledger_count(test_db) == 1


@pytest.mark.asyncio
async def test_send_funds_idempotency_conflict(client, alice, bob):
    headers = auth_headers(alice.id)

    await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "10.00", "idempotency_key": "k1"},
        headers=headers
    )
    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "20.00", "idempotency_key": "k1"},
        headers=headers
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "IDEMPOTENCY_CONFLICT"


@pytest.mark.asyncio
async def test_send_funds_missing_receiver(client, alice):
    response = await client.post(
        "/api/v1/transfers",
        json={"amount": "1.00"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_send_funds_requires_auth(client, bob):
    response = await client.post("/api/v1/transfers", json={"receiver_id": bob.id, "amount": "1.00"})

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_send_funds_expired_token(client, alice, bob):
    token = create_access_token(alice.id, expires_delta=timedelta(minutes=-5))

    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "1.00"},
        headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_history(client, alice, bob):
    await client.post("/api/v1/transfers", json={"receiver_id": bob.id, "amount": "5.00"}, headers=auth_headers(alice.id))
    await client.post("/api/v1/transfers", json={"receiver_id": alice.id, "amount": "2.00"}, headers=auth_headers(bob.id))

    response = await client.get("/api/v1/transfers/history", headers=auth_headers(alice.id))

    assert response.status_code == 200
    data = response.json()
    assert [item["perspective"] for item in data] == ["received", "sent"]
    assert [item["amount_cents"] for item in data] == [200, 500]
    assert all(item["counterparty_id"] == bob.id for item in data)


@pytest.mark.asyncio
async def test_history_limit_out_of_range(client, alice):
    response = await client.get("/api/v1/transfers/history?limit=0", headers=auth_headers(alice.id))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_my_account(client, alice):
    response = await client.get("/api/v1/accounts/me", headers=auth_headers(ALICE_ID.upper()))

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == alice.id
    assert data["balance_cents"] == 100000
    assert data["currency"] == "PHP"


@pytest.mark.asyncio
async def test_get_my_account_deleted(client):
    response = await client.get("/api/v1/accounts/me", headers=auth_headers(CAROL_ID))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_resolve_recipient_hides_balance(client, alice, bob):
    response = await client.get(
        "/api/v1/accounts/resolve",
        params={"identifier": "@BOB"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == bob.id
    assert data["handle"] == "Bob"
    assert "balance" not in data
    assert "balance_cents" not in data


@pytest.mark.asyncio
async def test_resolve_recipient_not_found(client, alice):
    response = await client.get(
        "/api/v1/accounts/resolve",
        params={"identifier": "nobody"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_receive_qr_round_trip(client, alice, bob):
    qr = await client.get("/api/v1/accounts/me/receive-qr", headers=auth_headers(bob.id))
    assert qr.status_code == 200
    assert json.loads(qr.json()["payload"])["userId"] == BOB_ID

    response = await client.post(
        "/api/v1/accounts/resolve-qr",
        json={"payload": qr.json()["payload"]},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 200
    assert response.json()["id"] == bob.id


@pytest.mark.asyncio
async def test_resolve_qr_wrong_type(client, alice, bob):
    payload = json.dumps({"type": "some-other-app", "userId": bob.id})

    response = await client.post(
        "/api/v1/accounts/resolve-qr",
        json={"payload": payload},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_QR_PAYLOAD"


@pytest.mark.asyncio
async def test_resolve_qr_unknown_account(client, alice):
    response = await client.post(
        "/api/v1/accounts/resolve-qr",
        json={"payload": build_receive_payload(CAROL_ID)},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_engine_not_ready(client, alice, bob):
    app.state.transfer_engine = None

    response = await client.post(
        "/api/v1/transfers",
        json={"receiver_id": bob.id, "amount": "1.00"},
        headers=auth_headers(alice.id)
    )

    assert response.status_code == 503
    assert response.json()["error"]["retryable"] is True


@pytest.mark.asyncio
async def test_root_and_health():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        root = await client.get("/")
        health = await client.get("/api/health")

    assert root.status_code == 200
    assert health.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_lifespan_builds_and_drops_engine(test_db):
    with patch("wallet.main.connect_to_mongo", AsyncMock(return_value=test_db)), \
            patch("wallet.main.close_mongo_connection", AsyncMock()) as close_mock:
        async with lifespan(app):
            assert isinstance(app.state.transfer_engine, TransferEngine)

        assert app.state.transfer_engine is None
        close_mock.assert_awaited_once()
