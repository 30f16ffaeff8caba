"""Integration tests for Billing API endpoints"""

import pytest
from decimal import Decimal
from httpx import AsyncClient

from src.domain.account import Account
from src.domain.credit_ledger import CreditLedger


class TestBalanceAPI:

    @pytest.mark.asyncio
    async def test_get_balance(self, client: AsyncClient, db_session):
        db_session.add(CreditLedger(account_id="acc_1", balance=Decimal("27")))
        await db_session.commit()

        response = await client.get("/api/billing/credits/balance/acc_1")

        assert response.status_code == 200
        data = response.json()
        assert data["account_id"] == "acc_1"
        assert Decimal(data["balance"]) == Decimal("27")
        assert "last_updated" in data

    @pytest.mark.asyncio
    async def test_get_balance_without_ledger(self, client: AsyncClient):
        response = await client.get("/api/billing/credits/balance/acc_missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LEDGER_NOT_FOUND"


class TestCheckoutSessionAPI:

    @pytest.mark.asyncio
    async def test_create_package_checkout(self, client: AsyncClient, db_session, payment_gateway):
        """
        Given: An account and a priced credit package
        When: POST /checkout-sessions
        Then: 201 with the hosted URL; the session carries the account id
        """
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()

        response = await client.post(
            "/api/billing/checkout-sessions",
            json={
                "account_id": "acc_1",
                "package_id": "credit-15",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["session_id"] == "cs_test_1"
        assert data["url"].endswith("cs_test_1")

        request = payment_gateway.checkout_requests[0]
        assert request.mode == "payment"
        assert request.price_id == "price_credit_15"
        assert request.client_reference_id == "acc_1"
        assert request.metadata == {"accountId": "acc_1", "packageId": "credit-15"}

    @pytest.mark.asyncio
    async def test_create_plan_checkout(self, client: AsyncClient, db_session, payment_gateway):
        db_session.add(Account(id="acc_1", email="buyer@example.com", stripe_customer_id="cus_1"))
        await db_session.commit()

        response = await client.post(
            "/api/billing/checkout-sessions",
            json={
                "account_id": "acc_1",
                "plan_id": "premium",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing",
            },
        )

        assert response.status_code == 201
        request = payment_gateway.checkout_requests[0]
        assert request.mode == "subscription"
        assert request.customer == "cus_1"

    @pytest.mark.asyncio
    async def test_unknown_account(self, client: AsyncClient):
        response = await client.post(
            "/api/billing/checkout-sessions",
            json={
                "account_id": "acc_missing",
                "package_id": "credit-15",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing",
            },
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_package_without_stripe_price(self, client: AsyncClient, db_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()

        response = await client.post(
            "/api/billing/checkout-sessions",
            json={
                "account_id": "acc_1",
                "package_id": "credit-30",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing",
            },
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PRICE_NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_stripe_unavailable(self, client: AsyncClient, db_session, payment_gateway):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()
        payment_gateway.fail = True

        response = await client.post(
            "/api/billing/checkout-sessions",
            json={
                "account_id": "acc_1",
                "package_id": "credit-15",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing",
            },
        )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PAYMENT_PROVIDER_UNAVAILABLE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"account_id": "acc_1", "success_url": "https://a", "cancel_url": "https://b"},
            {
                "account_id": "acc_1",
                "package_id": "credit-15",
                "plan_id": "premium",
                "success_url": "https://a",
                "cancel_url": "https://b",
            },
        ],
    )
    async def test_exactly_one_item_required(self, client: AsyncClient, body):
        response = await client.post("/api/billing/checkout-sessions", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
