"""Integration tests for checkout verification

The success page and the webhook both apply a paid checkout; whichever comes
second must find the purchase already applied.
"""

import pytest
from decimal import Decimal
from httpx import AsyncClient
from sqlalchemy import func
from sqlmodel import select

from src.domain.account import Account
from src.domain.credit_ledger import CreditLedger
from src.domain.credit_transaction import CreditTransaction
from src.domain.subscription import Subscription, SubscriptionStatus
from tests.fixtures import stripe_events as se

WEBHOOK_PATH = "/api/webhooks/stripe"


def verify_path(session_id: str) -> str:
    return f"/api/billing/checkout-sessions/{session_id}/verify"


async def deliver(client: AsyncClient, event: dict):
    payload = se.encode(event)
    return await client.post(WEBHOOK_PATH, content=payload, headers={"Stripe-Signature": se.sign(payload)})


async def entries(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(CreditTransaction))
    return result.scalar_one()


async def balance_of(db_session, account_id: str) -> Decimal:
    result = await db_session.execute(select(CreditLedger.balance).where(CreditLedger.account_id == account_id))
    return result.scalar_one()


@pytest.fixture
def paid_session(payment_gateway):
    """credit-15 bought by acc_1, as Stripe returns it with line items"""
    session = se.checkout_session(
        metadata={"accountId": "acc_1", "packageId": "credit-15"}, price_id="price_credit_15"
    )
    payment_gateway.checkout_sessions["cs_test_1"] = session
    return session


class TestVerifyCreditCheckout:

    @pytest.mark.asyncio
    async def test_verify_grants_credits(self, client: AsyncClient, db_session, paid_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()

        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "credits_granted"
        assert Decimal(data["credits_granted"]) == Decimal("17")
        assert await balance_of(db_session, "acc_1") == Decimal("17")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("webhook_first", [True, False])
    async def test_webhook_and_verify_grant_once(
        self, client: AsyncClient, db_session, paid_session, webhook_first
    ):
        """
        Given: A paid credit-15 checkout
        When: Both the webhook and the success page apply it, in either order
        Then: Exactly one ledger entry of 17 exists
        """
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()
        event = se.envelope("checkout.session.completed", paid_session)

        if webhook_first:
            first = await deliver(client, event)
            second = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})
            assert second.json()["outcome"] == "already_granted"
        else:
            first = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})
            second = await deliver(client, event)
            assert first.json()["outcome"] == "credits_granted"

        assert first.status_code == 200
        assert second.status_code == 200
        assert await entries(db_session) == 1
        assert await balance_of(db_session, "acc_1") == Decimal("17")

    @pytest.mark.asyncio
    async def test_repeated_verify_is_idempotent(self, client: AsyncClient, db_session, paid_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()

        await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})
        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})

        assert response.status_code == 200
        assert response.json()["outcome"] == "already_granted"
        assert await entries(db_session) == 1

    @pytest.mark.asyncio
    async def test_session_paid_by_another_account(self, client: AsyncClient, db_session, paid_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        db_session.add(Account(id="acc_2", email="other@example.com"))
        await db_session.commit()

        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_2"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "SESSION_ACCOUNT_MISMATCH"
        assert await entries(db_session) == 0

    @pytest.mark.asyncio
    async def test_unpaid_session(self, client: AsyncClient, db_session, payment_gateway):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()
        payment_gateway.checkout_sessions["cs_test_1"] = se.checkout_session(
            metadata={"accountId": "acc_1", "packageId": "credit-15"}, payment_status="unpaid"
        )

        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAYMENT_NOT_COMPLETED"
        assert await entries(db_session) == 0

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient, db_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()

        response = await client.post(verify_path("cs_missing"), json={"account_id": "acc_1"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CHECKOUT_SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_stripe_unavailable(self, client: AsyncClient, db_session, payment_gateway, paid_session):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()
        payment_gateway.fail = True

        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PAYMENT_PROVIDER_UNAVAILABLE"


class TestVerifySubscriptionCheckout:

    @pytest.mark.asyncio
    async def test_verify_applies_subscription(self, client: AsyncClient, db_session, payment_gateway):
        db_session.add(Account(id="acc_1", email="buyer@example.com"))
        await db_session.commit()
        payment_gateway.subscriptions["sub_1"] = se.subscription(status="active", price_id="price_premium")
        payment_gateway.checkout_sessions["cs_test_1"] = se.checkout_session(
            mode="subscription", subscription="sub_1", metadata={"accountId": "acc_1", "planId": "premium"}
        )

        response = await client.post(verify_path("cs_test_1"), json={"account_id": "acc_1"})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "subscription_applied"
        assert data["subscription_status"] == "active"
        assert data["plan_id"] == "premium"

        result = await db_session.execute(select(Subscription).where(Subscription.account_id == "acc_1"))
        record = result.scalar_one()
        assert record.stripe_subscription_id == "sub_1"
        assert record.status == SubscriptionStatus.ACTIVE
