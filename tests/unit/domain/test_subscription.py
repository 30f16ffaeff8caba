"""Unit tests for Subscription domain entity"""

import pytest
from datetime import datetime, timedelta
from src.domain.subscription import Subscription, SubscriptionStatus, map_provider_status


class TestProviderStatusMapping:
    @pytest.mark.parametrize(
        "provider_status, expected",
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("trialing", SubscriptionStatus.ACTIVE),
            ("past_due", SubscriptionStatus.PAST_DUE),
            ("unpaid", SubscriptionStatus.PAST_DUE),
            ("canceled", SubscriptionStatus.CANCELED),
            ("incomplete_expired", SubscriptionStatus.CANCELED),
            ("incomplete", SubscriptionStatus.INCOMPLETE),
        ],
    )
    def test_known_statuses(self, provider_status, expected):
        assert map_provider_status(provider_status) == expected

    def test_unknown_status_passes_through_as_unknown(self, caplog):
        assert map_provider_status("paused") == SubscriptionStatus.UNKNOWN
        assert "paused" in caplog.text

    def test_missing_status_is_unknown(self):
        assert map_provider_status(None) == SubscriptionStatus.UNKNOWN


class TestSubscriptionRules:
    def test_canceled_is_terminal(self):
        record = Subscription(
            account_id="acc_1",
            stripe_subscription_id="sub_1",
            status=SubscriptionStatus.CANCELED,
        )

        assert record.is_terminal()

    def test_past_due_is_not_terminal(self):
        record = Subscription(
            account_id="acc_1",
            stripe_subscription_id="sub_1",
            status=SubscriptionStatus.PAST_DUE,
        )

        assert not record.is_terminal()

    def test_older_observation_is_stale(self):
        applied_at = datetime(2024, 5, 1, 12, 0, 0)
        record = Subscription(
            account_id="acc_1",
            stripe_subscription_id="sub_1",
            status=SubscriptionStatus.ACTIVE,
            status_observed_at=applied_at,
        )

        assert record.is_stale(applied_at - timedelta(seconds=1))
        assert not record.is_stale(applied_at)
        assert not record.is_stale(applied_at + timedelta(seconds=1))

    def test_never_observed_record_is_never_stale(self):
        record = Subscription(
            account_id="acc_1",
            stripe_subscription_id="sub_1",
            status=SubscriptionStatus.INCOMPLETE,
        )

        assert not record.is_stale(datetime(2000, 1, 1))
