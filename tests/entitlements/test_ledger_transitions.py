"""
Unit tests for the pure entitlement transitions: no database, fixed clock.
"""
import unittest
from datetime import datetime, timedelta, timezone

from portrait_studio.core.errors import InsufficientCredits
from portrait_studio.services.entitlements.ledger import (
    Entitlement,
    activate,
    apply_monthly_reset,
    grant,
    refund,
    reserve,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _state(**kwargs) -> Entitlement:
    values = {
        "credits": 3,
        "subscription_status": "none",
        "subscription_expires_at": None,
        "last_credit_reset_at": NOW - timedelta(days=1),
        "version": 0,
    }
    values.update(kwargs)
    return Entitlement(**values)


class TestMonthlyReset(unittest.TestCase):
    def test_resets_to_floor_after_period(self):
        state = _state(credits=2, last_credit_reset_at=NOW - timedelta(days=31))
        new = apply_monthly_reset(state, NOW, floor=5, period_days=30)
        self.assertEqual(new.credits, 5)
        self.assertEqual(new.last_credit_reset_at, NOW)

    def test_no_reset_within_period(self):
        state = _state(credits=0, last_credit_reset_at=NOW - timedelta(days=29))
        self.assertEqual(apply_monthly_reset(state, NOW, floor=5, period_days=30), state)

    def test_exactly_thirty_days_is_not_elapsed(self):
        state = _state(credits=0, last_credit_reset_at=NOW - timedelta(days=30))
        self.assertEqual(apply_monthly_reset(state, NOW, floor=5, period_days=30), state)

    def test_never_lowers_a_higher_balance(self):
        state = _state(credits=12, last_credit_reset_at=NOW - timedelta(days=90))
        self.assertEqual(apply_monthly_reset(state, NOW, floor=5, period_days=30), state)

    def test_missing_reset_stamp_counts_as_elapsed(self):
        state = _state(credits=1, last_credit_reset_at=None)
        self.assertEqual(apply_monthly_reset(state, NOW, floor=5, period_days=30).credits, 5)


class TestReserve(unittest.TestCase):
    def test_debits_one_credit(self):
        new, pre, debited = reserve(_state(credits=3), NOW, floor=5, period_days=30)
        self.assertEqual((new.credits, pre, debited), (2, 3, 1))

    def test_reset_applies_before_debit(self):
        state = _state(credits=0, last_credit_reset_at=NOW - timedelta(days=45))
        new, pre, debited = reserve(state, NOW, floor=5, period_days=30)
        self.assertEqual((new.credits, pre, debited), (4, 5, 1))
        self.assertEqual(new.last_credit_reset_at, NOW)

    def test_zero_balance_raises(self):
        with self.assertRaises(InsufficientCredits):
            reserve(_state(credits=0), NOW, floor=5, period_days=30)

    def test_active_subscription_is_unlimited(self):
        state = _state(credits=0, subscription_status="active", subscription_expires_at=NOW + timedelta(days=3))
        new, pre, debited = reserve(state, NOW, floor=5, period_days=30)
        self.assertEqual(new, state)
        self.assertEqual(debited, 0)

    def test_expired_subscription_is_metered(self):
        state = _state(credits=0, subscription_status="active", subscription_expires_at=NOW - timedelta(seconds=1))
        with self.assertRaises(InsufficientCredits):
            reserve(state, NOW, floor=5, period_days=30)


class TestGrantRefundActivate(unittest.TestCase):
    def test_refund_adds_back(self):
        self.assertEqual(refund(_state(credits=2), 1).credits, 3)

    def test_refund_of_nothing_is_identity(self):
        state = _state(credits=2)
        self.assertIs(refund(state, 0), state)

    def test_grant_is_additive(self):
        self.assertEqual(grant(_state(credits=7), 10).credits, 17)

    def test_activate_starts_window_now(self):
        new = activate(_state(), NOW, 30)
        self.assertEqual(new.subscription_status, "active")
        self.assertEqual(new.subscription_expires_at, NOW + timedelta(days=30))

    def test_activate_extends_unexpired_window(self):
        expiry = NOW + timedelta(days=10)
        new = activate(_state(subscription_status="active", subscription_expires_at=expiry), NOW, 30)
        self.assertEqual(new.subscription_expires_at, expiry + timedelta(days=30))

    def test_activate_after_expiry_starts_from_now(self):
        state = _state(subscription_status="active", subscription_expires_at=NOW - timedelta(days=2))
        self.assertEqual(activate(state, NOW, 30).subscription_expires_at, NOW + timedelta(days=30))
