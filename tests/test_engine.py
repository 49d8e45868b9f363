from __future__ import annotations

import json
import unittest
from dataclasses import FrozenInstanceError
from datetime import date, timedelta

from tiergate.app.engine import REASON_EXPIRED, REASON_KEY_MISMATCH, EntitlementEngine
from tiergate.common.entitlements import GrantPolicy, grant_days_for, key_for
from tiergate.common.state import InMemoryEntitlementStore
from tiergate.common.types import EntitlementRecord, EntitlementTable, Outcome, Tier


class _Clock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


class _FailingStore(InMemoryEntitlementStore):
    def save(self, table: EntitlementTable) -> None:
        raise OSError("disk full")


def _seed(**records: EntitlementRecord) -> InMemoryEntitlementStore:
    store = InMemoryEntitlementStore()
    table = EntitlementTable.default()
    for name, rec in records.items():
        table[Tier(name)] = rec
    store.save(table)
    return store


class ActivationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock(date(2026, 10, 19))
        self.store = InMemoryEntitlementStore()
        self.engine = EntitlementEngine(self.store, clock=self.clock)

    def test_premium_gets_larger_grant(self) -> None:
        result = self.engine.activate(Tier.PREMIUM, key_for(Tier.PREMIUM))
        self.assertIs(result.outcome, Outcome.VALID)
        self.assertEqual(result.remaining_days, 34)
        self.assertGreater(grant_days_for(Tier.PREMIUM), grant_days_for(Tier.BASIC))
        self.assertEqual(self.engine.record(Tier.PREMIUM).last_access, "2026-10-19")

    def test_standard_tiers_get_smaller_grant(self) -> None:
        for tier in (Tier.BASIC, Tier.TRIPLETS):
            result = self.engine.activate(tier, key_for(tier))
            self.assertTrue(result.valid)
            self.assertEqual(self.engine.remaining_days(tier), 19)

    def test_activation_resets_rather_than_adds(self) -> None:
        store = _seed(premium=EntitlementRecord(remaining_days=10, last_access="2026-10-01"))
        engine = EntitlementEngine(store, clock=self.clock)
        engine.activate(Tier.PREMIUM, key_for(Tier.PREMIUM))
        self.assertEqual(engine.remaining_days(Tier.PREMIUM), 34)
        self.assertEqual(engine.record(Tier.PREMIUM).last_access, "2026-10-19")

    def test_activation_persists_whole_table(self) -> None:
        self.engine.activate(Tier.BASIC, key_for(Tier.BASIC))
        payload = json.loads(self.store.slot)
        self.assertEqual(payload["basic"], {"days": 19, "lastAccess": "2026-10-19"})
        self.assertEqual(set(payload), {"basic", "triplets", "premium"})

    def test_key_is_trimmed_and_case_sensitive(self) -> None:
        self.assertTrue(self.engine.activate(Tier.BASIC, "  1234\n").valid)
        store = InMemoryEntitlementStore()
        engine = EntitlementEngine(store, clock=self.clock)
        self.assertEqual(engine.activate(Tier.TRIPLETS, key_for(Tier.BASIC)).outcome, Outcome.INVALID)

    def test_wrong_key_leaves_record_unchanged(self) -> None:
        result = self.engine.activate(Tier.PREMIUM, "0000")
        self.assertIs(result.outcome, Outcome.INVALID)
        self.assertEqual(result.reason, REASON_KEY_MISMATCH)
        self.assertEqual(self.engine.record(Tier.PREMIUM), EntitlementRecord(remaining_days=0, last_access=None))
        self.assertIsNone(self.store.slot)

    def test_custom_policy(self) -> None:
        engine = EntitlementEngine(InMemoryEntitlementStore(), clock=self.clock, policy=GrantPolicy(3, 5, 1))
        self.assertEqual(engine.activate(Tier.PREMIUM, key_for(Tier.PREMIUM)).remaining_days, 5)
        self.assertEqual(engine.activate(Tier.BASIC, key_for(Tier.BASIC)).remaining_days, 3)


class VerificationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock(date(2026, 10, 19))

    def test_first_access_of_day_decrements_once(self) -> None:
        store = _seed(basic=EntitlementRecord(remaining_days=5, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)

        first = engine.verify(Tier.BASIC, "1234")
        self.assertTrue(first.valid)
        self.assertEqual(first.remaining_days, 4)
        self.assertEqual(engine.record(Tier.BASIC).last_access, "2026-10-19")

        second = engine.verify(Tier.BASIC, "1234")
        self.assertTrue(second.valid)
        self.assertEqual(second.remaining_days, 4)

    def test_absent_date_counts_as_new_day(self) -> None:
        store = _seed(triplets=EntitlementRecord(remaining_days=2, last_access=None))
        engine = EntitlementEngine(store, clock=self.clock)
        self.assertEqual(engine.verify(Tier.TRIPLETS, "5678").remaining_days, 1)

    def test_wrong_key_with_balance(self) -> None:
        store = _seed(basic=EntitlementRecord(remaining_days=5, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)
        result = engine.verify(Tier.BASIC, "4321")
        self.assertIs(result.outcome, Outcome.INVALID)
        self.assertEqual(result.reason, REASON_KEY_MISMATCH)
        self.assertFalse(result.activation_required)
        self.assertEqual(engine.record(Tier.BASIC).remaining_days, 5)

    def test_zero_balance_requires_activation(self) -> None:
        engine = EntitlementEngine(InMemoryEntitlementStore(), clock=self.clock)
        result = engine.verify(Tier.PREMIUM, key_for(Tier.PREMIUM))
        self.assertFalse(result.valid)
        self.assertTrue(result.activation_required)
        self.assertEqual(result.reason, REASON_EXPIRED)
        self.assertEqual(engine.remaining_days(Tier.PREMIUM), 0)

    def test_zero_balance_skips_key_comparison(self) -> None:
        store = _seed(triplets=EntitlementRecord(remaining_days=0, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)
        result = engine.verify(Tier.TRIPLETS, "wrong")
        self.assertIs(result.outcome, Outcome.INVALID)
        self.assertEqual(result.reason, REASON_EXPIRED)
        self.assertTrue(result.activation_required)
        self.assertFalse(result.renewal_due)
        self.assertEqual(engine.record(Tier.TRIPLETS).last_access, "2026-10-18")

    def test_exhausting_day_still_succeeds(self) -> None:
        store = _seed(basic=EntitlementRecord(remaining_days=1, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)

        last = engine.verify(Tier.BASIC, "1234")
        self.assertTrue(last.valid)
        self.assertEqual(last.remaining_days, 0)
        self.assertTrue(last.activation_required)
        self.assertTrue(last.renewal_due)

        self.clock.advance()
        blocked = engine.verify(Tier.BASIC, "1234")
        self.assertEqual(blocked.reason, REASON_EXPIRED)
        self.assertEqual(engine.remaining_days(Tier.BASIC), 0)

    def test_renewal_notice(self) -> None:
        store = _seed(premium=EntitlementRecord(remaining_days=6, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)
        self.assertFalse(engine.verify(Tier.PREMIUM, "9421").renewal_due)
        self.clock.advance()
        self.assertTrue(engine.verify(Tier.PREMIUM, "9421").renewal_due)

    def test_record_view_cannot_be_mutated(self) -> None:
        store = _seed(basic=EntitlementRecord(remaining_days=5, last_access="2026-10-18"))
        engine = EntitlementEngine(store, clock=self.clock)
        with self.assertRaises(FrozenInstanceError):
            engine.record(Tier.BASIC).remaining_days = -3
        self.assertEqual(engine.remaining_days(Tier.BASIC), 5)

    def test_weekends_are_counted(self) -> None:
        saturday = date(2026, 10, 24)
        clock = _Clock(saturday)
        store = _seed(basic=EntitlementRecord(remaining_days=3, last_access="2026-10-23"))
        engine = EntitlementEngine(store, clock=clock)
        engine.verify(Tier.BASIC, "1234")
        clock.advance()
        engine.verify(Tier.BASIC, "1234")
        self.assertEqual(engine.remaining_days(Tier.BASIC), 1)

    def test_activation_then_daily_use_scenario(self) -> None:
        store = InMemoryEntitlementStore()
        engine = EntitlementEngine(store, clock=self.clock)

        self.assertTrue(engine.activate(Tier.BASIC, "1234").valid)
        self.assertEqual(engine.record(Tier.BASIC), EntitlementRecord(19, "2026-10-19"))

        same_day = engine.verify(Tier.BASIC, "1234")
        self.assertIs(same_day.outcome, Outcome.VALID)
        self.assertEqual(same_day.remaining_days, 19)

        self.clock.advance()
        next_day = engine.verify(Tier.BASIC, "1234")
        self.assertIs(next_day.outcome, Outcome.VALID)
        self.assertEqual(engine.record(Tier.BASIC), EntitlementRecord(18, "2026-10-20"))

        reloaded = EntitlementEngine(store, clock=self.clock)
        self.assertEqual(reloaded.record(Tier.BASIC), EntitlementRecord(18, "2026-10-20"))


class PersistenceFailureTests(unittest.TestCase):
    def test_failed_save_keeps_in_memory_state(self) -> None:
        engine = EntitlementEngine(_FailingStore(), clock=lambda: date(2026, 10, 19))
        with self.assertLogs("tiergate.app.engine", level="ERROR"):
            result = engine.activate(Tier.BASIC, "1234")
        self.assertTrue(result.valid)
        self.assertEqual(engine.remaining_days(Tier.BASIC), 19)


if __name__ == "__main__":
    unittest.main()
