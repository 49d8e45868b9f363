from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from tiergate.common.entitlements import DEFAULT_POLICY, GrantPolicy, key_for
from tiergate.common.state import EntitlementStore
from tiergate.common.types import (
    EntitlementRecord,
    EntitlementTable,
    Outcome,
    Tier,
    VerificationResult,
    format_day,
)


log = logging.getLogger(__name__)

REASON_KEY_MISMATCH = "key_mismatch"
REASON_EXPIRED = "expired"


def _local_today() -> date:
    return date.today()


def key_matches(tier: Tier, candidate_key: str) -> bool:
    return str(candidate_key or "").strip() == key_for(tier)


class EntitlementEngine:
    """Activation and daily verification for gated tiers.

    The table is loaded once from ``store`` and then mutated in place; every
    state-changing outcome overwrites the whole persisted table. A failed
    write is logged and the in-memory change is kept for the session.
    """

    def __init__(
        self,
        store: EntitlementStore,
        clock: Callable[[], date] = _local_today,
        policy: GrantPolicy = DEFAULT_POLICY,
    ):
        self.store = store
        self.clock = clock
        self.policy = policy
        self.table: EntitlementTable = store.load()

    def record(self, tier: Tier) -> EntitlementRecord:
        return self.table[tier]

    def remaining_days(self, tier: Tier) -> int:
        return self.table[tier].remaining_days

    def activation_required(self, tier: Tier) -> bool:
        return self.table[tier].activation_required

    def _persist(self) -> None:
        try:
            self.store.save(self.table)
        except OSError:
            log.exception("Failed to persist entitlement table; keeping in-memory state")

    def _result(self, tier: Tier, outcome: Outcome, reason: str | None = None) -> VerificationResult:
        rec = self.table[tier]
        return VerificationResult(
            tier=tier,
            outcome=outcome,
            remaining_days=rec.remaining_days,
            activation_required=rec.activation_required,
            renewal_due=outcome is Outcome.VALID and self.policy.notice_on_access(rec.remaining_days),
            reason=reason,
        )

    def activate(self, tier: Tier, candidate_key: str) -> VerificationResult:
        if not key_matches(tier, candidate_key):
            log.info("Activation rejected for %s: key mismatch", tier.value)
            return self._result(tier, Outcome.INVALID, REASON_KEY_MISMATCH)

        days = self.policy.grant_days_for(tier)
        self.table[tier] = EntitlementRecord(remaining_days=days, last_access=format_day(self.clock()))
        self._persist()
        log.info("Activated %s for %d days", tier.value, days)
        return self._result(tier, Outcome.VALID)

    def verify(self, tier: Tier, candidate_key: str) -> VerificationResult:
        current = self.table[tier]
        if current.activation_required:
            log.info("Verification blocked for %s: entitlement expired", tier.value)
            return self._result(tier, Outcome.INVALID, REASON_EXPIRED)

        if not key_matches(tier, candidate_key):
            log.info("Verification rejected for %s: key mismatch", tier.value)
            return self._result(tier, Outcome.INVALID, REASON_KEY_MISMATCH)

        today = self.clock()
        if not current.consumed_on(today):
            self.table[tier] = EntitlementRecord(
                remaining_days=current.remaining_days - 1,
                last_access=format_day(today),
            )
            self._persist()
            log.info("Consumed one day of %s; %d remaining", tier.value, self.table[tier].remaining_days)
        return self._result(tier, Outcome.VALID)
