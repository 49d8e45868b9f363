from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Union

from tiergate.app.engine import EntitlementEngine
from tiergate.common.types import Outcome, Tier, VerificationResult


log = logging.getLogger(__name__)

EVENT_TIER_SELECTED = "tier_selected"
EVENT_OUTCOME = "outcome"


@dataclass(frozen=True)
class NoSession:
    pass


@dataclass(frozen=True)
class VerifyingTier:
    tier: Tier
    candidate_key: str = ""
    outcome: Outcome = Outcome.UNKNOWN


Session = Union[NoSession, VerifyingTier]


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    tier: Tier
    outcome: Outcome
    remaining_days: int
    activation_required: bool


class SessionController:
    def __init__(
        self,
        engine: EntitlementEngine,
        listener: Callable[[SessionEvent], None] | None = None,
    ):
        self.engine = engine
        self.listener = listener
        self.session: Session = NoSession()

    def _emit(self, kind: str, tier: Tier, outcome: Outcome) -> None:
        if self.listener is None:
            return
        self.listener(
            SessionEvent(
                kind=kind,
                tier=tier,
                outcome=outcome,
                remaining_days=self.engine.remaining_days(tier),
                activation_required=self.engine.activation_required(tier),
            )
        )

    def _require_open(self) -> VerifyingTier:
        if not isinstance(self.session, VerifyingTier):
            raise RuntimeError("No tier gate is open.")
        return self.session

    @property
    def is_open(self) -> bool:
        return isinstance(self.session, VerifyingTier)

    def remaining_days(self, tier: Tier) -> int:
        return self.engine.remaining_days(tier)

    def activation_required(self, tier: Tier) -> bool:
        return self.engine.activation_required(tier)

    def open(self, tier: Tier) -> VerifyingTier:
        # Opening a gate always starts from a blank candidate key and outcome.
        self.session = VerifyingTier(tier=tier)
        log.debug("Opened gate for %s", tier.value)
        self._emit(EVENT_TIER_SELECTED, tier, Outcome.UNKNOWN)
        return self.session

    def set_key(self, candidate_key: str) -> None:
        self.session = replace(self._require_open(), candidate_key=candidate_key)

    def submit(self) -> VerificationResult:
        current = self._require_open()
        if self.engine.activation_required(current.tier):
            result = self.engine.activate(current.tier, current.candidate_key)
        else:
            result = self.engine.verify(current.tier, current.candidate_key)
        self.session = replace(current, outcome=result.outcome)
        self._emit(EVENT_OUTCOME, current.tier, result.outcome)
        return result

    def close(self) -> None:
        if isinstance(self.session, VerifyingTier):
            log.debug("Closed gate for %s", self.session.tier.value)
        self.session = NoSession()
