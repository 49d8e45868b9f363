from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


DATE_FORMAT = "%Y-%m-%d"


class Tier(str, Enum):
    BASIC = "basic"
    TRIPLETS = "triplets"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: str) -> "Tier":
        raw = str(value or "").strip().lower()
        for tier in cls:
            if tier.value == raw:
                return tier
        allowed = ", ".join(t.value for t in cls)
        raise ValueError(f"Unknown tier '{value}'. Allowed: {allowed}.")


class Outcome(str, Enum):
    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"


def format_day(day: date) -> str:
    return day.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class EntitlementRecord:
    remaining_days: int = 0
    last_access: str | None = None

    def __post_init__(self) -> None:
        if self.remaining_days < 0:
            raise ValueError(f"Remaining days cannot be negative: {self.remaining_days}")

    @property
    def activation_required(self) -> bool:
        return self.remaining_days == 0

    def consumed_on(self, day: date) -> bool:
        return self.last_access == format_day(day)


@dataclass
class EntitlementTable:
    records: dict[Tier, EntitlementRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for tier, record in list(self.records.items()):
            if not isinstance(tier, Tier) or not isinstance(record, EntitlementRecord):
                raise ValueError(f"Invalid entitlement entry: {tier!r} -> {record!r}")
        for tier in Tier:
            self.records.setdefault(tier, EntitlementRecord())

    @classmethod
    def default(cls) -> "EntitlementTable":
        return cls()

    def __getitem__(self, tier: Tier) -> EntitlementRecord:
        return self.records[tier]

    def __setitem__(self, tier: Tier, record: EntitlementRecord) -> None:
        if not isinstance(record, EntitlementRecord):
            raise ValueError(f"Invalid entitlement record for {tier.value}: {record!r}")
        self.records[tier] = record

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {
            tier.value: {"days": rec.remaining_days, "lastAccess": rec.last_access}
            for tier, rec in self.records.items()
        }


@dataclass(frozen=True)
class VerificationResult:
    tier: Tier
    outcome: Outcome
    remaining_days: int
    activation_required: bool = False
    renewal_due: bool = False
    reason: str | None = None

    @property
    def valid(self) -> bool:
        return self.outcome is Outcome.VALID
