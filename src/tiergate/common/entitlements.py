from __future__ import annotations

from dataclasses import dataclass

from tiergate.common.types import Tier


STANDARD_GRANT_DAYS = 19
PREMIUM_GRANT_DAYS = 34
RENEWAL_WARNING_DAYS = 4

_TIER_KEYS: dict[Tier, str] = {
    Tier.BASIC: "1234",
    Tier.TRIPLETS: "5678",
    Tier.PREMIUM: "9421",
}

_TIER_TITLES: dict[Tier, str] = {
    Tier.BASIC: "Basic Plan",
    Tier.TRIPLETS: "Triplets Special",
    Tier.PREMIUM: "Premium VIP",
}

# Tier ids written by the Spanish-language client.
_LEGACY_ALIASES: dict[str, Tier] = {
    "basico": Tier.BASIC,
    "tripletas": Tier.TRIPLETS,
}


def key_for(tier: Tier) -> str:
    return _TIER_KEYS[tier]


def title_for(tier: Tier) -> str:
    return _TIER_TITLES[tier]


def normalize_tier(value: str) -> Tier | None:
    raw = str(value or "").strip().lower()
    if raw in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[raw]
    for tier in Tier:
        if tier.value == raw:
            return tier
    return None


@dataclass(frozen=True)
class GrantPolicy:
    standard_days: int = STANDARD_GRANT_DAYS
    premium_days: int = PREMIUM_GRANT_DAYS
    renewal_warning_days: int = RENEWAL_WARNING_DAYS

    def __post_init__(self) -> None:
        if self.standard_days < 1 or self.premium_days < 1:
            raise ValueError("Grant days must be at least 1.")
        if self.renewal_warning_days < 0:
            raise ValueError("Renewal warning days cannot be negative.")

    def grant_days_for(self, tier: Tier) -> int:
        if tier is Tier.PREMIUM:
            return self.premium_days
        return self.standard_days

    def renewal_due(self, remaining_days: int) -> bool:
        return 0 < remaining_days <= self.renewal_warning_days

    def notice_on_access(self, remaining_days: int) -> bool:
        # The access that spends the last day still warns.
        return remaining_days <= self.renewal_warning_days


DEFAULT_POLICY = GrantPolicy()


def grant_days_for(tier: Tier) -> int:
    return DEFAULT_POLICY.grant_days_for(tier)
