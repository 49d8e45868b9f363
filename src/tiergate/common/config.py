from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from tiergate.common.entitlements import (
    PREMIUM_GRANT_DAYS,
    RENEWAL_WARNING_DAYS,
    STANDARD_GRANT_DAYS,
    GrantPolicy,
)


@dataclass(frozen=True)
class AppPaths:
    root: Path
    state_dir: Path
    logs_dir: Path

    @classmethod
    def default(cls) -> "AppPaths":
        override_root = os.environ.get("TIERGATE_HOME", "").strip()
        if override_root:
            root = Path(override_root)
        else:
            local_app_data = os.environ.get("LOCALAPPDATA", "").strip()
            if local_app_data:
                root = Path(local_app_data) / "TierGate"
            else:
                root = Path.home() / ".local" / "share" / "TierGate"
        return cls.under(root)

    @classmethod
    def under(cls, root: Path) -> "AppPaths":
        return cls(root=root, state_dir=root / "state", logs_dir=root / "logs")

    def ensure_layout(self) -> None:
        for path in (self.root, self.state_dir, self.logs_dir):
            path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RuntimeConfig:
    standard_grant_days: int = STANDARD_GRANT_DAYS
    premium_grant_days: int = PREMIUM_GRANT_DAYS
    renewal_warning_days: int = RENEWAL_WARNING_DAYS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        return cls(
            standard_grant_days=int(os.environ.get("TIERGATE_STANDARD_GRANT_DAYS", str(STANDARD_GRANT_DAYS))),
            premium_grant_days=int(os.environ.get("TIERGATE_PREMIUM_GRANT_DAYS", str(PREMIUM_GRANT_DAYS))),
            renewal_warning_days=int(os.environ.get("TIERGATE_RENEWAL_WARNING_DAYS", str(RENEWAL_WARNING_DAYS))),
            log_level=os.environ.get("TIERGATE_LOG_LEVEL", "INFO"),
        )

    def grant_policy(self) -> GrantPolicy:
        return GrantPolicy(
            standard_days=self.standard_grant_days,
            premium_days=self.premium_grant_days,
            renewal_warning_days=self.renewal_warning_days,
        )
