from tiergate.common.config import AppPaths, RuntimeConfig
from tiergate.common.state import (
    EntitlementStore,
    InMemoryEntitlementStore,
    JsonFileEntitlementStore,
    load_entitlements,
    save_entitlements,
)
from tiergate.common.types import EntitlementRecord, EntitlementTable, Outcome, Tier, VerificationResult

__all__ = [
    "AppPaths",
    "RuntimeConfig",
    "EntitlementStore",
    "InMemoryEntitlementStore",
    "JsonFileEntitlementStore",
    "load_entitlements",
    "save_entitlements",
    "EntitlementRecord",
    "EntitlementTable",
    "Outcome",
    "Tier",
    "VerificationResult",
]
