from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from tiergate.common.entitlements import normalize_tier
from tiergate.common.types import DATE_FORMAT, EntitlementRecord, EntitlementTable, Tier


log = logging.getLogger(__name__)

STATE_FILE_NAME = "tier_entitlements.v2.json"


def _parse_days(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return None
    return value


def _parse_last_access(value: Any) -> tuple[bool, str | None]:
    if value is None:
        return True, None
    if not isinstance(value, str):
        return False, None
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False, None
    # strptime accepts unpadded fields; the slot format is strict.
    if parsed.strftime(DATE_FORMAT) != value:
        return False, None
    return True, value


def _parse_record(tier: Tier, raw: Any) -> EntitlementRecord:
    if not isinstance(raw, dict):
        log.warning("Entitlement record for %s is not an object; using defaults", tier.value)
        return EntitlementRecord()
    days = _parse_days(raw.get("days", 0))
    ok, last_access = _parse_last_access(raw.get("lastAccess"))
    if days is None or not ok:
        log.warning("Entitlement record for %s is malformed; using defaults", tier.value)
        return EntitlementRecord()
    return EntitlementRecord(remaining_days=days, last_access=last_access)


def parse_table(text: str) -> EntitlementTable:
    """Decode a serialized table.

    Raises ``ValueError`` when the payload is not a JSON object or is too
    deeply nested to decode. Individual
    bad records and unknown tiers are repaired rather than rejected: the
    result always holds one record per tier.
    """
    try:
        raw = json.loads(text)
    except RecursionError as exc:
        raise ValueError("Entitlement table is nested too deeply to decode.") from exc
    if not isinstance(raw, dict):
        raise ValueError("Entitlement table must be a JSON object.")

    table = EntitlementTable.default()
    canonical: set[Tier] = set()
    for key, value in raw.items():
        tier = normalize_tier(key)
        if tier is None:
            log.info("Dropping unknown tier from entitlement table: %r", key)
            continue
        is_canonical = str(key).strip().lower() == tier.value
        if tier in canonical and not is_canonical:
            continue
        table[tier] = _parse_record(tier, value)
        if is_canonical:
            canonical.add(tier)
    return table


def dump_table(table: EntitlementTable) -> str:
    return json.dumps(table.to_dict(), indent=2, sort_keys=True)


class EntitlementStore:
    """Persistence slot holding one whole entitlement table."""

    def load(self) -> EntitlementTable:
        raise NotImplementedError

    def save(self, table: EntitlementTable) -> None:
        raise NotImplementedError


class JsonFileEntitlementStore(EntitlementStore):
    def __init__(self, state_dir: Path, file_name: str = STATE_FILE_NAME):
        self.path = state_dir / file_name

    def load(self) -> EntitlementTable:
        if not self.path.exists():
            return EntitlementTable.default()
        try:
            # Accept optional UTF-8 BOM left behind by manual edits.
            text = self.path.read_text(encoding="utf-8-sig")
            return parse_table(text)
        except (OSError, ValueError) as exc:
            log.warning("Entitlement state at %s is unreadable, starting fresh: %s", self.path, exc)
            return EntitlementTable.default()

    def save(self, table: EntitlementTable) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            fh.write(dump_table(table))
        tmp.replace(self.path)


class InMemoryEntitlementStore(EntitlementStore):
    def __init__(self, initial: str | None = None):
        self.slot = initial

    def load(self) -> EntitlementTable:
        if self.slot is None:
            return EntitlementTable.default()
        try:
            return parse_table(self.slot)
        except ValueError as exc:
            log.warning("In-memory entitlement slot is unreadable, starting fresh: %s", exc)
            return EntitlementTable.default()

    def save(self, table: EntitlementTable) -> None:
        self.slot = dump_table(table)


def load_entitlements(state_dir: Path) -> EntitlementTable:
    return JsonFileEntitlementStore(state_dir).load()


def save_entitlements(state_dir: Path, table: EntitlementTable) -> None:
    JsonFileEntitlementStore(state_dir).save(table)
