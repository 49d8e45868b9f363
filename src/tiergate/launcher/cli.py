from __future__ import annotations

import argparse
import getpass
import json
import logging
from pathlib import Path

from tiergate import __version__ as TIERGATE_VERSION
from tiergate.app.engine import REASON_EXPIRED, EntitlementEngine
from tiergate.app.session import SessionController
from tiergate.common.config import AppPaths, RuntimeConfig
from tiergate.common.entitlements import title_for
from tiergate.common.logging_utils import configure_logging, resolve_level
from tiergate.common.state import JsonFileEntitlementStore
from tiergate.common.types import Tier, VerificationResult


log = logging.getLogger(__name__)

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"TierGate {TIERGATE_VERSION} access keys")
    parser.add_argument("--log-level", default=None, help="Log level.")
    parser.add_argument("--home", default=None, help="Override the TierGate data directory.")
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show remaining days for every tier.")
    status.add_argument("--json", action="store_true", help="Print machine-readable output.")

    gate = sub.add_parser("open", help="Open a tier gate and submit one key.")
    gate.add_argument("tier", help="Tier id: " + ", ".join(t.value for t in Tier))
    gate.add_argument("--key", default=None, help="Access key; prompted for when omitted.")
    return parser


def _describe(result: VerificationResult) -> str:
    title = title_for(result.tier)
    if result.valid:
        lines = [f"{title}: access granted, {result.remaining_days} days remaining."]
        if result.renewal_due:
            lines.append(f"Renewal notice: only {result.remaining_days} days left on this key.")
        return "\n".join(lines)
    if result.reason == REASON_EXPIRED or result.activation_required:
        return f"{title}: plan expired or key invalid. Request a new activation key."
    return f"{title}: incorrect key."


def _status(engine: EntitlementEngine, as_json: bool) -> int:
    rows = []
    for tier in Tier:
        rec = engine.record(tier)
        rows.append(
            {
                "tier": tier.value,
                "title": title_for(tier),
                "days": rec.remaining_days,
                "lastAccess": rec.last_access,
                "activationRequired": rec.activation_required,
                "renewalDue": engine.policy.renewal_due(rec.remaining_days),
            }
        )
    if as_json:
        print(json.dumps(rows, indent=2))
        return EXIT_VALID
    for row in rows:
        state = "activation required" if row["activationRequired"] else f"{row['days']} days remaining"
        last = row["lastAccess"] or "never"
        print(f"{row['title']:<18} {state:<22} last access: {last}")
    return EXIT_VALID


def _open_gate(engine: EntitlementEngine, tier: Tier, key: str | None) -> int:
    controller = SessionController(engine)
    controller.open(tier)
    try:
        if key is None:
            verb = "Activation" if controller.activation_required(tier) else "Access"
            key = getpass.getpass(f"{verb} key for {title_for(tier)}: ")
        controller.set_key(key)
        result = controller.submit()
        print(_describe(result))
        return EXIT_VALID if result.valid else EXIT_INVALID
    finally:
        controller.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    paths = AppPaths.under(Path(args.home)) if args.home else AppPaths.default()
    paths.ensure_layout()
    configure_logging(paths.logs_dir, level=args.log_level or "INFO")

    try:
        runtime_cfg = RuntimeConfig.from_env()
        policy = runtime_cfg.grant_policy()
    except ValueError as exc:
        log.error("Invalid grant configuration: %s", exc)
        return EXIT_BAD_INPUT
    if args.log_level is None:
        logging.getLogger().setLevel(resolve_level(runtime_cfg.log_level))

    engine = EntitlementEngine(JsonFileEntitlementStore(paths.state_dir), policy=policy)

    if args.command == "status":
        return _status(engine, args.json)

    try:
        tier = Tier.parse(args.tier)
    except ValueError as exc:
        log.error("%s", exc)
        return EXIT_BAD_INPUT
    return _open_gate(engine, tier, args.key)
