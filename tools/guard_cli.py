from __future__ import annotations
import argparse, json, os, sys
from typing import Any, Dict, List, Optional
import structlog

from app.logging_config import configure_logging
from app.analytics.features import FeatureVector, resolve_baseline
from app.analytics.risk_scorer import RiskScorer
from app.analytics.signal_collector import SignalCollector
from core.hooks.events import FieldKind

log = structlog.get_logger()

def _load_json(arg: str) -> Dict[str, Any]:
    # "@path" reads a file, anything else is inline JSON
    if arg.startswith("@"):
        with open(arg[1:], "r", encoding="utf-8") as f:
            return json.load(f)
    return json.loads(arg)

def collect_from_records(records: List[Dict[str, Any]]) -> FeatureVector:
    """
    Replay serialized KEY/POINTER records through a fresh collector.
    Records missing their timing or coordinates are skipped, not fatal.
    """
    col = SignalCollector()
    for rec in records:
        etype = rec.get("etype")
        if etype == "KEY":
            if rec.get("t_ms") is None:
                log.debug("collector.sample.ignored", kind="key", reason="missing t_ms")
                continue
            col.on_key_event(rec.get("field_kind", FieldKind.GENERAL.value), t_ms=rec["t_ms"])
        elif etype == "POINTER":
            if rec.get("x") is None or rec.get("y") is None:
                log.debug("collector.sample.ignored", kind="pointer", reason="missing coordinates")
                continue
            col.on_pointer_move(rec["x"], rec["y"])
    return col.derive_feature_vector()

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="guard", description="Behavioral Login Guard CLI")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_score = sub.add_parser("score", help="Score a feature vector against a baseline")
    p_score.add_argument("--current", required=True, help="JSON or @file with avgTypingSpeed, ...")
    p_score.add_argument("--baseline", help="JSON or @file; defaults to the built-in baseline")

    p_replay = sub.add_parser("replay", help="Derive features from a JSON-lines event capture and score them")
    p_replay.add_argument("events", help="JSON-lines file of KEY/POINTER records")
    p_replay.add_argument("--baseline", help="JSON or @file; defaults to the built-in baseline")

    p_prof = sub.add_parser("profile", help="Show a stored profile")
    p_prof.add_argument("user_id")
    p_prof.add_argument("--db", default=os.environ.get("GUARD_DB_PATH", "guard_profiles.sqlite3"))
    p_prof.add_argument("--secrets", default=os.environ.get("GUARD_SECRETS_DIR", "secrets"))

    sub.add_parser("run", help="Launch GUI")

    args = ap.parse_args(argv)
    # stdout carries the JSON result; logs go to stderr
    configure_logging(debug=False, json=False, stream=sys.stderr)

    if args.cmd == "run":
        from main import main as run_gui
        run_gui()
        return 0

    if args.cmd in ("score", "replay"):
        baseline = FeatureVector.from_record(_load_json(args.baseline)) if args.baseline else None
        if args.cmd == "score":
            current = FeatureVector.from_record(_load_json(args.current))
        else:
            with open(args.events, "r", encoding="utf-8") as f:
                records = [json.loads(line) for line in f if line.strip()]
            current = collect_from_records(records)
        verdict = RiskScorer().score(current, resolve_baseline(baseline))
        print(json.dumps({"features": current.to_record(), **verdict.to_record()}, indent=2))
        return 0

    if args.cmd == "profile":
        from app.profile.store import SqliteProfileStore, StoreConfig, ProfileStoreError
        if not os.path.exists(args.db):
            print(f"No profile database at {args.db}", file=sys.stderr)
            return 2
        store = SqliteProfileStore(StoreConfig(db_path=args.db, secrets_dir=args.secrets))
        try:
            doc = store.get_profile(args.user_id)
        except ProfileStoreError as e:
            print(f"Cannot read profile {args.user_id}: {type(e).__name__}", file=sys.stderr)
            return 2
        if doc is None:
            print(f"No profile for {args.user_id}", file=sys.stderr)
            return 1
        print(json.dumps(doc, indent=2))
        return 0
    return 1

if __name__ == "__main__":
    sys.exit(main())
