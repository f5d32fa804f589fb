## ward_capacity/cli.py

from __future__ import annotations
import argparse, json
from .config import load_settings
from .pipeline import build_orchestrator, process_file
from .utils import configure_logging, ensure_dirs
from . import health, snapshot, watcher


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ward-capacity", description="Ward capacity signaling")
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML (default: config.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Ingest a CSV/JSONL file of transactions")
    p_ingest.add_argument("path")
    sub.add_parser("watch", help="Poll incoming/ for new event files")
    sub.add_parser("snapshot", help="Record a history sample for every known ward")
    p_status = sub.add_parser("status", help="Print capacity analysis for one ward")
    p_status.add_argument("facility_id")
    p_status.add_argument("ward_id")
    sub.add_parser("health", help="Print a capacity health report")

    args = parser.parse_args(argv)
    ensure_dirs()
    configure_logging()

    if args.command == "ingest":
        return 0 if process_file(args.path, args.config) else 1
    if args.command == "watch":
        watcher.run(args.config)
        return 0

    settings = load_settings(args.config)
    with build_orchestrator(settings) as orchestrator:
        engine = orchestrator.engine
        if args.command == "snapshot":
            snapshot.snapshot_all(engine)
        elif args.command == "status":
            print(json.dumps(engine.analyze_capacity(args.facility_id, args.ward_id).model_dump(), indent=2))
        elif args.command == "health":
            print(health.report(engine))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
