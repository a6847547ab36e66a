"""Main CLI entry point."""

import argparse
import json
import logging
import math
import sys
from pathlib import Path

from bizboard.models.records import DatasetKind

KINDS = [k.value for k in DatasetKind]


def main(argv: list[str] | None = None) -> None:
    """Parse args and dispatch to subcommands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (store/ingest/passcodes sections)",
    )
    common.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite document store (overrides settings)",
    )

    parser = argparse.ArgumentParser(prog="bizboard", description="Bookings and proposals dashboard ingestion")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ingest
    ingest_parser = subparsers.add_parser("ingest", parents=[common], help="Ingest an uploaded spreadsheet")
    ingest_parser.add_argument("--kind", required=True, choices=KINDS, help="Dataset the upload belongs to")
    ingest_parser.add_argument("upload", type=str, help="Path or http(s) URL of the .xls/.xlsx export")
    ingest_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the run report JSON to file (default: stdout)",
    )

    # summary
    summary_parser = subparsers.add_parser("summary", parents=[common], help="Show the stored dataset summary")
    summary_parser.add_argument("--kind", required=True, choices=KINDS)

    # target
    target_parser = subparsers.add_parser("target", parents=[common], help="Set the sold target used for soldPercent")
    target_parser.add_argument("--kind", default=DatasetKind.BOOKINGS.value, choices=KINDS)
    target_parser.add_argument("value", type=_finite_float, help="Target value")

    # store
    store_parser = subparsers.add_parser("store", parents=[common], help="Query dataset records")
    store_parser.add_argument("action", choices=["list", "count"], help="List records or show count")
    store_parser.add_argument("--kind", required=True, choices=KINDS)

    # runs
    runs_parser = subparsers.add_parser("runs", parents=[common], help="Show recent ingest runs")
    runs_parser.add_argument("--kind", default=None, choices=KINDS)
    runs_parser.add_argument("--limit", type=int, default=10)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "ingest":
        _run_ingest(args)
    elif args.command == "summary":
        _run_summary(args)
    elif args.command == "target":
        _run_target(args)
    elif args.command == "store":
        _run_store(args)
    elif args.command == "runs":
        _run_runs(args)
    else:
        parser.print_help()


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"{text!r} is not a finite number")
    return value


def _load_settings(args: argparse.Namespace):
    """Settings from --config, with --db taking precedence."""
    from bizboard.settings import IngestSettings

    settings = IngestSettings.from_yaml(args.config) if args.config else IngestSettings()
    if args.db is not None:
        settings = settings.model_copy(update={"db_path": args.db})
    return settings


def _open_store(args: argparse.Namespace):
    from bizboard.store import SqliteDocumentStore

    settings = _load_settings(args)
    return SqliteDocumentStore(settings.db_path), settings


def _run_ingest(args: argparse.Namespace) -> None:
    """Run ingest command. Exits 1 if the run failed."""
    from bizboard.errors import IngestInProgressError
    from bizboard.pipeline import ingest_upload
    from bizboard.uploads import Upload

    store, settings = _open_store(args)
    size = None
    local = Path(args.upload)
    if local.is_file():
        size = local.stat().st_size
    upload = Upload(kind=DatasetKind(args.kind), reference=args.upload, size_bytes=size)

    try:
        report = ingest_upload(upload, store, settings)
    except IngestInProgressError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)

    output = report.model_dump_json(indent=2, by_alias=True)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        print(
            f"{report.state.value}: {report.rows_upserted} upserted, "
            f"{report.rows_failed} failed of {report.rows_seen} rows (wrote to {args.output})"
        )
    else:
        print(output)
    if report.failed:
        raise SystemExit(1)


def _run_summary(args: argparse.Namespace) -> None:
    """Run summary command."""
    store, settings = _open_store(args)
    document = store.get(settings.overall_collection, args.kind)
    if document is None:
        print(
            f"No {args.kind} summary yet. Run ingest first:\n"
            f"  bizboard ingest --kind {args.kind} export.xlsx",
            file=sys.stderr,
        )
        raise SystemExit(1)
    print(json.dumps(document, indent=2))


def _run_target(args: argparse.Namespace) -> None:
    """Run target command: merges target into the Constants document."""
    store, settings = _open_store(args)
    document = store.get(settings.constants_collection, args.kind) or {}
    document["target"] = args.value
    store.set(settings.constants_collection, args.kind, document)
    print(f"{settings.constants_collection}/{args.kind}.target = {args.value}")


def _run_store(args: argparse.Namespace) -> None:
    """Run store command."""
    from bizboard.datasets import DatasetRegistry

    store, _ = _open_store(args)
    dataset = DatasetRegistry.get(args.kind)
    documents = store.list_collection(dataset.collection)
    if args.action == "list":
        print(json.dumps({key: doc for key, doc in documents}, indent=2))
    elif args.action == "count":
        print(len(documents))


def _run_runs(args: argparse.Namespace) -> None:
    """Run runs command."""
    store, _ = _open_store(args)
    for run in store.recent_runs(args.kind, limit=args.limit):
        finished = run.finished_at.isoformat() if run.finished_at else "-"
        line = (
            f"#{run.id} {run.kind} {run.status} started={run.started_at.isoformat()} finished={finished} "
            f"seen={run.rows_seen} upserted={run.rows_upserted} failed={run.rows_failed} "
            f"summary={'yes' if run.summary_written else 'no'}"
        )
        if run.error:
            line += f" error={run.error}"
        print(line)


if __name__ == "__main__":
    main()
