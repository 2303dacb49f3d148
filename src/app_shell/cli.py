import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteEventStore, parse_ts
from src.adapters.time_local import LocalTimeAdapter
from src.api.deps import Settings, get_settings
from src.components.analytics import (
    AggregationResult,
    AnalyticsEvent,
    FilterParameters,
    coerce_metadata,
    run_aggregate,
)
from src.components.analytics.models import DATE_FILTERS, GRANULARITIES, PAGE_VIEW_MODES
from src.rules.loader import load_rules
from src.rules.models import RulesAdapter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

_EVENT_FIELDS = (
    "visitor_id",
    "session_id",
    "page_path",
    "country_code",
    "country_name",
    "region",
    "city",
    "device_type",
    "browser_name",
    "os_name",
    "language",
)


def event_from_record(record: Any) -> AnalyticsEvent:
    """Build an event from an exported row (created_at or timestamp key)."""
    if not isinstance(record, dict):
        raise ValueError(f"expected a JSON object, got {type(record).__name__}")
    if not record.get("event_type"):
        raise ValueError("event_type is required")
    raw_ts = record.get("created_at") or record.get("timestamp")
    return AnalyticsEvent(
        event_type=record["event_type"],
        timestamp=parse_ts(raw_ts) if isinstance(raw_ts, str) else None,
        metadata=coerce_metadata(record.get("metadata")),
        **{name: record.get(name) for name in _EVENT_FIELDS},
    )


def handle_migrate(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_import(settings: Settings, args: argparse.Namespace) -> None:
    path = Path(args.file)
    if not path.exists():
        logger.error("File %s not found.", path)
        sys.exit(1)

    events: list[AnalyticsEvent] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                events.append(event_from_record(json.loads(line)))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping line %d: %s", line_no, e)

    written = SQLiteEventStore(settings.db_path).append(events)
    print(f"Imported {written} events.")


def format_report(result: AggregationResult) -> str:
    overview = result.overview
    lines = [
        f"Range: {result.date_range.start.isoformat()} -> {result.date_range.end.isoformat()}",
        f"Events: {result.event_count}",
        f"Unique visitors: {overview.unique_visitors}",
        f"Sessions: {overview.sessions}",
        f"Pageviews: {overview.pageviews}",
        f"Views per visit: {overview.views_per_visit}",
        f"Bounce rate: {overview.bounce_rate}%",
        f"Visit duration: {overview.visit_duration}",
        "",
        "Funnel:",
    ]
    for step in result.funnel.steps:
        lines.append(
            f"  {step.order}. {step.name}: {step.unique_visitors} "
            f"({step.conversion_rate}% conv, {step.drop_off_rate}% drop)"
        )
    lines.append(f"Overall conversion: {result.funnel.overall_conversion_rate}%")
    if not result.success:
        lines.append(f"ERROR: {result.error}")
    return "\n".join(lines)


def handle_report(settings: Settings, args: argparse.Namespace) -> None:
    rules = RulesAdapter(load_rules(settings.rules_path))
    filters = FilterParameters(
        date_filter=args.date_filter,
        custom_start=args.start,
        custom_end=args.end,
        country_code=args.country,
        granularity=args.granularity or rules.get_default_granularity(),
        page_view_mode=args.page_view_mode,
    )
    result = run_aggregate(
        filters,
        event_store=SQLiteEventStore(settings.db_path),
        time_port=LocalTimeAdapter(rules.get_timezone()),
        rules=rules,
    )
    print(format_report(result))
    if not result.success:
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Notary Analytics CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending SQL migrations")

    # import
    import_parser = subparsers.add_parser("import", help="Load events from a JSON-lines file")
    import_parser.add_argument("file", help="Path to a .jsonl export of analytics_events")

    # report
    report_parser = subparsers.add_parser("report", help="Print headline KPIs and the funnel")
    report_parser.add_argument("--date-filter", choices=DATE_FILTERS, default="today")
    report_parser.add_argument("--start", help="Custom range start (YYYY-MM-DD)")
    report_parser.add_argument("--end", help="Custom range end (YYYY-MM-DD)")
    report_parser.add_argument("--country", help="Country code filter")
    report_parser.add_argument("--granularity", choices=GRANULARITIES)
    report_parser.add_argument("--page-view-mode", choices=PAGE_VIEW_MODES, default="top")

    args = parser.parse_args()

    settings = get_settings()

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "import":
        handle_import(settings, args)
    elif args.command == "report":
        handle_report(settings, args)


if __name__ == "__main__":
    main()
