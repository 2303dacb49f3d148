"""
CLI helper and startup validation tests.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from src.app_shell.cli import event_from_record, format_report, handle_import
from src.app_shell.config import validate_ops_rules
from src.components.analytics import (
    FilterParameters,
    InMemoryEventStore,
    StructuredMetadata,
    run_aggregate,
)
from src.rules.models import Rules
from tests.factories import NOW, PARIS, make_event


class FakeSettings:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path


class ImportArgs:
    def __init__(self, file: str) -> None:
        self.file = file


class FrozenClock:
    def now_utc(self):
        return NOW

    @property
    def tz(self):
        return PARIS


class TestEventFromRecord:
    def test_full_record(self) -> None:
        event = event_from_record(
            {
                "event_type": "cta_click",
                "visitor_id": "v1",
                "country_code": "FR",
                "created_at": "2025-03-12T14:30:00+00:00",
                "metadata": {"cta_location": "hero"},
            }
        )
        assert event.timestamp == NOW
        assert event.country_code == "FR"
        assert event.metadata == StructuredMetadata(data={"cta_location": "hero"})

    def test_bad_timestamp_kept_without_time(self) -> None:
        event = event_from_record({"event_type": "pageview", "timestamp": "garbage"})
        assert event.timestamp is None

    def test_event_type_required(self) -> None:
        with pytest.raises(ValueError):
            event_from_record({"visitor_id": "v1"})

    def test_non_object_rejected(self) -> None:
        with pytest.raises(ValueError, match="JSON object"):
            event_from_record([1, 2])


class TestImport:
    def test_skips_bad_lines(self, sqlite_store, tmp_path: Path, capsys) -> None:
        path = tmp_path / "events.jsonl"
        lines = [
            json.dumps(
                {"event_type": "pageview", "visitor_id": "a", "created_at": "2025-03-12T14:00:00Z"}
            ),
            "{not json",
            "[1, 2]",
            "",
            json.dumps({"visitor_id": "no-type"}),
        ]
        path.write_text("\n".join(lines), encoding="utf-8")

        handle_import(FakeSettings(sqlite_store.db_path), ImportArgs(str(path)))

        assert "Imported 1 events." in capsys.readouterr().out


class TestFormatReport:
    def test_report_lists_kpis_and_funnel(self) -> None:
        result = run_aggregate(
            FilterParameters(),
            event_store=InMemoryEventStore(
                [make_event("form_opened", visitor_id="a", at=NOW - timedelta(minutes=5))]
            ),
            time_port=FrozenClock(),
        )
        report = format_report(result)
        assert "Unique visitors: 1" in report
        assert "1. Formulaire ouvert: 1" in report
        assert "ERROR" not in report


class TestValidateOpsRules:
    def rules(self, required_env: list[str]) -> Rules:
        return Rules.model_validate(
            {
                "project": {"slug": "t", "rules_version": "1"},
                "analytics": {"funnel_steps": [{"name": "S", "event_type": "s"}]},
                "ops": {"required_env": required_env},
            }
        )

    def test_missing_env_raises(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("ANALYTICS_SECRET", raising=False)
        with pytest.raises(RuntimeError, match="ANALYTICS_SECRET"):
            validate_ops_rules(self.rules(["ANALYTICS_SECRET"]), tmp_path)

    def test_creates_data_dir(self, tmp_path: Path) -> None:
        data_dir = tmp_path / "data"
        validate_ops_rules(self.rules([]), data_dir)
        assert data_dir.is_dir()
