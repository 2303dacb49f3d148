import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.adapters.sqlite_db import SQLiteEventStore
from src.adapters.time_local import LocalTimeAdapter
from src.components.analytics import (
    AggregationConfig,
    AnalyticsDashboard,
    EventStorePort,
    TimePort,
    build_config,
)
from src.rules.loader import default_rules_path, load_rules
from src.rules.models import Rules, RulesAdapter

DATA_DIR_ENV = "NOTARY_ANALYTICS_DATA_DIR"


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get(DATA_DIR_ENV, "./data"))
        self.db_path = str(self.data_dir / "analytics.db")
        self.migrations_dir = str(self.base_dir / "migrations")
        self.rules_path = default_rules_path(self.base_dir)


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_rules_adapter(rules: Rules = Depends(get_rules)) -> RulesAdapter:
    return RulesAdapter(rules)


def get_aggregation_config(
    rules: RulesAdapter = Depends(get_rules_adapter),
) -> AggregationConfig:
    return build_config(rules)


# --- Adapters ---
def get_event_store(settings: Settings = Depends(get_settings)) -> EventStorePort:
    return SQLiteEventStore(settings.db_path)


def get_time_port(rules: RulesAdapter = Depends(get_rules_adapter)) -> TimePort:
    return LocalTimeAdapter(rules.get_timezone())


# Dashboard singleton: one pass counter per process so a slow request
# can never publish over a newer one.
_dashboard_instance: AnalyticsDashboard | None = None


def get_dashboard(
    event_store: EventStorePort = Depends(get_event_store),
    time_port: TimePort = Depends(get_time_port),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> AnalyticsDashboard:
    """Get dashboard singleton."""
    global _dashboard_instance
    if _dashboard_instance is None:
        _dashboard_instance = AnalyticsDashboard(event_store, time_port, config)
    return _dashboard_instance


def reset_dashboard() -> None:
    """Reset dashboard singleton (for testing)."""
    global _dashboard_instance
    _dashboard_instance = None
