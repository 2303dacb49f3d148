from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteEventStore
from src.adapters.time_local import FrozenTimeAdapter
from src.components.analytics import InMemoryEventStore
from src.rules.loader import load_rules
from src.rules.models import Rules, RulesAdapter
from tests.factories import NOW, PARIS

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def paris() -> ZoneInfo:
    return PARIS


@pytest.fixture
def frozen_time() -> FrozenTimeAdapter:
    return FrozenTimeAdapter(NOW, "Europe/Paris")


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def rules() -> Rules:
    """Real rules from the project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def rules_adapter(rules: Rules) -> RulesAdapter:
    return RulesAdapter(rules)


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteEventStore:
    """Event store over a freshly migrated temporary database."""
    db_path = str(tmp_path / "analytics.db")
    SQLiteMigrator(db_path, str(PROJECT_ROOT / "migrations")).run_migrations()
    return SQLiteEventStore(db_path)
