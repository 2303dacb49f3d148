from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from src.components.analytics import FunnelStepDefinition

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class FunnelStepRule(BaseModel):
    name: str
    event_type: str
    category: Literal["awareness", "conversion"] = "conversion"
    page_path: str | None = None

    def to_definition(self) -> FunnelStepDefinition:
        return FunnelStepDefinition(
            name=self.name,
            event_type=self.event_type,
            category=self.category,
            page_path=self.page_path,
        )


class InteractionEventTypes(BaseModel):
    cta_click: str = "cta_click"
    scroll_depth: str = "scroll_depth"
    navigation_click: str = "navigation_click"
    service_click: str = "service_click"


class AnalyticsRules(BaseModel):
    timezone: str = "Europe/Paris"
    week_start: Literal[
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
    ] = "sunday"
    minute_window_minutes: int = Field(default=60, ge=1, le=24 * 60)
    default_date_filter: Literal["today", "yesterday", "last7days", "last30days", "custom"] = (
        "today"
    )
    default_granularity: Literal["minute", "hour", "day", "week"] = "hour"
    funnel_steps: list[FunnelStepRule] = Field(min_length=1)
    interaction_event_types: InteractionEventTypes = InteractionEventTypes()

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


class OpsRules(BaseModel):
    required_env: list[str] = []


class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules
    ops: OpsRules = OpsRules()


class RulesAdapter:
    """Exposes loaded rules through the analytics RulesPort."""

    def __init__(self, rules: Rules) -> None:
        self._analytics = rules.analytics

    def get_funnel_steps(self) -> tuple[FunnelStepDefinition, ...]:
        return tuple(step.to_definition() for step in self._analytics.funnel_steps)

    def get_week_start(self) -> int:
        return WEEKDAYS.index(self._analytics.week_start)

    def get_minute_window(self) -> int:
        return self._analytics.minute_window_minutes

    def get_interaction_event_types(self) -> dict[str, str]:
        return self._analytics.interaction_event_types.model_dump()

    def get_timezone(self) -> str:
        return self._analytics.timezone

    def get_default_date_filter(self) -> str:
        return self._analytics.default_date_filter

    def get_default_granularity(self) -> str:
        return self._analytics.default_granularity
