"""
Environment simulation: virtual clock, regional weather, weather effects
and narrative events, coordinated by the EnvironmentOrchestrator.
"""

from arcanum.environment.clock import (
    VirtualClock,
    clamp_ratio,
    day_of,
    format_game_time,
    time_of_day,
)
from arcanum.environment.effects import WEATHER_EFFECTS, resolve_effects
from arcanum.environment.weather_types import (
    WEATHER_PROBABILITIES,
    WeatherGenerator,
    WeatherState,
    get_probability_table,
)
from arcanum.environment.environment_state import (
    MAX_EVENT_LOG,
    EnvironmentEvent,
    EnvironmentState,
)
from arcanum.environment.event_tables import (
    ENVIRONMENTAL_EVENTS,
    EventEngine,
    EventTemplate,
)
from arcanum.environment.orchestrator import EnvironmentOrchestrator

__all__ = [
    # Clock
    "VirtualClock",
    "clamp_ratio",
    "day_of",
    "format_game_time",
    "time_of_day",
    # Weather
    "WEATHER_EFFECTS",
    "resolve_effects",
    "WEATHER_PROBABILITIES",
    "WeatherGenerator",
    "WeatherState",
    "get_probability_table",
    # Events
    "MAX_EVENT_LOG",
    "EnvironmentEvent",
    "EnvironmentState",
    "ENVIRONMENTAL_EVENTS",
    "EventEngine",
    "EventTemplate",
    # Orchestration
    "EnvironmentOrchestrator",
]
