"""
Observability for the environment simulation.

Keeps a run log of randomness draws, weather changes, environment events and
clock advancement.
"""

from arcanum.observability.run_log import (
    RunLog,
    LogEvent,
    EventType,
    DrawEvent,
    WeatherChangeEvent,
    EnvironmentEventLogged,
    TimeStepEvent,
    get_run_log,
    reset_run_log,
)

__all__ = [
    "RunLog",
    "LogEvent",
    "EventType",
    "DrawEvent",
    "WeatherChangeEvent",
    "EnvironmentEventLogged",
    "TimeStepEvent",
    "get_run_log",
    "reset_run_log",
]
