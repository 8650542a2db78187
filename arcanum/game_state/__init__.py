"""Persistence and clock driving."""

from arcanum.game_state.state_store import (
    ENVIRONMENT_STATE_KEY,
    TIMER_STATE_KEY,
    InMemoryStateStore,
    JsonFileStateStore,
    StateStore,
)
from arcanum.game_state.clock_runner import ClockRunner, run_for

__all__ = [
    "ENVIRONMENT_STATE_KEY",
    "TIMER_STATE_KEY",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "StateStore",
    "ClockRunner",
    "run_for",
]
