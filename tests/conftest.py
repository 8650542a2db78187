"""
Pytest fixtures for the Arcanum environment simulation test suite.

Provides reusable fixtures for dice, stores, environment state and
orchestrators.
"""

import pytest

from arcanum.data_models import DiceRoller, EventMode, RegionType
from arcanum.environment.clock import VirtualClock
from arcanum.environment.environment_state import EnvironmentState
from arcanum.environment.orchestrator import EnvironmentOrchestrator
from arcanum.game_state.state_store import InMemoryStateStore
from arcanum.observability.run_log import reset_run_log
from tests.helpers import ScriptedSource, SweepSource, make_weather


# =============================================================================
# RUN LOG
# =============================================================================


@pytest.fixture(autouse=True)
def clean_run_log():
    """Every test starts with an empty run log."""
    reset_run_log()
    yield
    reset_run_log()


# =============================================================================
# DICE FIXTURES
# =============================================================================


@pytest.fixture
def seeded_dice():
    """Provide a seeded DiceRoller for reproducible tests."""
    return DiceRoller(seed=42)


@pytest.fixture
def low_dice():
    """Dice whose every draw is 0.0: first table entries, every chance passes."""
    return DiceRoller(rng=ScriptedSource(0.0))


@pytest.fixture
def sweep_dice():
    """Dice driven by an evenly sweeping uniform source."""
    return DiceRoller(rng=SweepSource())


# =============================================================================
# STATE FIXTURES
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryStateStore()


@pytest.fixture
def forest_state():
    """Forest in automatic mode, clear weather for 4 hours, stamped at minute 0."""
    return EnvironmentState(
        region=RegionType.FOREST,
        weather=make_weather(),
        event_mode=EventMode.AUTOMATIC,
        last_weather_change_timestamp=0,
    )


@pytest.fixture
def make_orchestrator(memory_store):
    """Factory for orchestrators backed by the in-memory store."""

    def _make(dice=None, state=None, clock=None, **kwargs):
        return EnvironmentOrchestrator(
            store=memory_store,
            clock=clock or VirtualClock(),
            state=state,
            dice=dice or DiceRoller(seed=7),
            **kwargs,
        )

    return _make
