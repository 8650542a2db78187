"""
Test doubles shared across the suite.

Randomness sources only need a random() method; DiceRoller derives every
draw from exactly one call.
"""

from arcanum.data_models import Intensity, WeatherType
from arcanum.environment.effects import resolve_effects
from arcanum.environment.weather_types import WeatherState


class SweepSource:
    """Uniform source that sweeps [0, 1) evenly, one cell centre per call."""

    def __init__(self, steps: int = 10000):
        self.steps = steps
        self.index = 0

    def random(self) -> float:
        value = (self.index + 0.5) / self.steps
        self.index = (self.index + 1) % self.steps
        return value


class ScriptedSource:
    """Returns a fixed sequence of values, repeating from the start."""

    def __init__(self, *values: float):
        self.values = list(values) or [0.0]
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


class FakeHandle:
    def __init__(self, delay: float, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Records call_later requests; tests fire them by hand."""

    def __init__(self):
        self.scheduled: list[FakeHandle] = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(delay, lambda: callback(*args))
        self.scheduled.append(handle)
        return handle

    def pending(self) -> list[FakeHandle]:
        return [h for h in self.scheduled if not h.cancelled]

    def fire_next(self) -> None:
        handle = self.pending()[0]
        self.scheduled.remove(handle)
        handle.callback()


class FakeTime:
    """Epoch-millisecond source advancing a fixed step per call."""

    def __init__(self, start: float = 1_000_000.0, step: float = 1000.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def make_weather(
    weather_type: WeatherType = WeatherType.CLEAR,
    intensity: Intensity = Intensity.MODERATE,
    duration: int = 240,
    elapsed: int = 0,
) -> WeatherState:
    return WeatherState(
        type=weather_type,
        intensity=intensity,
        duration_game_minutes=duration,
        elapsed_game_minutes=elapsed,
        effects=tuple(resolve_effects(weather_type, intensity)),
    )
