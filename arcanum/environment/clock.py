"""
Virtual clock for in-fiction time.

Converts real elapsed time into game-minutes at a configurable ratio of real
minutes per in-fiction hour, and catches up on time that passed while
nothing was ticking.
"""

from dataclasses import dataclass
from typing import Any
import logging
import math
import time

from arcanum.data_models import (
    MINUTES_PER_DAY,
    MINUTES_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
    TimeOfDay,
)

logger = logging.getLogger(__name__)

DEFAULT_RATIO = 1.0     # 1 real minute = 1 in-fiction hour
MIN_RATIO = 0.1
TICK_INTERVAL_SECONDS = 1.0


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds."""
    return time.time() * MS_PER_SECOND


def clamp_ratio(value: Any) -> float:
    """
    Clamp user input for the clock ratio to a safe positive value.

    Non-numeric or NaN input falls back to the default ratio before the
    minimum is applied.
    """
    try:
        ratio = float(value)
    except (TypeError, ValueError):
        ratio = DEFAULT_RATIO
    if math.isnan(ratio) or math.isinf(ratio):
        ratio = DEFAULT_RATIO
    return max(MIN_RATIO, ratio)


def time_of_day(game_minutes: float) -> TimeOfDay:
    """Bucket an in-fiction minute into a time-of-day period."""
    hour = int((game_minutes % MINUTES_PER_DAY) // MINUTES_PER_HOUR)
    if 6 <= hour < 12:
        return TimeOfDay.MORNING
    elif 12 <= hour < 18:
        return TimeOfDay.AFTERNOON
    elif 18 <= hour < 21:
        return TimeOfDay.DUSK
    return TimeOfDay.DEEP_NIGHT


def day_of(game_minutes: float) -> int:
    """Zero-based day index of an in-fiction minute."""
    return int(math.floor(game_minutes / MINUTES_PER_DAY))


def format_game_time(game_minutes: float) -> str:
    """Format as "Day N, HH:MM" with days counted from 1."""
    total = int(math.floor(game_minutes))
    hours = (total % MINUTES_PER_DAY) // MINUTES_PER_HOUR
    minutes = total % MINUTES_PER_HOUR
    return f"Day {day_of(total) + 1}, {hours:02d}:{minutes:02d}"


@dataclass
class VirtualClock:
    """
    In-fiction clock driven by real time.

    Attributes:
        ratio: Real minutes per in-fiction hour
        running: Whether real time currently advances the clock
        elapsed_game_minutes: In-fiction minutes elapsed, never decreasing
        last_tick_timestamp: Epoch milliseconds of the last update (0 = never)
    """

    ratio: float = DEFAULT_RATIO
    running: bool = False
    elapsed_game_minutes: float = 0.0
    last_tick_timestamp: float = 0.0

    def __post_init__(self):
        self.ratio = clamp_ratio(self.ratio)

    @property
    def game_minutes_per_real_second(self) -> float:
        return MINUTES_PER_HOUR / (self.ratio * 60)

    @property
    def current_minute(self) -> int:
        return int(math.floor(self.elapsed_game_minutes))

    def _minutes_for_real_ms(self, real_ms: float) -> float:
        real_minutes = max(0.0, real_ms) / MS_PER_MINUTE
        return (real_minutes / self.ratio) * MINUTES_PER_HOUR

    def tick(self, now: float) -> float:
        """
        Advance by the real time elapsed since the last tick.

        Args:
            now: Current wall-clock time in epoch milliseconds

        Returns:
            Game-minutes gained (0 while paused)
        """
        if not self.running:
            return 0.0

        if self.last_tick_timestamp > 0:
            seconds = max(0.0, now - self.last_tick_timestamp) / MS_PER_SECOND
        else:
            seconds = TICK_INTERVAL_SECONDS

        gained = seconds * self.game_minutes_per_real_second
        self.elapsed_game_minutes += gained
        self.last_tick_timestamp = now
        return gained

    def resume(self, now: float) -> float:
        """
        Catch up on real time that passed without ticks (e.g. after a reload).

        Returns:
            Game-minutes gained
        """
        if not self.running:
            return 0.0

        gained = 0.0
        if self.last_tick_timestamp > 0:
            gained = self._minutes_for_real_ms(now - self.last_tick_timestamp)
            self.elapsed_game_minutes += gained
            if gained:
                logger.debug(f"Clock caught up {gained:.2f} game-minutes")
        self.last_tick_timestamp = now
        return gained

    def toggle(self, now: float) -> bool:
        """Start or pause the clock. Returns the new running flag."""
        self.running = not self.running
        self.last_tick_timestamp = now
        return self.running

    def reset(self) -> None:
        """Stop and zero the clock."""
        self.running = False
        self.elapsed_game_minutes = 0.0
        self.last_tick_timestamp = 0.0

    def skip(self, minutes: float) -> float:
        """Fast-forward regardless of running state. Returns minutes added."""
        added = max(0.0, float(minutes))
        self.elapsed_game_minutes += added
        return added

    def set_ratio(self, value: Any) -> float:
        self.ratio = clamp_ratio(value)
        return self.ratio

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted timer record."""
        return {
            "ratio": self.ratio,
            "running": self.running,
            "elapsedGameMinutes": self.elapsed_game_minutes,
            "lastTickTimestamp": self.last_tick_timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VirtualClock":
        """
        Deserialize, accepting the browser toolkit's key names as well.
        Missing or ill-typed fields fall back to defaults.
        """
        ratio = data.get("ratio", data.get("realMinutesPerGameHour", DEFAULT_RATIO))
        running = data.get("running", data.get("isRunning", False))
        elapsed = data.get("elapsedGameMinutes", data.get("gameMinutesElapsed", 0.0))
        last_tick = data.get("lastTickTimestamp", 0.0)

        return cls(
            ratio=clamp_ratio(ratio),
            running=running if isinstance(running, bool) else False,
            elapsed_game_minutes=_non_negative(elapsed),
            last_tick_timestamp=_non_negative(last_tick),
        )


def _non_negative(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return max(0.0, float(value))
