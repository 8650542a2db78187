"""
Regional weather tables and weather generation.

Each region has a weighted table of weather conditions. Generating weather
draws a condition from the table, an intensity, and a duration of one to
eight in-fiction hours, then attaches the mechanical effects.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional
import logging
import math

from arcanum.data_models import (
    DiceRoller,
    Intensity,
    MINUTES_PER_HOUR,
    RegionType,
    WeatherType,
    get_dice_roller,
    parse_enum,
)
from arcanum.environment.effects import resolve_effects

logger = logging.getLogger(__name__)

MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 8

# Cumulative thresholds for intensity draws
LIGHT_THRESHOLD = 0.4
MODERATE_THRESHOLD = 0.8


# =============================================================================
# WEATHER STATE
# =============================================================================


@dataclass(frozen=True)
class WeatherState:
    """
    One weather instance. Replaced wholesale when weather changes.

    Attributes:
        type: The weather condition
        intensity: Its severity tier
        duration_game_minutes: Total lifetime (60-480, multiple of 60)
        elapsed_game_minutes: Minutes consumed since it began
        effects: Mechanical effects derived from (type, intensity)
    """

    type: WeatherType
    intensity: Intensity
    duration_game_minutes: int
    elapsed_game_minutes: int = 0
    effects: tuple[str, ...] = field(default_factory=tuple)

    @property
    def remaining_minutes(self) -> int:
        return max(0, self.duration_game_minutes - self.elapsed_game_minutes)

    @property
    def progress_percent(self) -> float:
        """Share of the duration consumed, 0-100."""
        if self.duration_game_minutes <= 0:
            return 0.0
        return min(100.0, self.elapsed_game_minutes / self.duration_game_minutes * 100)

    @property
    def is_expired(self) -> bool:
        return self.elapsed_game_minutes >= self.duration_game_minutes

    def with_elapsed(self, minutes: int) -> "WeatherState":
        return replace(self, elapsed_game_minutes=minutes)

    def __str__(self) -> str:
        label = self.type.value.replace("_", " ")
        return f"{label} ({self.intensity.value})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "intensity": self.intensity.value,
            "durationGameMinutes": self.duration_game_minutes,
            "elapsedGameMinutes": self.elapsed_game_minutes,
            "effects": list(self.effects),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeatherState":
        """
        Deserialize a weather record.

        Raises:
            ValueError: If the record has no recognizable weather type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Weather record must be an object, got {type(data).__name__}")

        weather_type = parse_enum(WeatherType, data.get("type"), None)
        if weather_type is None:
            raise ValueError(f"Unknown weather type: {data.get('type')!r}")
        intensity = parse_enum(Intensity, data.get("intensity"), Intensity.MODERATE)

        duration = _whole_minutes(data.get("durationGameMinutes"), MINUTES_PER_HOUR)
        duration = max(MINUTES_PER_HOUR, duration)
        elapsed = _whole_minutes(data.get("elapsedGameMinutes"), 0)

        effects = data.get("effects")
        if isinstance(effects, list) and effects and all(isinstance(e, str) for e in effects):
            effect_list = tuple(effects)
        else:
            effect_list = tuple(resolve_effects(weather_type, intensity))

        return cls(
            type=weather_type,
            intensity=intensity,
            duration_game_minutes=duration,
            elapsed_game_minutes=elapsed,
            effects=effect_list,
        )


def _whole_minutes(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return max(0, int(value))


# =============================================================================
# WEATHER TABLES - weights per region
# =============================================================================

WEATHER_PROBABILITIES: dict[RegionType, dict[WeatherType, int]] = {
    RegionType.FOREST: {
        WeatherType.CLEAR: 25,
        WeatherType.OVERCAST: 25,
        WeatherType.RAIN: 25,
        WeatherType.STORM: 10,
        WeatherType.FOG: 10,
        WeatherType.SNOW: 2,
        WeatherType.STRONG_WIND: 3,
    },
    RegionType.MOUNTAIN: {
        WeatherType.CLEAR: 15,
        WeatherType.OVERCAST: 20,
        WeatherType.RAIN: 15,
        WeatherType.STORM: 10,
        WeatherType.FOG: 10,
        WeatherType.SNOW: 15,
        WeatherType.STRONG_WIND: 15,
    },
    RegionType.COAST: {
        WeatherType.CLEAR: 30,
        WeatherType.OVERCAST: 20,
        WeatherType.RAIN: 20,
        WeatherType.STORM: 15,
        WeatherType.FOG: 5,
        WeatherType.STRONG_WIND: 10,
    },
    RegionType.DESERT: {
        WeatherType.CLEAR: 40,
        WeatherType.EXTREME_HEAT: 30,
        WeatherType.STRONG_WIND: 15,
        WeatherType.OVERCAST: 10,
        WeatherType.STORM: 5,
    },
    RegionType.CITY: {
        WeatherType.CLEAR: 30,
        WeatherType.OVERCAST: 30,
        WeatherType.RAIN: 20,
        WeatherType.STORM: 5,
        WeatherType.FOG: 10,
        WeatherType.SNOW: 3,
        WeatherType.STRONG_WIND: 2,
    },
    RegionType.SWAMP: {
        WeatherType.CLEAR: 10,
        WeatherType.OVERCAST: 20,
        WeatherType.RAIN: 30,
        WeatherType.FOG: 25,
        WeatherType.STORM: 10,
        WeatherType.EXTREME_HEAT: 5,
    },
    RegionType.UNDERGROUND: {
        WeatherType.OVERCAST: 70,
        WeatherType.FOG: 25,
        WeatherType.STRONG_WIND: 5,
    },
    RegionType.CUSTOM: {
        WeatherType.CLEAR: 25,
        WeatherType.OVERCAST: 20,
        WeatherType.RAIN: 20,
        WeatherType.STORM: 10,
        WeatherType.FOG: 10,
        WeatherType.SNOW: 5,
        WeatherType.EXTREME_HEAT: 5,
        WeatherType.STRONG_WIND: 5,
    },
}


def get_probability_table(region: RegionType) -> list[tuple[WeatherType, int, int]]:
    """
    Get a region's weather table with rounded percentages.

    Returns:
        Rows of (weather type, weight, percent) in table order
    """
    weights = WEATHER_PROBABILITIES[RegionType(region)]
    total = sum(weights.values())
    return [
        (weather_type, weight, round(weight / total * 100))
        for weather_type, weight in weights.items()
    ]


# =============================================================================
# DRAWS
# =============================================================================


def weighted_choice(
    weights: dict[Any, int],
    dice: DiceRoller,
    reason: str = "weighted choice",
) -> Any:
    """
    Pick a key with probability proportional to its weight.

    A uniform draw over the weight sum selects a cumulative bucket, walked
    in table order; the last key absorbs any rounding remainder.
    """
    if not weights:
        raise ValueError("Cannot choose from an empty weight table")

    entries = list(weights.items())
    total = sum(weight for _, weight in entries)
    r = dice.random(reason) * total
    for key, weight in entries:
        if r < weight:
            return key
        r -= weight
    return entries[-1][0]


def roll_intensity(dice: DiceRoller) -> Intensity:
    r = dice.random("weather intensity")
    if r < LIGHT_THRESHOLD:
        return Intensity.LIGHT
    if r < MODERATE_THRESHOLD:
        return Intensity.MODERATE
    return Intensity.SEVERE


def roll_duration(dice: DiceRoller) -> int:
    """Duration of one to eight whole in-fiction hours, in minutes."""
    span = MAX_DURATION_HOURS - MIN_DURATION_HOURS + 1
    hours = MIN_DURATION_HOURS + int(math.floor(dice.random("weather duration") * span))
    return min(hours, MAX_DURATION_HOURS) * MINUTES_PER_HOUR


class WeatherGenerator:
    """Generates weather for a region from its probability table."""

    def __init__(self, dice: Optional[DiceRoller] = None):
        self.dice = dice or get_dice_roller()

    def generate(self, region: RegionType) -> WeatherState:
        """
        Generate a fresh weather instance for a region.

        Draw order is fixed (type, intensity, duration) so a scripted
        randomness source produces predictable output.
        """
        region = RegionType(region)
        weather_type = weighted_choice(
            WEATHER_PROBABILITIES[region],
            self.dice,
            f"weather type ({region.value})",
        )
        intensity = roll_intensity(self.dice)
        duration = roll_duration(self.dice)

        weather = WeatherState(
            type=weather_type,
            intensity=intensity,
            duration_game_minutes=duration,
            elapsed_game_minutes=0,
            effects=tuple(resolve_effects(weather_type, intensity)),
        )
        logger.debug(f"Generated weather for {region.value}: {weather} for {duration} min")
        return weather
