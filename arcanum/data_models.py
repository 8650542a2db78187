"""
Shared data structures for the Arcanum GM toolkit.

Enums, time constants and the centralized randomness wrapper used by every
environment subsystem. Nothing in here owns simulation state.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence, TypeVar
import logging
import math
import random

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class RegionType(str, Enum):
    """Terrain/setting categories that select weather and event tables."""
    FOREST = "forest"
    MOUNTAIN = "mountain"
    COAST = "coast"
    DESERT = "desert"
    CITY = "city"
    SWAMP = "swamp"
    UNDERGROUND = "underground"
    CUSTOM = "custom"


class WeatherType(str, Enum):
    """Weather conditions a region can produce."""
    CLEAR = "clear"
    OVERCAST = "overcast"
    RAIN = "rain"
    STORM = "storm"
    FOG = "fog"
    SNOW = "snow"
    EXTREME_HEAT = "extreme_heat"
    STRONG_WIND = "strong_wind"


class Intensity(str, Enum):
    """Severity tier of the current weather."""
    LIGHT = "light"
    MODERATE = "moderate"
    SEVERE = "severe"


class EventMode(str, Enum):
    """How generated environment events reach the event log."""
    AUTOMATIC = "automatic"    # Appended immediately
    SUGGESTION = "suggestion"  # Held until accepted or dismissed
    MANUAL = "manual"          # Only forced events


class TimeOfDay(str, Enum):
    """Coarse time-of-day buckets shown next to the clock."""
    MORNING = "morning"        # 06:00 - 12:00
    AFTERNOON = "afternoon"    # 12:00 - 18:00
    DUSK = "dusk"              # 18:00 - 21:00
    DEEP_NIGHT = "deep_night"  # 21:00 - 06:00


# Identifiers written by the browser edition of the toolkit. Its saves still
# load, so the persisted Portuguese values map onto the enum members.
LEGACY_ALIASES: dict[type, dict[str, Enum]] = {
    RegionType: {
        "floresta": RegionType.FOREST,
        "montanha": RegionType.MOUNTAIN,
        "costa": RegionType.COAST,
        "deserto": RegionType.DESERT,
        "cidade": RegionType.CITY,
        "pantano": RegionType.SWAMP,
        "subterraneo": RegionType.UNDERGROUND,
        "personalizado": RegionType.CUSTOM,
    },
    WeatherType: {
        "sol": WeatherType.CLEAR,
        "nublado": WeatherType.OVERCAST,
        "chuva": WeatherType.RAIN,
        "tempestade": WeatherType.STORM,
        "neblina": WeatherType.FOG,
        "neve": WeatherType.SNOW,
        "calor_extremo": WeatherType.EXTREME_HEAT,
        "vento_forte": WeatherType.STRONG_WIND,
    },
    Intensity: {
        "leve": Intensity.LIGHT,
        "moderado": Intensity.MODERATE,
        "intenso": Intensity.SEVERE,
    },
    EventMode: {
        "automatico": EventMode.AUTOMATIC,
        "sugestao": EventMode.SUGGESTION,
    },
}


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """
    Resolve a persisted or user-typed value to an enum member.

    Tries the member value, then the member name, then the legacy aliases.
    Never raises; unknown input yields ``default``.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default

    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls(key)
    except ValueError:
        pass

    member = enum_cls.__members__.get(key.upper())
    if member is not None:
        return member

    alias = LEGACY_ALIASES.get(enum_cls, {}).get(key)
    if alias is not None:
        return alias  # type: ignore[return-value]
    return default


# =============================================================================
# TIME CONSTANTS
# =============================================================================

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
MINUTES_PER_DAY = MINUTES_PER_HOUR * HOURS_PER_DAY  # 1440
MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND


# =============================================================================
# RANDOMIZATION
# =============================================================================

# Draws kept per roller; the run log records every draw as well
MAX_DRAW_LOG = 1000


@dataclass
class DrawResult:
    """A single recorded randomness draw."""
    kind: str      # "random", "randint", "choice", "chance"
    value: Any
    raw: float     # The underlying uniform draw in [0, 1)
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.kind}: {self.value} (raw {self.raw:.4f}) {self.reason}".rstrip()


class DiceRoller:
    """
    Centralized randomization interface.

    All simulation randomness goes through an instance of this class so that
    a seed or a test double can control it. Every derived draw (integers,
    choices, chances) consumes exactly one ``random()`` call from the
    underlying source, which only needs to provide ``random() -> float``.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[Any] = None):
        """
        Args:
            seed: Seed for a private ``random.Random`` (ignored if rng is given)
            rng: Any object exposing ``random()`` returning floats in [0, 1)
        """
        self._seed = seed
        self._rng = rng if rng is not None else random.Random(seed)
        self._draw_log: deque[DrawResult] = deque(maxlen=MAX_DRAW_LOG)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def set_seed(self, seed: int) -> None:
        """Replace the source with a freshly seeded generator."""
        self._seed = seed
        self._rng = random.Random(seed)
        from arcanum.observability.run_log import get_run_log
        get_run_log().set_seed(seed)

    def _draw(self) -> float:
        value = float(self._rng.random())
        # Clamp misbehaving sources into [0, 1)
        if math.isnan(value) or value < 0.0:
            return 0.0
        if value >= 1.0:
            return math.nextafter(1.0, 0.0)
        return value

    def _record(self, kind: str, value: Any, raw: float, reason: str) -> None:
        self._draw_log.append(DrawResult(kind=kind, value=value, raw=raw, reason=reason))
        from arcanum.observability.run_log import get_run_log
        get_run_log().log_draw(kind=kind, value=value, raw=raw, reason=reason)

    def random(self, reason: str = "") -> float:
        """Uniform float in [0, 1)."""
        raw = self._draw()
        self._record("random", raw, raw, reason)
        return raw

    def randint(self, a: int, b: int, reason: str = "") -> int:
        """Uniform integer in [a, b], inclusive."""
        if b < a:
            raise ValueError(f"Empty range for randint: ({a}, {b})")
        raw = self._draw()
        value = a + int(raw * (b - a + 1))
        self._record("randint", value, raw, reason)
        return value

    def choice(self, seq: Sequence[Any], reason: str = "") -> Any:
        """
        Choose an element uniformly at random.

        Raises:
            IndexError: If the sequence is empty
        """
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        raw = self._draw()
        value = seq[int(raw * len(seq))]
        self._record("choice", value, raw, reason)
        return value

    def chance(self, probability: float, reason: str = "") -> bool:
        """Return True with the given probability."""
        raw = self._draw()
        value = raw < probability
        self._record("chance", value, raw, reason)
        return value

    def get_draw_log(self) -> list[DrawResult]:
        """Get the draws made through this roller."""
        return list(self._draw_log)

    def clear_draw_log(self) -> None:
        self._draw_log.clear()


_default_roller: Optional[DiceRoller] = None


def get_dice_roller() -> DiceRoller:
    """Get the process-wide default DiceRoller."""
    global _default_roller
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller
