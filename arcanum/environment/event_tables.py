"""
Environment event tables and the event engine.

Each region lists groups of narrative events, every group triggered by a set
of weather conditions. The engine surfaces one event matching the current
region and weather, or nothing when no group matches.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import uuid

from arcanum.data_models import (
    DiceRoller,
    RegionType,
    WeatherType,
    get_dice_roller,
)
from arcanum.environment.environment_state import EnvironmentEvent

logger = logging.getLogger(__name__)

# Cadence policy applied by the orchestrator
EVENT_MIN_SPACING_MINUTES = 120
EVENT_CHANCE = 0.3
EVENT_CHECK_INTERVAL_MINUTES = 30


@dataclass(frozen=True)
class EventTemplate:
    """A narrative event before it happens."""

    description: str
    mechanical_effect: str


@dataclass(frozen=True)
class EventGroup:
    """Events that can occur while any of the trigger weathers holds."""

    weather: frozenset[WeatherType]
    events: tuple[EventTemplate, ...]

    def matches(self, weather_type: WeatherType) -> bool:
        return weather_type in self.weather


def _group(weather: list[WeatherType], *events: tuple[str, str]) -> EventGroup:
    return EventGroup(
        weather=frozenset(weather),
        events=tuple(EventTemplate(desc, effect) for desc, effect in events),
    )


W = WeatherType

ENVIRONMENTAL_EVENTS: dict[RegionType, tuple[EventGroup, ...]] = {
    RegionType.FOREST: (
        _group(
            [W.RAIN, W.STORM],
            ("A tree falls across the path", "DEX save DC 13 or 2d6 damage"),
            ("The river bursts its banks", "Difficult terrain, STR check DC 12 to cross"),
            ("The rain releases fungal spores", "CON save DC 11 or poisoned for 1 hour"),
        ),
        _group(
            [W.FOG],
            ("Strange sounds in the fog", "WIS save DC 12 or frightened for 1 minute"),
            ("Creatures lie in ambush", "Surprise if passive Perception < 14"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST],
            ("A herd of animals crosses the trail", "Path blocked for 10 minutes"),
            ("Rare herbs spotted", "Nature check DC 13: 1d4 medicinal herbs"),
        ),
    ),
    RegionType.MOUNTAIN: (
        _group(
            [W.STRONG_WIND, W.STORM],
            ("Avalanche risk!", "DEX save DC 15 or 4d6 damage and buried"),
            ("Lightning strikes nearby", "DEX save DC 12 or 2d8 lightning damage"),
        ),
        _group(
            [W.SNOW],
            ("The path has frozen over", "Acrobatics check DC 13 or fall, 1d6 damage"),
            ("Hungry wolves", "Encounter: 1d4+2 wolves"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST],
            ("A giant eagle watches from above", "Possible mount or combat"),
        ),
    ),
    RegionType.COAST: (
        _group(
            [W.STORM, W.STRONG_WIND],
            ("A giant wave!", "STR save DC 14 or dragged 9 m, 2d6 damage"),
            ("A shipwreck comes into view", "Possible exploration or rescue"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST, W.RAIN],
            ("The tide turns, revealing a cave", "Access to a hidden area for 2 hours"),
        ),
    ),
    RegionType.DESERT: (
        _group(
            [W.EXTREME_HEAT],
            ("Sandstorm!", "Visibility 0, CON save DC 14 each round or suffocate"),
            ("A deceptive mirage", "WIS save DC 13 or lose 1 hour of travel"),
        ),
        _group(
            [W.STRONG_WIND],
            ("Scorpions emerge from the sand", "Encounter: 2d4 giant scorpions"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST],
            ("Ruins partly uncovered by the sand", "Investigation check DC 12: treasure or trap"),
        ),
    ),
    RegionType.CITY: (
        _group(
            [W.RAIN, W.STORM],
            ("The lower streets flood", "Difficult terrain, shops closed"),
            ("Rats pour out of the sewers", "Risk of disease, CON save DC 10"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST],
            ("A street festival!", "+2 to social checks, prices 20% lower"),
            ("A brawl breaks out in the street", "Guards distracted, opportunity or danger"),
        ),
    ),
    RegionType.SWAMP: (
        _group(
            [W.RAIN, W.FOG],
            ("Swamp gas!", "CON save DC 13 or poisoned and confused for 1 hour"),
            ("A crocodile lies in ambush", "Surprise if passive Perception < 15"),
        ),
        _group(
            [W.CLEAR, W.OVERCAST, W.EXTREME_HEAT],
            ("A swarm of insects", "-1 to everything until a rest, risk of disease"),
        ),
    ),
    RegionType.UNDERGROUND: (
        _group(
            [W.OVERCAST, W.FOG, W.STRONG_WIND],
            ("Partial cave-in", "DEX save DC 14 or 3d6 damage, passage blocked"),
            ("Water seeps through the rock", "Slippery ground, torches may go out"),
            ("A giant web blocks the passage", "STR check DC 12 to break through or go around"),
        ),
    ),
    RegionType.CUSTOM: (
        _group(
            list(WeatherType),
            ("A mysterious occurrence", "The GM decides the effect"),
            ("A magical anomaly", "Saving throw DC 13 or random effect"),
        ),
    ),
}


def create_event(template: EventTemplate, timestamp: int) -> EnvironmentEvent:
    """Instantiate a template as a logged event at an in-fiction minute."""
    return EnvironmentEvent(
        id=str(uuid.uuid4()),
        description=template.description,
        mechanical_effect=template.mechanical_effect,
        timestamp=int(timestamp),
    )


class EventEngine:
    """
    Picks narrative events matching the current region and weather.

    The engine only selects; cadence and resolution mode are applied by the
    orchestrator.
    """

    def __init__(
        self,
        dice: Optional[DiceRoller] = None,
        tables: Optional[dict[RegionType, tuple[EventGroup, ...]]] = None,
    ):
        self.dice = dice or get_dice_roller()
        self.tables = tables if tables is not None else ENVIRONMENTAL_EVENTS

    def matching_groups(self, region: RegionType, weather_type: WeatherType) -> list[EventGroup]:
        return [g for g in self.tables.get(region, ()) if g.matches(weather_type) and g.events]

    def try_generate(
        self,
        region: RegionType,
        weather_type: WeatherType,
    ) -> Optional[EventTemplate]:
        """
        Select an event for the region and weather.

        A matching group is chosen uniformly, then an event within it.

        Returns:
            The chosen template, or None when no group matches
        """
        groups = self.matching_groups(region, weather_type)
        if not groups:
            logger.debug(f"No events for {region.value} in {weather_type.value}")
            return None

        group = self.dice.choice(groups, f"event group ({region.value}, {weather_type.value})")
        return self.dice.choice(group.events, "event within group")
