"""
Persisted environment records.

EnvironmentState is the single aggregate the orchestrator owns. Both it and
the events it holds are immutable; every change produces a new instance.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional
import logging
import math

from arcanum.data_models import EventMode, RegionType, parse_enum
from arcanum.environment.weather_types import WeatherState

logger = logging.getLogger(__name__)

MAX_EVENT_LOG = 20


@dataclass(frozen=True)
class EnvironmentEvent:
    """A narrative event that happened at an in-fiction minute."""

    id: str
    description: str
    mechanical_effect: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "mechanicalEffect": self.mechanical_effect,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnvironmentEvent":
        """
        Raises:
            ValueError: If a required field is missing or has the wrong type
        """
        event_id = data.get("id")
        description = data.get("description")
        effect = data.get("mechanicalEffect", "")
        timestamp = data.get("timestamp", 0)
        if not isinstance(event_id, str) or not isinstance(description, str):
            raise ValueError("Event record needs string id and description")
        if not isinstance(effect, str):
            raise ValueError("Event mechanicalEffect must be a string")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("Event timestamp must be a number")
        return cls(
            id=event_id,
            description=description,
            mechanical_effect=effect,
            timestamp=int(timestamp),
        )


@dataclass(frozen=True)
class EnvironmentState:
    """
    The environment aggregate: region, weather, event log and settings.

    Attributes:
        region: Current region
        custom_region_name: Free-text name used when region is custom
        weather: Current weather instance
        events: Event log, oldest first, at most MAX_EVENT_LOG entries
        event_mode: How generated events reach the log
        auto_weather: Whether expired weather regenerates on its own
        last_weather_change_timestamp: In-fiction minute the current weather
            began, None until the first observation stamps it. Persisted as
            0 when unset, and a persisted 0 reads back as unset.
    """

    region: RegionType
    weather: WeatherState
    custom_region_name: str = ""
    events: tuple[EnvironmentEvent, ...] = field(default_factory=tuple)
    event_mode: EventMode = EventMode.SUGGESTION
    auto_weather: bool = True
    last_weather_change_timestamp: Optional[int] = None

    @property
    def last_event_timestamp(self) -> int:
        """Timestamp of the newest logged event, 0 when the log is empty."""
        return self.events[-1].timestamp if self.events else 0

    @property
    def region_label(self) -> str:
        if self.region == RegionType.CUSTOM and self.custom_region_name.strip():
            return self.custom_region_name.strip()
        return self.region.value.replace("_", " ").title()

    def append_event(self, event: EnvironmentEvent) -> "EnvironmentState":
        """Return a new state with the event appended and the log capped."""
        events = (self.events + (event,))[-MAX_EVENT_LOG:]
        return replace(self, events=events)

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region.value,
            "customRegionName": self.custom_region_name,
            "weather": self.weather.to_dict(),
            "events": [e.to_dict() for e in self.events],
            "eventMode": self.event_mode.value,
            "autoWeather": self.auto_weather,
            "lastWeatherChangeTimestamp": self.last_weather_change_timestamp or 0,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnvironmentState":
        """
        Deserialize, substituting defaults for missing or invalid fields.

        Malformed events are skipped and an over-long log keeps its newest
        entries.

        Raises:
            ValueError: If the weather record is missing or unusable
        """
        if not isinstance(data, dict):
            raise ValueError(f"Environment record must be an object, got {type(data).__name__}")
        if "weather" not in data:
            raise ValueError("Environment record has no weather")
        weather = WeatherState.from_dict(data["weather"])

        events: list[EnvironmentEvent] = []
        raw_events = data.get("events")
        if isinstance(raw_events, list):
            for raw in raw_events:
                try:
                    events.append(EnvironmentEvent.from_dict(raw))
                except (AttributeError, ValueError) as e:
                    logger.warning(f"Skipping malformed environment event: {e}")

        custom_name = data.get("customRegionName", "")
        auto_weather = data.get("autoWeather", True)

        return cls(
            region=parse_enum(RegionType, data.get("region"), RegionType.FOREST),
            custom_region_name=custom_name if isinstance(custom_name, str) else "",
            weather=weather,
            events=tuple(events[-MAX_EVENT_LOG:]),
            event_mode=parse_enum(EventMode, data.get("eventMode"), EventMode.SUGGESTION),
            auto_weather=auto_weather if isinstance(auto_weather, bool) else True,
            last_weather_change_timestamp=_optional_minute(
                data.get("lastWeatherChangeTimestamp")
            ),
        )


def _optional_minute(value: Any) -> Optional[int]:
    """A stored stamp of 0, or anything unusable, means the stamp is unset."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    minute = int(value)
    return minute if minute > 0 else None
