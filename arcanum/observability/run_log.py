"""
Run Log system for environment simulation tracking.

Captures randomness draws, weather changes, environment events and clock
advancement so a session can be inspected or exported after the fact.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Callable
import json
import logging

logger = logging.getLogger(__name__)

# Oldest events are dropped past this many
MAX_RUN_LOG_EVENTS = 10000


class EventType(str, Enum):
    """Types of events that can be logged."""

    DRAW = "draw"  # Randomness draw
    WEATHER_CHANGE = "weather_change"  # Weather generated or replaced
    ENVIRONMENT_EVENT = "environment_event"  # Narrative event entered the log
    TIME_STEP = "time_step"  # Clock advancement
    CUSTOM = "custom"  # Custom event


@dataclass
class LogEvent:
    """Base class for all logged events."""

    # Subclasses set the correct event_type in __post_init__
    event_type: EventType = EventType.CUSTOM
    timestamp: datetime = field(default_factory=datetime.now)
    sequence_number: int = 0
    game_time: Optional[str] = None  # In-fiction time as string
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "sequence_number": self.sequence_number,
            "game_time": self.game_time,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEvent":
        """Create from dictionary."""
        return cls(
            event_type=EventType(data["event_type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            game_time=data.get("game_time"),
            context=data.get("context", {}),
        )

    def __str__(self) -> str:
        name = self.context.get("event_name", "custom")
        return f"[{self.sequence_number}] {name.upper()} {self.context}"


@dataclass
class DrawEvent(LogEvent):
    """A randomness draw."""

    kind: str = ""  # random, randint, choice, chance
    value: Any = None
    raw: float = 0.0
    reason: str = ""

    def __post_init__(self):
        self.event_type = EventType.DRAW

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "kind": self.kind,
                "value": self.value,
                "raw": self.raw,
                "reason": self.reason,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DrawEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            game_time=data.get("game_time"),
            context=data.get("context", {}),
            kind=data.get("kind", ""),
            value=data.get("value"),
            raw=data.get("raw", 0.0),
            reason=data.get("reason", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] DRAW {self.kind} = {self.value} ({self.reason})"


@dataclass
class WeatherChangeEvent(LogEvent):
    """Weather replaced for a region."""

    region: str = ""
    old_weather: Optional[str] = None
    new_weather: str = ""
    intensity: str = ""
    duration_minutes: int = 0
    trigger: str = ""  # region_change, expiry, reroll, default

    def __post_init__(self):
        self.event_type = EventType.WEATHER_CHANGE

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "region": self.region,
                "old_weather": self.old_weather,
                "new_weather": self.new_weather,
                "intensity": self.intensity,
                "duration_minutes": self.duration_minutes,
                "trigger": self.trigger,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeatherChangeEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            game_time=data.get("game_time"),
            context=data.get("context", {}),
            region=data.get("region", ""),
            old_weather=data.get("old_weather"),
            new_weather=data.get("new_weather", ""),
            intensity=data.get("intensity", ""),
            duration_minutes=data.get("duration_minutes", 0),
            trigger=data.get("trigger", ""),
        )

    def __str__(self) -> str:
        old = self.old_weather or "-"
        return (
            f"[{self.sequence_number}] WEATHER {self.region}: {old} -> "
            f"{self.new_weather} ({self.intensity}, {self.duration_minutes} min, {self.trigger})"
        )


@dataclass
class EnvironmentEventLogged(LogEvent):
    """A narrative environment event that entered the event log."""

    event_id: str = ""
    description: str = ""
    mechanical_effect: str = ""
    game_minute: int = 0
    source: str = ""  # automatic, accepted, forced

    def __post_init__(self):
        self.event_type = EventType.ENVIRONMENT_EVENT

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "event_id": self.event_id,
                "description": self.description,
                "mechanical_effect": self.mechanical_effect,
                "game_minute": self.game_minute,
                "source": self.source,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnvironmentEventLogged":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            game_time=data.get("game_time"),
            context=data.get("context", {}),
            event_id=data.get("event_id", ""),
            description=data.get("description", ""),
            mechanical_effect=data.get("mechanical_effect", ""),
            game_minute=data.get("game_minute", 0),
            source=data.get("source", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] EVENT {self.description}: {self.mechanical_effect} ({self.source})"


@dataclass
class TimeStepEvent(LogEvent):
    """A clock advancement event."""

    old_minute: int = 0
    new_minute: int = 0
    minutes_advanced: float = 0.0
    reason: str = ""

    def __post_init__(self):
        self.event_type = EventType.TIME_STEP

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "old_minute": self.old_minute,
                "new_minute": self.new_minute,
                "minutes_advanced": self.minutes_advanced,
                "reason": self.reason,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeStepEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            game_time=data.get("game_time"),
            context=data.get("context", {}),
            old_minute=data.get("old_minute", 0),
            new_minute=data.get("new_minute", 0),
            minutes_advanced=data.get("minutes_advanced", 0.0),
            reason=data.get("reason", ""),
        )

    def __str__(self) -> str:
        return (
            f"[{self.sequence_number}] TIME {self.old_minute} -> {self.new_minute} "
            f"(+{self.minutes_advanced:g} min, {self.reason})"
        )


_EVENT_CLASSES: dict[EventType, type[LogEvent]] = {
    EventType.DRAW: DrawEvent,
    EventType.WEATHER_CHANGE: WeatherChangeEvent,
    EventType.ENVIRONMENT_EVENT: EnvironmentEventLogged,
    EventType.TIME_STEP: TimeStepEvent,
}


class RunLog:
    """
    Central run log for all simulation events.

    Singleton pattern - use get_run_log() to access.
    """

    _instance: Optional["RunLog"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._events: deque[LogEvent] = deque(maxlen=MAX_RUN_LOG_EVENTS)
        self._sequence: int = 0
        self._seed: Optional[int] = None
        self._session_start: datetime = datetime.now()
        self._game_time_provider: Optional[Callable[[], str]] = None
        self._subscribers: list[Callable[[LogEvent], None]] = []
        self._paused: bool = False

    def reset(self) -> None:
        """Reset the log for a new session."""
        self._events.clear()
        self._sequence = 0
        self._seed = None
        self._session_start = datetime.now()
        self._game_time_provider = None
        self._paused = False
        logger.debug("RunLog reset")

    def set_seed(self, seed: int) -> None:
        """Record the RNG seed used for this session."""
        self._seed = seed
        logger.info(f"RunLog seed set: {seed}")

    def get_seed(self) -> Optional[int]:
        return self._seed

    def set_game_time_provider(self, provider: Optional[Callable[[], str]]) -> None:
        """
        Set a callback returning the current in-fiction time,
        e.g. "Day 2, 14:30".
        """
        self._game_time_provider = provider

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def is_paused(self) -> bool:
        return self._paused

    def subscribe(self, callback: Callable[[LogEvent], None]) -> None:
        """Subscribe to receive events as they are logged."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[LogEvent], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _get_game_time(self) -> Optional[str]:
        if self._game_time_provider:
            try:
                return self._game_time_provider()
            except Exception as e:
                logger.debug(f"Game time provider failed: {e}")
                return None
        return None

    def _log_event(self, event: LogEvent) -> None:
        if self._paused:
            return

        self._sequence += 1
        event.sequence_number = self._sequence
        event.game_time = self._get_game_time()
        self._events.append(event)

        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Subscriber error: {e}")

    def log_draw(
        self,
        kind: str,
        value: Any,
        raw: float,
        reason: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> DrawEvent:
        """Log a randomness draw."""
        event = DrawEvent(
            kind=kind,
            value=value,
            raw=raw,
            reason=reason,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_weather_change(
        self,
        region: str,
        old_weather: Optional[str],
        new_weather: str,
        intensity: str,
        duration_minutes: int,
        trigger: str,
        context: Optional[dict[str, Any]] = None,
    ) -> WeatherChangeEvent:
        """Log a weather replacement."""
        event = WeatherChangeEvent(
            region=region,
            old_weather=old_weather,
            new_weather=new_weather,
            intensity=intensity,
            duration_minutes=duration_minutes,
            trigger=trigger,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_environment_event(
        self,
        event_id: str,
        description: str,
        mechanical_effect: str,
        game_minute: int,
        source: str,
        context: Optional[dict[str, Any]] = None,
    ) -> EnvironmentEventLogged:
        """Log a narrative event entering the event log."""
        event = EnvironmentEventLogged(
            event_id=event_id,
            description=description,
            mechanical_effect=mechanical_effect,
            game_minute=game_minute,
            source=source,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_time_step(
        self,
        old_minute: int,
        new_minute: int,
        minutes_advanced: float = 0.0,
        reason: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> TimeStepEvent:
        """Log a clock advancement."""
        event = TimeStepEvent(
            old_minute=old_minute,
            new_minute=new_minute,
            minutes_advanced=minutes_advanced,
            reason=reason,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_custom(
        self,
        event_name: str,
        details: dict[str, Any],
    ) -> LogEvent:
        """Log a custom event."""
        event = LogEvent(
            event_type=EventType.CUSTOM,
            context={"event_name": event_name, **details},
        )
        self._log_event(event)
        return event

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        since_sequence: int = 0,
    ) -> list[LogEvent]:
        """
        Get logged events.

        Args:
            event_type: Filter by event type (None = all)
            since_sequence: Only events after this sequence number

        Returns:
            List of events
        """
        events = [e for e in self._events if e.sequence_number > since_sequence]
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events

    def get_draws(self) -> list[DrawEvent]:
        return [e for e in self._events if isinstance(e, DrawEvent)]

    def get_weather_changes(self) -> list[WeatherChangeEvent]:
        return [e for e in self._events if isinstance(e, WeatherChangeEvent)]

    def get_environment_events(self) -> list[EnvironmentEventLogged]:
        return [e for e in self._events if isinstance(e, EnvironmentEventLogged)]

    def get_time_steps(self) -> list[TimeStepEvent]:
        return [e for e in self._events if isinstance(e, TimeStepEvent)]

    def get_event_count(self) -> int:
        return len(self._events)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the run log."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "total_events": len(self._events),
            "draws": len(self.get_draws()),
            "weather_changes": len(self.get_weather_changes()),
            "environment_events": len(self.get_environment_events()),
            "time_steps": len(self.get_time_steps()),
            "last_sequence": self._sequence,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entire log to a dictionary."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "sequence": self._sequence,
            "events": [e.to_dict() for e in self._events],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def save(self, filepath: str) -> None:
        """Save the log to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"RunLog saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "RunLog":
        """Load a log from a file into the global instance."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        log = get_run_log()
        log.reset()
        log._session_start = datetime.fromisoformat(data["session_start"])
        log._seed = data.get("seed")
        log._sequence = data.get("sequence", 0)

        for event_data in data.get("events", []):
            event_type = EventType(event_data["event_type"])
            event_cls = _EVENT_CLASSES.get(event_type, LogEvent)
            log._events.append(event_cls.from_dict(event_data))

        logger.info(f"RunLog loaded from {filepath}: {len(log._events)} events")
        return log

    def format_log(
        self,
        event_types: Optional[list[EventType]] = None,
        max_events: Optional[int] = None,
    ) -> str:
        """
        Format the log as a human-readable string.

        Args:
            event_types: Filter by event types (None = all)
            max_events: Maximum number of (most recent) events to include
        """
        lines = [
            "=== Run Log ===",
            f"Session: {self._session_start.isoformat()}",
            f"Seed: {self._seed if self._seed is not None else 'not set'}",
            f"Total Events: {len(self._events)}",
            "",
        ]

        events = list(self._events)
        if event_types:
            events = [e for e in events if e.event_type in event_types]
        if max_events:
            events = events[-max_events:]

        for event in events:
            lines.append(str(event))

        return "\n".join(lines)


# Singleton access
_run_log: Optional[RunLog] = None


def get_run_log() -> RunLog:
    """Get the global RunLog instance."""
    global _run_log
    if _run_log is None:
        _run_log = RunLog()
    return _run_log


def reset_run_log() -> RunLog:
    """Reset and return the global RunLog instance."""
    log = get_run_log()
    log.reset()
    return log
