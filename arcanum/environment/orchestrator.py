"""
Environment Orchestrator.

Owns the virtual clock and the environment state, and reacts to changes of
the observed in-fiction minute: it keeps the weather's elapsed time in step
with the clock, regenerates expired weather, and runs the event cadence.

All state changes go through _update_state(), which computes the next state
from the current one and replaces it wholesale.
"""

from dataclasses import replace
from typing import Any, Callable, Optional
import logging

from arcanum.data_models import (
    DiceRoller,
    EventMode,
    RegionType,
    get_dice_roller,
    parse_enum,
)
from arcanum.environment.clock import (
    VirtualClock,
    day_of,
    format_game_time,
    time_of_day,
)
from arcanum.environment.environment_state import EnvironmentEvent, EnvironmentState
from arcanum.environment.event_tables import (
    EVENT_CHANCE,
    EVENT_CHECK_INTERVAL_MINUTES,
    EVENT_MIN_SPACING_MINUTES,
    EventEngine,
    EventTemplate,
    create_event,
)
from arcanum.environment.weather_types import WeatherGenerator, WeatherState
from arcanum.game_state.state_store import (
    ENVIRONMENT_STATE_KEY,
    TIMER_STATE_KEY,
    StateStore,
)
from arcanum.observability.run_log import get_run_log

logger = logging.getLogger(__name__)

DEFAULT_REGION = RegionType.FOREST


class EnvironmentOrchestrator:
    """
    Coordinates clock, weather and events for one campaign environment.

    Other components never mutate the clock or the state directly; they call
    the operations here, each of which runs observe_minute() afterwards.
    """

    def __init__(
        self,
        store: Optional[StateStore] = None,
        clock: Optional[VirtualClock] = None,
        state: Optional[EnvironmentState] = None,
        dice: Optional[DiceRoller] = None,
        weather_generator: Optional[WeatherGenerator] = None,
        event_engine: Optional[EventEngine] = None,
        autosave: bool = True,
    ):
        """
        Args:
            store: Where state is persisted (None disables persistence)
            clock: Restored clock, or None for a new stopped clock
            state: Restored environment, or None for the default region
            dice: Randomness source shared by weather and events
            weather_generator: Override for weather generation
            event_engine: Override for event selection
            autosave: Save after every change
        """
        self.store = store
        self.autosave = autosave
        self.dice = dice or get_dice_roller()
        self.weather_generator = weather_generator or WeatherGenerator(self.dice)
        self.event_engine = event_engine or EventEngine(self.dice)

        self._clock = clock or VirtualClock()
        if state is None:
            state = EnvironmentState(
                region=DEFAULT_REGION,
                weather=self.weather_generator.generate(DEFAULT_REGION),
            )
            logger.info(f"Starting new environment in {DEFAULT_REGION.value}: {state.weather}")
        self._state = state

        self._pending: Optional[EventTemplate] = None
        self._last_observed_minute: Optional[int] = None
        self._last_cadence_bucket: Optional[int] = None
        self._clock_callbacks: list[Callable[[bool], None]] = []

        get_run_log().set_game_time_provider(
            lambda: format_game_time(self._clock.elapsed_game_minutes)
        )

    @classmethod
    def load(
        cls,
        store: StateStore,
        dice: Optional[DiceRoller] = None,
        autosave: bool = True,
    ) -> "EnvironmentOrchestrator":
        """
        Restore an orchestrator from a store.

        Missing or corrupt records are replaced by defaults; loading never
        fails because of stored data.
        """
        clock = None
        raw_timer = store.load(TIMER_STATE_KEY)
        if raw_timer is not None:
            try:
                clock = VirtualClock.from_dict(raw_timer)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unusable timer state: {e}")
                get_run_log().log_custom("state_recovered", {"key": TIMER_STATE_KEY, "error": str(e)})

        state = None
        raw_env = store.load(ENVIRONMENT_STATE_KEY)
        if raw_env is not None:
            try:
                state = EnvironmentState.from_dict(raw_env)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unusable environment state: {e}")
                get_run_log().log_custom(
                    "state_recovered", {"key": ENVIRONMENT_STATE_KEY, "error": str(e)}
                )

        if clock is not None or state is not None:
            logger.info("Loaded environment from store")

        return cls(store=store, clock=clock, state=state, dice=dice, autosave=autosave)

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def save(self) -> None:
        """Write the timer and environment records to the store."""
        if self.store is None:
            return
        self.store.save(TIMER_STATE_KEY, self._clock.to_dict())
        self.store.save(ENVIRONMENT_STATE_KEY, self._state.to_dict())

    def _save_timer(self) -> None:
        if self.store is not None and self.autosave:
            self.store.save(TIMER_STATE_KEY, self._clock.to_dict())

    def _update_state(
        self,
        updater: Callable[[EnvironmentState], EnvironmentState],
        reason: str = "",
    ) -> EnvironmentState:
        """
        Replace the environment state with updater(current state).

        The next state is always computed from the value current at write
        time, so interleaved handlers cannot lose each other's updates.
        """
        current = self._state
        new_state = updater(current)
        if new_state is current:
            return current
        self._state = new_state
        if reason:
            logger.debug(f"Environment updated: {reason}")
        if self.store is not None and self.autosave:
            self.store.save(ENVIRONMENT_STATE_KEY, new_state.to_dict())
        return new_state

    # =========================================================================
    # READ-ONLY QUERIES
    # =========================================================================

    @property
    def state(self) -> EnvironmentState:
        return self._state

    @property
    def clock(self) -> VirtualClock:
        return self._clock

    @property
    def pending_event(self) -> Optional[EventTemplate]:
        """Event awaiting GM approval in suggestion mode."""
        return self._pending

    def current_region(self) -> RegionType:
        """Region that other toolkit pages theme their generation on."""
        return self._state.region

    def region_label(self) -> str:
        return self._state.region_label

    def status(self) -> dict[str, Any]:
        """Summary of clock and environment for display."""
        state = self._state
        weather = state.weather
        minutes = self._clock.elapsed_game_minutes
        return {
            "game_time": format_game_time(minutes),
            "game_minutes": self._clock.current_minute,
            "day": day_of(minutes) + 1,
            "time_of_day": time_of_day(minutes).value,
            "running": self._clock.running,
            "ratio": self._clock.ratio,
            "region": state.region.value,
            "region_label": state.region_label,
            "weather": weather.type.value,
            "intensity": weather.intensity.value,
            "weather_remaining_minutes": weather.remaining_minutes,
            "weather_progress": round(weather.progress_percent, 1),
            "effects": list(weather.effects),
            "event_mode": state.event_mode.value,
            "auto_weather": state.auto_weather,
            "pending_event": self._pending.description if self._pending else None,
            "event_count": len(state.events),
        }

    # =========================================================================
    # CLOCK OPERATIONS
    # =========================================================================

    def tick(self, now: float) -> dict[str, Any]:
        """Advance the clock by real time since the last tick."""
        self._clock.tick(now)
        self._save_timer()
        return self.observe_minute()

    def resume(self, now: float) -> dict[str, Any]:
        """Catch the clock up on real time that passed without ticks."""
        old_minute = self._clock.current_minute
        gained = self._clock.resume(now)
        if gained > 0:
            get_run_log().log_time_step(
                old_minute=old_minute,
                new_minute=self._clock.current_minute,
                minutes_advanced=gained,
                reason="catch-up",
            )
        self._save_timer()
        return self.observe_minute()

    def toggle_clock(self, now: float) -> bool:
        """Start or pause the clock. Returns the new running flag."""
        running = self._clock.toggle(now)
        logger.info(f"Clock {'started' if running else 'paused'} at {format_game_time(self._clock.elapsed_game_minutes)}")
        self._save_timer()
        self._notify_clock_change(running)
        self.observe_minute()
        return running

    def reset_clock(self) -> dict[str, Any]:
        """
        Stop the clock and return to minute zero.

        The weather-change stamp is unset so the next observation
        re-bootstraps it against the new clock.
        """
        old_minute = self._clock.current_minute
        self._clock.reset()
        self._last_observed_minute = None
        self._last_cadence_bucket = None
        logger.info("Clock reset")
        get_run_log().log_time_step(old_minute=old_minute, new_minute=0, reason="reset")
        self._save_timer()
        self._notify_clock_change(False)
        self._update_state(
            lambda s: replace(s, last_weather_change_timestamp=None),
            "weather stamp cleared by clock reset",
        )
        return self.observe_minute()

    def register_clock_callback(self, callback: Callable[[bool], None]) -> None:
        """Register callback for the clock starting or stopping."""
        self._clock_callbacks.append(callback)

    def unregister_clock_callback(self, callback: Callable[[bool], None]) -> None:
        if callback in self._clock_callbacks:
            self._clock_callbacks.remove(callback)

    def _notify_clock_change(self, running: bool) -> None:
        for callback in list(self._clock_callbacks):
            callback(running)

    def skip(self, minutes: float) -> dict[str, Any]:
        """Fast-forward the clock, running or not."""
        old_minute = self._clock.current_minute
        added = self._clock.skip(minutes)
        if added > 0:
            get_run_log().log_time_step(
                old_minute=old_minute,
                new_minute=self._clock.current_minute,
                minutes_advanced=added,
                reason="skip",
            )
            logger.info(f"Skipped {added:g} game-minutes to {format_game_time(self._clock.elapsed_game_minutes)}")
        self._save_timer()
        return self.observe_minute()

    def set_ratio(self, value: Any) -> float:
        """Set real minutes per in-fiction hour (clamped). Returns the ratio applied."""
        ratio = self._clock.set_ratio(value)
        logger.info(f"Clock ratio set to {ratio:g} real min per game hour")
        self._save_timer()
        self.observe_minute()
        return ratio

    # =========================================================================
    # MINUTE OBSERVATION
    # =========================================================================

    def observe_minute(self) -> dict[str, Any]:
        """
        React to the clock's current whole minute.

        Nothing happens if the minute has not changed since the last call.
        Otherwise the weather's elapsed time is recomputed, expired weather
        is regenerated when auto weather is on, and the event cadence runs
        once per check interval.

        Returns:
            Dictionary with minute, changed, weather_changed, event and
            suggestion keys
        """
        minute = self._clock.current_minute
        result: dict[str, Any] = {
            "minute": minute,
            "changed": False,
            "weather_changed": False,
            "event": None,
            "suggestion": None,
        }
        if minute == self._last_observed_minute:
            return result
        self._last_observed_minute = minute
        result["changed"] = True

        self._recompute_weather_elapsed(minute)

        if self._state.auto_weather and self._state.weather.is_expired:
            self._replace_weather(minute, trigger="expiry")
            result["weather_changed"] = True

        bucket = minute // EVENT_CHECK_INTERVAL_MINUTES
        if bucket != self._last_cadence_bucket:
            self._last_cadence_bucket = bucket
            self._run_event_cadence(minute, result)

        return result

    def _recompute_weather_elapsed(self, minute: int) -> None:
        def recompute(state: EnvironmentState) -> EnvironmentState:
            if state.last_weather_change_timestamp is None:
                return replace(state, last_weather_change_timestamp=minute)
            elapsed = max(0, minute - state.last_weather_change_timestamp)
            if elapsed == state.weather.elapsed_game_minutes:
                return state
            return replace(state, weather=state.weather.with_elapsed(elapsed))

        self._update_state(recompute, f"weather elapsed at minute {minute}")

    def _replace_weather(self, minute: int, trigger: str) -> WeatherState:
        old_weather = self._state.weather
        new_weather = self.weather_generator.generate(self._state.region)
        self._update_state(
            lambda s: replace(s, weather=new_weather, last_weather_change_timestamp=minute),
            f"weather {trigger}",
        )
        logger.info(
            f"Weather changed in {self._state.region_label}: {old_weather} -> {new_weather} ({trigger})"
        )
        get_run_log().log_weather_change(
            region=self._state.region.value,
            old_weather=old_weather.type.value,
            new_weather=new_weather.type.value,
            intensity=new_weather.intensity.value,
            duration_minutes=new_weather.duration_game_minutes,
            trigger=trigger,
        )
        return new_weather

    def _run_event_cadence(self, minute: int, result: dict[str, Any]) -> None:
        state = self._state
        if not self._clock.running or state.event_mode == EventMode.MANUAL:
            return
        if state.event_mode == EventMode.SUGGESTION and self._pending is not None:
            return
        if minute - state.last_event_timestamp < EVENT_MIN_SPACING_MINUTES:
            return
        if not self.dice.chance(EVENT_CHANCE, "environment event check"):
            return

        template = self.event_engine.try_generate(state.region, state.weather.type)
        if template is None:
            return

        if state.event_mode == EventMode.AUTOMATIC:
            result["event"] = self._log_event(template, minute, source="automatic")
        else:
            self._pending = template
            result["suggestion"] = template
            logger.info(f"Event suggested: {template.description}")

    def _log_event(self, template: EventTemplate, minute: int, source: str) -> EnvironmentEvent:
        event = create_event(template, minute)
        self._update_state(lambda s: s.append_event(event), f"event logged ({source})")
        logger.info(f"Environment event at {format_game_time(minute)}: {event.description}")
        get_run_log().log_environment_event(
            event_id=event.id,
            description=event.description,
            mechanical_effect=event.mechanical_effect,
            game_minute=minute,
            source=source,
        )
        return event

    # =========================================================================
    # REGION AND SETTINGS
    # =========================================================================

    def change_region(self, region: Any, custom_name: Optional[str] = None) -> EnvironmentState:
        """
        Move to another region.

        The weather is regenerated for the new region, the event log is
        cleared and any pending suggestion is dropped.
        """
        new_region = parse_enum(RegionType, region, None)
        if new_region is None:
            raise ValueError(f"Unknown region: {region!r}")

        minute = self._clock.current_minute
        old_weather = self._state.weather
        new_weather = self.weather_generator.generate(new_region)
        self._pending = None

        def move(state: EnvironmentState) -> EnvironmentState:
            return replace(
                state,
                region=new_region,
                custom_region_name=custom_name if custom_name is not None else state.custom_region_name,
                weather=new_weather,
                events=(),
                last_weather_change_timestamp=minute,
            )

        state = self._update_state(move, f"region changed to {new_region.value}")
        logger.info(f"Region changed to {state.region_label}: {new_weather}")
        get_run_log().log_weather_change(
            region=new_region.value,
            old_weather=old_weather.type.value,
            new_weather=new_weather.type.value,
            intensity=new_weather.intensity.value,
            duration_minutes=new_weather.duration_game_minutes,
            trigger="region_change",
        )
        return state

    def set_custom_region_name(self, name: str) -> EnvironmentState:
        return self._update_state(
            lambda s: replace(s, custom_region_name=str(name)),
            "custom region name",
        )

    def reroll_weather(self) -> WeatherState:
        """Regenerate weather now, whether or not auto weather is on."""
        return self._replace_weather(self._clock.current_minute, trigger="reroll")

    def set_event_mode(self, mode: Any) -> EventMode:
        new_mode = parse_enum(EventMode, mode, None)
        if new_mode is None:
            raise ValueError(f"Unknown event mode: {mode!r}")
        if new_mode != EventMode.SUGGESTION and self._pending is not None:
            logger.debug("Dropping pending suggestion on mode change")
            self._pending = None
        old_mode = self._state.event_mode
        self._update_state(lambda s: replace(s, event_mode=new_mode), f"event mode {new_mode.value}")
        if new_mode != old_mode:
            get_run_log().log_custom(
                "event_mode_changed", {"old_mode": old_mode.value, "new_mode": new_mode.value}
            )
        return new_mode

    def set_auto_weather(self, enabled: bool) -> bool:
        self._update_state(
            lambda s: replace(s, auto_weather=bool(enabled)),
            f"auto weather {'on' if enabled else 'off'}",
        )
        return self._state.auto_weather

    # =========================================================================
    # EVENT RESOLUTION
    # =========================================================================

    def accept_pending(self) -> Optional[EnvironmentEvent]:
        """Log the pending suggestion. Returns None if nothing is pending."""
        if self._pending is None:
            return None
        template, self._pending = self._pending, None
        return self._log_event(template, self._clock.current_minute, source="accepted")

    def dismiss_pending(self) -> Optional[EventTemplate]:
        """Discard the pending suggestion without logging it."""
        template, self._pending = self._pending, None
        if template is not None:
            logger.info(f"Event dismissed: {template.description}")
            get_run_log().log_custom("event_dismissed", {"description": template.description})
        return template

    def force_event(self) -> Optional[EnvironmentEvent]:
        """
        Log an event immediately, ignoring spacing, chance and event mode.

        Returns:
            The logged event, or None if nothing matches the current weather
        """
        state = self._state
        template = self.event_engine.try_generate(state.region, state.weather.type)
        if template is None:
            logger.info(f"No event available for {state.region_label} in {state.weather}")
            return None
        return self._log_event(template, self._clock.current_minute, source="forced")
