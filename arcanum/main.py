"""
Arcanum GM Toolkit - Environment Simulation Entry Point

Runs the environment simulation for a tabletop session: an in-fiction clock
driven by real time, regional weather with mechanical effects, and
narrative events suggested to (or logged for) the GM.

This module provides the configuration, the interactive CLI and the main
entry point.
"""

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from arcanum import __version__
from arcanum.data_models import DiceRoller, EventMode, RegionType, parse_enum
from arcanum.environment import (
    EnvironmentOrchestrator,
    format_game_time,
    get_probability_table,
)
from arcanum.environment.clock import now_ms
from arcanum.game_state import (
    ClockRunner,
    InMemoryStateStore,
    JsonFileStateStore,
    StateStore,
    run_for,
)
from arcanum.observability import get_run_log


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class GameConfig:
    """Configuration for a simulation session."""

    data_dir: Path = field(default_factory=lambda: Path("data"))
    seed: Optional[int] = None
    ratio: Optional[float] = None   # Real minutes per in-fiction hour
    persist: bool = True

    # Runtime options
    run_seconds: Optional[float] = None
    verbose: bool = False

    def __post_init__(self):
        """Ensure paths are Path objects."""
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)


def create_store(config: GameConfig) -> StateStore:
    if config.persist:
        return JsonFileStateStore(config.data_dir)
    return InMemoryStateStore()


def create_orchestrator(config: Optional[GameConfig] = None) -> EnvironmentOrchestrator:
    """
    Build an orchestrator from configuration, restoring saved state.

    Args:
        config: Session configuration (defaults used if None)

    Returns:
        A loaded orchestrator with the clock caught up to now
    """
    config = config or GameConfig()
    dice = DiceRoller(seed=config.seed)
    if config.seed is not None:
        get_run_log().set_seed(config.seed)

    orchestrator = EnvironmentOrchestrator.load(create_store(config), dice=dice)
    if config.ratio is not None:
        orchestrator.set_ratio(config.ratio)
    orchestrator.resume(now_ms())
    return orchestrator


def format_status(status: dict[str, Any]) -> str:
    """
    Format an orchestrator status for display.

    Returns:
        Multi-line status string
    """
    lines = [
        "=" * 60,
        "ENVIRONMENT STATUS",
        "=" * 60,
        f"Time: {status['game_time']} ({status['time_of_day'].replace('_', ' ')})",
        f"Clock: {'running' if status['running'] else 'paused'}, "
        f"{status['ratio']:g} real min per game hour",
        f"Region: {status['region_label']}",
        f"Weather: {status['weather'].replace('_', ' ')} ({status['intensity']}), "
        f"{status['weather_remaining_minutes']} min left ({status['weather_progress']}%)",
        "",
        "Effects:",
    ]
    lines.extend(f"  - {effect}" for effect in status["effects"])
    lines.append("")
    lines.append(f"Event mode: {status['event_mode']}  Auto weather: {'on' if status['auto_weather'] else 'off'}")
    lines.append(f"Logged events: {status['event_count']}")
    if status["pending_event"]:
        lines.append(f"Suggested event: {status['pending_event']} (accept/dismiss)")
    lines.append("=" * 60)
    return "\n".join(lines)


# =============================================================================
# INTERACTIVE CLI
# =============================================================================

class EnvironmentCLI:
    """Interactive command-line interface for the environment simulation."""

    def __init__(
        self,
        orchestrator: EnvironmentOrchestrator,
        time_source: Callable[[], float] = now_ms,
    ):
        self.orchestrator = orchestrator
        self.time_source = time_source
        self.running = False
        self.commands = {
            "status": self.cmd_status,
            "time": self.cmd_time,
            "start": self.cmd_toggle,
            "pause": self.cmd_toggle,
            "reset": self.cmd_reset,
            "skip": self.cmd_skip,
            "ratio": self.cmd_ratio,
            "region": self.cmd_region,
            "name": self.cmd_name,
            "reroll": self.cmd_reroll,
            "mode": self.cmd_mode,
            "autoweather": self.cmd_autoweather,
            "event": self.cmd_event,
            "accept": self.cmd_accept,
            "dismiss": self.cmd_dismiss,
            "events": self.cmd_events,
            "odds": self.cmd_odds,
            "log": self.cmd_log,
            "help": self.cmd_help,
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
        }

    def run(self) -> None:
        """Run the interactive CLI loop."""
        self.running = True
        print("\n" + "=" * 60)
        print("ARCANUM ENVIRONMENT - Interactive Mode")
        print("=" * 60)
        print("Type 'help' for available commands, 'quit' to exit.\n")

        while self.running:
            try:
                prompt_time = format_game_time(self.orchestrator.clock.elapsed_game_minutes)
                user_input = input(f"[{prompt_time}]> ").strip()
                if not user_input:
                    continue

                self.process_command(user_input)

            except KeyboardInterrupt:
                print("\nInterrupted. Type 'quit' to exit.")
            except EOFError:
                self.running = False

        self.orchestrator.save()
        print("\nState saved. Until next session!")

    def process_command(self, user_input: str) -> None:
        """Process a user command."""
        parts = user_input.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        if cmd not in self.commands:
            print(f"Unknown command: {cmd}. Type 'help' for available commands.")
            return

        # Time keeps passing while the prompt waits
        result = self.orchestrator.resume(self.time_source())
        self._report(result)
        self.commands[cmd](args)

    def _report(self, result: dict[str, Any]) -> None:
        if result.get("weather_changed"):
            weather = self.orchestrator.state.weather
            print(f"* The weather changes: {weather}")
        if result.get("event"):
            print(f"* Event: {result['event'].description} - {result['event'].mechanical_effect}")
        if result.get("suggestion"):
            print(f"* Suggested event: {result['suggestion'].description} (accept/dismiss)")

    def cmd_help(self, args: str) -> None:
        """Show help information."""
        print("""
Available Commands:
  status          - Show clock, region, weather and effects
  time            - Show current in-fiction time
  start / pause   - Start or pause the clock
  reset           - Stop the clock and return to Day 1, 00:00
  skip MINUTES    - Fast-forward in-fiction time (e.g., 'skip 60')
  ratio X         - Set real minutes per in-fiction hour (min 0.1)
  region NAME     - Change region (forest, mountain, coast, desert,
                    city, swamp, underground, custom [name])
  name TEXT       - Name the custom region
  reroll          - Generate new weather now
  mode MODE       - Event mode: automatic, suggestion, manual
  autoweather on|off - Regenerate weather when it expires
  event           - Force an event for the current weather
  accept          - Log the suggested event
  dismiss         - Discard the suggested event
  events          - Show the event log
  odds            - Show the weather table for the current region
  log             - Show recent run log entries
  help            - Show this help
  quit/exit       - Save and exit
""")

    def cmd_status(self, args: str) -> None:
        """Show environment status."""
        print(format_status(self.orchestrator.status()))

    def cmd_time(self, args: str) -> None:
        """Show current time."""
        status = self.orchestrator.status()
        print(f"Time: {status['game_time']} ({status['time_of_day'].replace('_', ' ')})")

    def cmd_quit(self, args: str) -> None:
        """Quit the session."""
        self.running = False

    def cmd_toggle(self, args: str) -> None:
        """Start or pause the clock."""
        running = self.orchestrator.toggle_clock(self.time_source())
        print("Clock started." if running else "Clock paused.")

    def cmd_reset(self, args: str) -> None:
        """Reset the clock."""
        self.orchestrator.reset_clock()
        print("Clock reset to Day 1, 00:00.")

    def cmd_skip(self, args: str) -> None:
        """Skip forward in time."""
        try:
            minutes = float(args.strip())
        except ValueError:
            print("Usage: skip MINUTES (e.g., 'skip 60')")
            return
        self._report(self.orchestrator.skip(minutes))
        self.cmd_time("")

    def cmd_ratio(self, args: str) -> None:
        """Set the clock ratio."""
        if not args:
            print(f"Ratio: {self.orchestrator.clock.ratio:g} real min per game hour")
            return
        ratio = self.orchestrator.set_ratio(args.strip())
        print(f"Ratio set to {ratio:g} real min per game hour.")

    def cmd_region(self, args: str) -> None:
        """Change region."""
        parts = args.split(maxsplit=1)
        region = parse_enum(RegionType, parts[0], None) if parts else None
        if region is None:
            print("Usage: region NAME [custom name]")
            print("Regions:", ", ".join(r.value for r in RegionType))
            return
        custom_name = parts[1] if len(parts) > 1 else None
        state = self.orchestrator.change_region(region, custom_name)
        print(f"Now in {state.region_label}. Weather: {state.weather}")

    def cmd_name(self, args: str) -> None:
        """Name the custom region."""
        state = self.orchestrator.set_custom_region_name(args.strip())
        print(f"Custom region name: {state.custom_region_name or '(none)'}")

    def cmd_reroll(self, args: str) -> None:
        """Reroll the weather."""
        weather = self.orchestrator.reroll_weather()
        print(f"New weather: {weather}")
        for effect in weather.effects:
            print(f"  - {effect}")

    def cmd_mode(self, args: str) -> None:
        """Set the event mode."""
        mode = parse_enum(EventMode, args.strip(), None)
        if mode is None:
            print("Usage: mode automatic|suggestion|manual")
            return
        self.orchestrator.set_event_mode(mode)
        print(f"Event mode: {mode.value}")

    def cmd_autoweather(self, args: str) -> None:
        """Toggle automatic weather."""
        value = args.strip().lower()
        if value not in ("on", "off"):
            print("Usage: autoweather on|off")
            return
        enabled = self.orchestrator.set_auto_weather(value == "on")
        print(f"Auto weather: {'on' if enabled else 'off'}")

    def cmd_event(self, args: str) -> None:
        """Force an event."""
        event = self.orchestrator.force_event()
        if event is None:
            print("Nothing happens in this weather.")
            return
        print(f"Event: {event.description} - {event.mechanical_effect}")

    def cmd_accept(self, args: str) -> None:
        """Accept the suggested event."""
        event = self.orchestrator.accept_pending()
        if event is None:
            print("No event is waiting.")
            return
        print(f"Logged: {event.description}")

    def cmd_dismiss(self, args: str) -> None:
        """Dismiss the suggested event."""
        template = self.orchestrator.dismiss_pending()
        print("Event dismissed." if template else "No event is waiting.")

    def cmd_events(self, args: str) -> None:
        """Show the event log."""
        events = self.orchestrator.state.events
        if not events:
            print("No events yet.")
            return
        print("\nEvent Log:")
        print("-" * 40)
        for event in reversed(events):
            print(f"  [{format_game_time(event.timestamp)}] {event.description}")
            print(f"      {event.mechanical_effect}")
        print("-" * 40)

    def cmd_odds(self, args: str) -> None:
        """Show the weather probability table."""
        state = self.orchestrator.state
        print(f"\nWeather odds in {state.region_label}:")
        for weather_type, weight, percent in get_probability_table(state.region):
            print(f"  {weather_type.value.replace('_', ' '):<14} {percent:>3}%  (weight {weight})")

    def cmd_log(self, args: str) -> None:
        """Show the run log."""
        print(get_run_log().format_log(max_events=20))


# =============================================================================
# ARGUMENTS
# =============================================================================

def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Arcanum GM Toolkit - environment simulation for tabletop sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  arcanum                        # Run interactive mode
  arcanum --ratio 2              # 2 real minutes per in-fiction hour
  arcanum --run-seconds 30       # Tick the clock for 30 seconds, then show status
  arcanum --seed 42 --no-persist # Reproducible, throwaway session
        """
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data"),
        help="Directory for saved state (default: data)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for weather and event draws",
    )
    parser.add_argument(
        "--ratio",
        type=float,
        help="Real minutes per in-fiction hour (default: saved value or 1)",
    )
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Keep state in memory only",
    )
    parser.add_argument(
        "--run-seconds",
        type=float,
        help="Run the clock for N real seconds, print status and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def create_config_from_args(args: argparse.Namespace) -> GameConfig:
    """Create GameConfig from parsed arguments."""
    return GameConfig(
        data_dir=args.data_dir,
        seed=args.seed,
        ratio=args.ratio,
        persist=not args.no_persist,
        run_seconds=args.run_seconds,
        verbose=args.verbose,
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run_timed(
    orchestrator: EnvironmentOrchestrator,
    seconds: float,
    time_source: Callable[[], float] = now_ms,
) -> ClockRunner:
    """
    Run the clock for a number of real seconds, then save.

    A clock that was paused beforehand is paused again before saving, so
    the next session does not catch up on the time since this run.
    """
    was_running = orchestrator.clock.running
    if not was_running:
        orchestrator.toggle_clock(time_source())
    runner = asyncio.run(run_for(orchestrator, max(0.0, seconds), time_source=time_source))
    logger.info(f"Clock ran for {runner.tick_count} ticks")
    if not was_running and orchestrator.clock.running:
        orchestrator.toggle_clock(time_source())
    orchestrator.save()
    return runner


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for CLI usage."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    config = create_config_from_args(args)

    print("=" * 60)
    print(f"ARCANUM GM TOOLKIT v{__version__}")
    print("Environment simulation")
    print("=" * 60)

    orchestrator = create_orchestrator(config)

    if config.run_seconds is not None:
        run_timed(orchestrator, config.run_seconds)
        print(format_status(orchestrator.status()))
        print(json.dumps(get_run_log().get_summary(), indent=2, default=str))
        return

    cli = EnvironmentCLI(orchestrator)
    cli.run()


if __name__ == "__main__":
    main()
