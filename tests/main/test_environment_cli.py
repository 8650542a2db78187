"""
Tests for configuration, argument parsing and the interactive CLI.
"""

from pathlib import Path

import pytest

from arcanum.data_models import DiceRoller, EventMode, RegionType
from arcanum.environment.orchestrator import EnvironmentOrchestrator
from arcanum.game_state.state_store import (
    ENVIRONMENT_STATE_KEY,
    TIMER_STATE_KEY,
    InMemoryStateStore,
    JsonFileStateStore,
)
from arcanum.main import (
    EnvironmentCLI,
    GameConfig,
    create_config_from_args,
    create_orchestrator,
    create_store,
    format_status,
    parse_arguments,
    run_timed,
)
from tests.helpers import FakeTime


@pytest.fixture
def cli(forest_state):
    orchestrator = EnvironmentOrchestrator(
        store=InMemoryStateStore(),
        state=forest_state,
        dice=DiceRoller(seed=21),
    )
    return EnvironmentCLI(orchestrator, time_source=FakeTime())


class TestConfiguration:
    """Arguments and GameConfig."""

    def test_defaults(self):
        config = create_config_from_args(parse_arguments([]))
        assert config.data_dir == Path("data")
        assert config.seed is None
        assert config.ratio is None
        assert config.persist is True
        assert config.run_seconds is None

    def test_flags(self):
        args = parse_arguments(
            ["--data-dir", "saves", "--seed", "7", "--ratio", "2.5", "--no-persist",
             "--run-seconds", "3", "-v"]
        )
        config = create_config_from_args(args)
        assert config.data_dir == Path("saves")
        assert config.seed == 7
        assert config.ratio == 2.5
        assert config.persist is False
        assert config.run_seconds == 3.0
        assert config.verbose is True

    def test_string_data_dir_becomes_path(self):
        assert GameConfig(data_dir="somewhere").data_dir == Path("somewhere")

    def test_store_selection(self, tmp_path):
        assert isinstance(create_store(GameConfig(persist=False)), InMemoryStateStore)
        assert isinstance(create_store(GameConfig(data_dir=tmp_path)), JsonFileStateStore)

    def test_create_orchestrator_applies_ratio(self):
        orch = create_orchestrator(GameConfig(persist=False, seed=5, ratio=0.01))
        assert orch.clock.ratio == 0.1

    def test_create_orchestrator_restores_saved_state(self, tmp_path):
        config = GameConfig(data_dir=tmp_path, seed=5)
        first = create_orchestrator(config)
        first.change_region(RegionType.CITY)

        second = create_orchestrator(config)
        assert second.current_region() == RegionType.CITY


class TestEnvironmentCLI:
    """Command dispatch."""

    def test_unknown_command(self, cli, capsys):
        cli.process_command("teleport")
        assert "Unknown command: teleport" in capsys.readouterr().out

    def test_status(self, cli, capsys):
        cli.process_command("status")
        out = capsys.readouterr().out
        assert "ENVIRONMENT STATUS" in out
        assert "Region: Forest" in out

    def test_skip_and_time(self, cli, capsys):
        cli.process_command("skip 90")
        assert "Day 1, 01:30" in capsys.readouterr().out
        assert cli.orchestrator.clock.current_minute == 90

    def test_skip_bad_argument(self, cli, capsys):
        cli.process_command("skip lots")
        assert "Usage: skip" in capsys.readouterr().out
        assert cli.orchestrator.clock.current_minute == 0

    def test_start_and_pause(self, cli, capsys):
        cli.process_command("start")
        assert cli.orchestrator.clock.running
        cli.process_command("pause")
        assert not cli.orchestrator.clock.running
        out = capsys.readouterr().out
        assert "Clock started." in out
        assert "Clock paused." in out

    def test_time_passes_between_commands(self, cli):
        cli.process_command("start")
        cli.process_command("time")
        # FakeTime advances one real second per call
        assert cli.orchestrator.clock.elapsed_game_minutes == pytest.approx(1.0)

    def test_region(self, cli, capsys):
        cli.process_command("region custom Misty Hollow")
        assert cli.orchestrator.current_region() == RegionType.CUSTOM
        assert "Now in Misty Hollow" in capsys.readouterr().out

    def test_region_unknown(self, cli, capsys):
        cli.process_command("region atlantis")
        assert "Usage: region" in capsys.readouterr().out
        assert cli.orchestrator.current_region() == RegionType.FOREST

    def test_mode(self, cli):
        cli.process_command("mode manual")
        assert cli.orchestrator.state.event_mode == EventMode.MANUAL

    def test_autoweather(self, cli, capsys):
        cli.process_command("autoweather off")
        assert cli.orchestrator.state.auto_weather is False
        cli.process_command("autoweather maybe")
        assert "Usage: autoweather" in capsys.readouterr().out

    def test_event_and_events(self, cli, capsys):
        cli.process_command("event")
        cli.process_command("events")
        out = capsys.readouterr().out
        assert "Event Log:" in out
        assert len(cli.orchestrator.state.events) == 1

    def test_accept_without_pending(self, cli, capsys):
        cli.process_command("accept")
        assert "No event is waiting." in capsys.readouterr().out

    def test_odds(self, cli, capsys):
        cli.process_command("region desert")
        cli.process_command("odds")
        out = capsys.readouterr().out
        assert "extreme heat" in out
        assert "40%" in out

    def test_ratio(self, cli, capsys):
        cli.process_command("ratio 3")
        assert cli.orchestrator.clock.ratio == 3.0
        assert "Ratio set to 3" in capsys.readouterr().out

    def test_reroll_prints_effects(self, cli, capsys):
        cli.process_command("reroll")
        out = capsys.readouterr().out
        for effect in cli.orchestrator.state.weather.effects:
            assert effect in out

    def test_quit_stops_loop(self, cli):
        cli.running = True
        cli.process_command("quit")
        assert cli.running is False

    def test_run_saves_on_exit(self, cli, monkeypatch):
        inputs = iter(["region mountain", "quit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(inputs))
        cli.run()
        saved = cli.orchestrator.store.load(ENVIRONMENT_STATE_KEY)
        assert saved["region"] == "mountain"

    def test_run_ends_on_eof(self, cli, monkeypatch):
        def raise_eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", raise_eof)
        cli.run()
        assert cli.running is False


class TestFormatStatus:
    def test_pending_event_shown(self, cli):
        status = cli.orchestrator.status()
        status["pending_event"] = "A herd of animals crosses the trail"
        assert "Suggested event: A herd of animals" in format_status(status)


class TestRunTimed:
    """Running the clock for a fixed number of seconds from the command line."""

    def test_paused_clock_is_paused_again_before_saving(self, cli):
        orchestrator = cli.orchestrator
        assert not orchestrator.clock.running
        run_timed(orchestrator, 0.01, time_source=FakeTime())
        assert orchestrator.clock.running is False
        assert orchestrator.store.load(TIMER_STATE_KEY)["running"] is False

    def test_running_clock_stays_running(self, cli):
        orchestrator = cli.orchestrator
        time_source = FakeTime()
        orchestrator.toggle_clock(time_source())
        run_timed(orchestrator, 0.01, time_source=time_source)
        assert orchestrator.clock.running is True
        assert orchestrator.store.load(TIMER_STATE_KEY)["running"] is True
