"""
Tests for shared data models: enums, enum parsing and the DiceRoller.
"""

import pytest

from arcanum.data_models import (
    MAX_DRAW_LOG,
    DiceRoller,
    EventMode,
    Intensity,
    RegionType,
    WeatherType,
    get_dice_roller,
    parse_enum,
)
from arcanum.observability.run_log import get_run_log
from tests.helpers import ScriptedSource


class TestParseEnum:
    """Resolving persisted and typed values to enum members."""

    def test_member_value(self):
        assert parse_enum(RegionType, "desert", None) == RegionType.DESERT

    def test_member_passthrough(self):
        assert parse_enum(WeatherType, WeatherType.FOG, None) == WeatherType.FOG

    def test_case_and_separators_are_normalized(self):
        assert parse_enum(WeatherType, "Extreme Heat", None) == WeatherType.EXTREME_HEAT
        assert parse_enum(WeatherType, "strong-wind", None) == WeatherType.STRONG_WIND

    def test_member_name(self):
        assert parse_enum(EventMode, "MANUAL", None) == EventMode.MANUAL

    def test_legacy_aliases(self):
        assert parse_enum(RegionType, "subterraneo", None) == RegionType.UNDERGROUND
        assert parse_enum(WeatherType, "calor_extremo", None) == WeatherType.EXTREME_HEAT
        assert parse_enum(Intensity, "intenso", None) == Intensity.SEVERE
        assert parse_enum(EventMode, "sugestao", None) == EventMode.SUGGESTION

    def test_unknown_returns_default(self):
        assert parse_enum(RegionType, "moon", RegionType.FOREST) == RegionType.FOREST
        assert parse_enum(RegionType, 42, None) is None
        assert parse_enum(RegionType, None, RegionType.CITY) == RegionType.CITY


class TestDiceRoller:
    """Tests for the DiceRoller randomness wrapper."""

    def test_seeded_rollers_agree(self):
        a = DiceRoller(seed=123)
        b = DiceRoller(seed=123)
        assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]

    def test_randint_bounds(self):
        low = DiceRoller(rng=ScriptedSource(0.0))
        high = DiceRoller(rng=ScriptedSource(0.9999))
        assert low.randint(1, 8) == 1
        assert high.randint(1, 8) == 8

    def test_randint_empty_range_raises(self):
        with pytest.raises(ValueError):
            DiceRoller(seed=1).randint(5, 4)

    def test_choice_maps_draw_to_index(self):
        dice = DiceRoller(rng=ScriptedSource(0.0, 0.5, 0.99))
        items = ["a", "b", "c", "d"]
        assert [dice.choice(items) for _ in range(3)] == ["a", "c", "d"]

    def test_choice_empty_raises(self):
        with pytest.raises(IndexError):
            DiceRoller(seed=1).choice([])

    def test_chance_is_strict(self):
        dice = DiceRoller(rng=ScriptedSource(0.3, 0.29))
        assert dice.chance(0.3) is False
        assert dice.chance(0.3) is True

    def test_each_draw_consumes_one_source_call(self):
        source = ScriptedSource(0.1, 0.2, 0.3, 0.4)
        dice = DiceRoller(rng=source)
        dice.random()
        dice.randint(1, 6)
        dice.choice([1, 2])
        dice.chance(0.5)
        assert source.calls == 4

    def test_out_of_range_source_is_clamped(self):
        dice = DiceRoller(rng=ScriptedSource(1.0, -0.5))
        assert dice.random() < 1.0
        assert dice.random() == 0.0

    def test_draw_log_records_reason(self):
        dice = DiceRoller(seed=5)
        dice.randint(1, 20, "initiative")
        log = dice.get_draw_log()
        assert len(log) == 1
        assert log[0].kind == "randint"
        assert log[0].reason == "initiative"
        dice.clear_draw_log()
        assert dice.get_draw_log() == []

    def test_draw_log_keeps_newest_draws(self):
        dice = DiceRoller(seed=5)
        for n in range(MAX_DRAW_LOG + 5):
            dice.random(f"draw {n}")
        log = dice.get_draw_log()
        assert len(log) == MAX_DRAW_LOG
        assert log[0].reason == "draw 5"
        assert log[-1].reason == f"draw {MAX_DRAW_LOG + 4}"

    def test_draws_reach_run_log(self):
        DiceRoller(seed=5).chance(0.5, "test draw")
        draws = get_run_log().get_draws()
        assert len(draws) == 1
        assert draws[0].reason == "test draw"

    def test_set_seed_records_seed(self):
        dice = DiceRoller()
        dice.set_seed(99)
        assert dice.seed == 99
        assert get_run_log().get_seed() == 99

    def test_default_roller_is_shared(self):
        assert get_dice_roller() is get_dice_roller()
