"""
Tests for regional weather tables and weather generation.
"""

from collections import Counter

import pytest

from arcanum.data_models import DiceRoller, Intensity, RegionType, WeatherType
from arcanum.environment.effects import resolve_effects
from arcanum.environment.weather_types import (
    WEATHER_PROBABILITIES,
    WeatherGenerator,
    WeatherState,
    get_probability_table,
    roll_duration,
    roll_intensity,
    weighted_choice,
)
from tests.helpers import ScriptedSource, SweepSource


class TestWeatherTables:
    """Every region has a usable table."""

    def test_every_region_has_a_table(self):
        assert set(WEATHER_PROBABILITIES) == set(RegionType)

    @pytest.mark.parametrize("region", list(RegionType))
    def test_weights_are_positive_integers(self, region):
        weights = WEATHER_PROBABILITIES[region]
        assert weights
        assert all(isinstance(w, int) and w > 0 for w in weights.values())

    def test_underground_has_no_sky_weather(self):
        assert set(WEATHER_PROBABILITIES[RegionType.UNDERGROUND]) == {
            WeatherType.OVERCAST,
            WeatherType.FOG,
            WeatherType.STRONG_WIND,
        }

    def test_probability_table_percentages(self):
        rows = get_probability_table(RegionType.DESERT)
        assert rows[0] == (WeatherType.CLEAR, 40, 40)
        assert [percent for _, _, percent in rows] == [40, 30, 15, 10, 5]


class TestWeightedChoice:
    """Cumulative bucket selection."""

    def test_bucket_edges(self):
        weights = {"a": 1, "b": 3}
        # total 4: [0, 1) -> a, [1, 4) -> b
        dice = DiceRoller(rng=ScriptedSource(0.0, 0.2499, 0.25, 0.9999))
        picks = [weighted_choice(weights, dice) for _ in range(4)]
        assert picks == ["a", "a", "b", "b"]

    def test_empty_table_raises(self):
        with pytest.raises(ValueError):
            weighted_choice({}, DiceRoller(seed=1))


class TestIntensityAndDuration:
    @pytest.mark.parametrize(
        "draw,expected",
        [
            (0.0, Intensity.LIGHT),
            (0.3999, Intensity.LIGHT),
            (0.4, Intensity.MODERATE),
            (0.7999, Intensity.MODERATE),
            (0.8, Intensity.SEVERE),
            (0.9999, Intensity.SEVERE),
        ],
    )
    def test_intensity_thresholds(self, draw, expected):
        assert roll_intensity(DiceRoller(rng=ScriptedSource(draw))) == expected

    @pytest.mark.parametrize(
        "draw,minutes",
        [(0.0, 60), (0.124, 60), (0.125, 120), (0.5, 300), (0.9999, 480)],
    )
    def test_duration_is_whole_hours(self, draw, minutes):
        assert roll_duration(DiceRoller(rng=ScriptedSource(draw))) == minutes


class TestWeatherGenerator:
    """Tests for WeatherGenerator.generate."""

    @pytest.mark.parametrize("region", list(RegionType))
    def test_type_always_in_region_table(self, region):
        generator = WeatherGenerator(DiceRoller(seed=2024))
        allowed = set(WEATHER_PROBABILITIES[region])
        for _ in range(300):
            weather = generator.generate(region)
            assert weather.type in allowed

    @pytest.mark.parametrize("region", list(RegionType))
    def test_generated_state_is_valid(self, region):
        weather = WeatherGenerator(DiceRoller(seed=11)).generate(region)
        assert weather.elapsed_game_minutes == 0
        assert 60 <= weather.duration_game_minutes <= 480
        assert weather.duration_game_minutes % 60 == 0
        assert list(weather.effects) == resolve_effects(weather.type, weather.intensity)

    def test_draw_order_is_type_intensity_duration(self):
        # 0.0 -> first table entry, 0.5 -> moderate, 0.99 -> 8 hours
        dice = DiceRoller(rng=ScriptedSource(0.0, 0.5, 0.99))
        weather = WeatherGenerator(dice).generate(RegionType.MOUNTAIN)
        assert weather.type == WeatherType.CLEAR
        assert weather.intensity == Intensity.MODERATE
        assert weather.duration_game_minutes == 480

    def test_desert_distribution_matches_weights(self):
        """10,000 generations with an evenly swept source follow the weights."""
        generator = WeatherGenerator(DiceRoller(rng=SweepSource(10000)))
        counts = Counter(generator.generate(RegionType.DESERT).type for _ in range(10000))

        expected = {
            WeatherType.CLEAR: 0.40,
            WeatherType.EXTREME_HEAT: 0.30,
            WeatherType.STRONG_WIND: 0.15,
            WeatherType.OVERCAST: 0.10,
            WeatherType.STORM: 0.05,
        }
        assert set(counts) == set(expected)
        for weather_type, share in expected.items():
            assert counts[weather_type] / 10000 == pytest.approx(share, abs=0.03)


class TestWeatherState:
    """Derived values and serialization of WeatherState."""

    def test_progress_and_remaining(self):
        weather = WeatherState(WeatherType.RAIN, Intensity.LIGHT, 240, 60)
        assert weather.remaining_minutes == 180
        assert weather.progress_percent == 25.0
        assert not weather.is_expired
        assert weather.with_elapsed(240).is_expired

    def test_to_dict_keys(self):
        weather = WeatherState(WeatherType.FOG, Intensity.SEVERE, 120, 30, ("a", "b"))
        assert weather.to_dict() == {
            "type": "fog",
            "intensity": "severe",
            "durationGameMinutes": 120,
            "elapsedGameMinutes": 30,
            "effects": ["a", "b"],
        }

    def test_from_dict_round_trip(self):
        weather = WeatherGenerator(DiceRoller(seed=3)).generate(RegionType.COAST)
        assert WeatherState.from_dict(weather.to_dict()) == weather

    def test_from_dict_legacy_values_and_missing_effects(self):
        weather = WeatherState.from_dict(
            {"type": "neve", "intensity": "intenso", "durationGameMinutes": 180}
        )
        assert weather.type == WeatherType.SNOW
        assert weather.intensity == Intensity.SEVERE
        assert weather.elapsed_game_minutes == 0
        assert list(weather.effects) == resolve_effects(WeatherType.SNOW, Intensity.SEVERE)

    def test_from_dict_unknown_type_raises(self):
        with pytest.raises(ValueError):
            WeatherState.from_dict({"type": "meteor shower"})
