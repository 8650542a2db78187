"""
Mechanical effects of weather.

Every (weather type, intensity) pair maps to an ordered list of effect
descriptions the GM applies at the table.
"""

from arcanum.data_models import Intensity, WeatherType

L = Intensity.LIGHT
M = Intensity.MODERATE
S = Intensity.SEVERE

WEATHER_EFFECTS: dict[WeatherType, dict[Intensity, tuple[str, ...]]] = {
    WeatherType.CLEAR: {
        L: ("Normal visibility",),
        M: ("Excellent visibility",),
        S: ("+1 to visual Perception",),
    },
    WeatherType.OVERCAST: {
        L: ("No effects",),
        M: ("Diffuse light",),
        S: ("-1 to visual Perception at range",),
    },
    WeatherType.RAIN: {
        L: ("Ground slightly slippery",),
        M: ("-1 Perception", "Slippery ground"),
        S: ("-2 Perception", "Very slippery ground", "Fires go out in 1d4 rounds"),
    },
    WeatherType.STORM: {
        L: ("-1 Perception", "Moderate wind"),
        M: ("-2 Perception", "Occasional lightning", "Disadvantage on ranged attacks"),
        S: (
            "-3 Perception",
            "Frequent lightning (1d20, natural 1 = struck)",
            "Communication at range impossible",
        ),
    },
    WeatherType.FOG: {
        L: ("Visibility reduced (60 m)",),
        M: ("Visibility heavily reduced (9 m)", "+2 Stealth"),
        S: ("Visibility near zero (3 m)", "+5 Stealth", "Disadvantage on ranged attacks"),
    },
    WeatherType.SNOW: {
        L: ("Ground slightly slippery", "Mild cold"),
        M: ("-1 Dexterity", "Difficult terrain", "CON save DC 10 each hour"),
        S: ("-2 Dexterity", "Very difficult terrain", "CON save DC 15 each hour or exhaustion"),
    },
    WeatherType.EXTREME_HEAT: {
        L: ("Mild discomfort",),
        M: ("CON save DC 10 each hour or exhaustion", "Water needs doubled"),
        S: ("CON save DC 15 each hour or exhaustion", "1d4 fire damage per hour without protection"),
    },
    WeatherType.STRONG_WIND: {
        L: ("Noticeable wind",),
        M: ("Disadvantage on ranged attacks", "Flames gutter"),
        S: (
            "Ranged attacks impossible",
            "Small creatures: STR save DC 12 or knocked prone",
            "Flames go out",
        ),
    },
}


def resolve_effects(weather_type: WeatherType, intensity: Intensity) -> list[str]:
    """
    Look up the mechanical effects for a weather condition.

    Args:
        weather_type: The weather condition
        intensity: Its severity tier

    Returns:
        A new ordered list of effect descriptions (never empty)
    """
    return list(WEATHER_EFFECTS[WeatherType(weather_type)][Intensity(intensity)])
