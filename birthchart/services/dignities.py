from typing import Dict, List, Mapping

RULERS = {
    "Aries": "Mars",
    "Taurus": "Venus",
    "Gemini": "Mercury",
    "Cancer": "Moon",
    "Leo": "Sun",
    "Virgo": "Mercury",
    "Libra": "Venus",
    "Scorpio": "Mars",
    "Sagittarius": "Jupiter",
    "Capricorn": "Saturn",
    "Aquarius": "Saturn",
    "Pisces": "Jupiter",
}
EXALT = {
    "Sun": "Aries",
    "Moon": "Taurus",
    "Mercury": "Virgo",
    "Venus": "Pisces",
    "Mars": "Capricorn",
    "Jupiter": "Cancer",
    "Saturn": "Libra",
}
OPPOSITE = {
    "Aries": "Libra", "Taurus": "Scorpio", "Gemini": "Sagittarius",
    "Cancer": "Capricorn", "Leo": "Aquarius", "Virgo": "Pisces",
    "Libra": "Aries", "Scorpio": "Taurus", "Sagittarius": "Gemini",
    "Capricorn": "Cancer", "Aquarius": "Leo", "Pisces": "Virgo",
}
FALL = {planet: OPPOSITE[sign] for planet, sign in EXALT.items()}


def dignity_for(planet: str, sign: str) -> str:
    if sign == EXALT.get(planet):
        return "exaltation"
    if FALL.get(planet) == sign:
        return "fall"
    if RULERS.get(sign) == planet:
        return "domicile"
    if RULERS.get(OPPOSITE.get(sign, "")) == planet:
        return "detriment"
    return "neutral"


def dignities(signs: Mapping[str, str]) -> List[Dict[str, str]]:
    """Essential dignity of each traditional planet, given ``{planet: sign}``."""

    return [
        {"planet": p, "dignity": dignity_for(p, s), "sign": s}
        for p, s in signs.items()
        if p in EXALT
    ]
