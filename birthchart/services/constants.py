SIGN_NAMES = ["Aries","Taurus","Gemini","Cancer","Leo","Virgo","Libra","Scorpio","Sagittarius","Capricorn","Aquarius","Pisces"]

ELEMENT = {
  "Aries":"fire","Leo":"fire","Sagittarius":"fire",
  "Taurus":"earth","Virgo":"earth","Capricorn":"earth",
  "Gemini":"air","Libra":"air","Aquarius":"air",
  "Cancer":"water","Scorpio":"water","Pisces":"water",
}
MODALITY = {
  "Aries":"cardinal","Cancer":"cardinal","Libra":"cardinal","Capricorn":"cardinal",
  "Taurus":"fixed","Leo":"fixed","Scorpio":"fixed","Aquarius":"fixed",
  "Gemini":"mutable","Virgo":"mutable","Sagittarius":"mutable","Pisces":"mutable",
}


def norm360(x: float) -> float:
    """Normalise an angle into [0, 360)."""

    y = x % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if y >= 360.0 else y


def sign_index_from_lon(lon: float) -> int:
    return int(norm360(lon) // 30) % 12

def sign_name_from_lon(lon: float) -> str:
    return SIGN_NAMES[sign_index_from_lon(lon)]

def fmt_deg(lon: float) -> str:
    # 0..360 to "12°34′" within the sign
    within = norm360(lon) % 30.0
    deg = int(within)
    mins = int((within - deg) * 60)
    return f"{deg}°{mins:02d}′"
