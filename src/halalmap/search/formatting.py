from __future__ import annotations

import math


def format_distance(meters: float) -> str:
    """Human-readable distance: "1.2 km" from 1000 m up, whole meters below ("850 m").

    Both branches round half up: 850.5 m is "851 m", 1250 m is "1.3 km".
    """
    if meters >= 1000:
        tenths = math.floor(meters / 100 + 0.5)
        return f"{tenths / 10:.1f} km"
    return f"{int(math.floor(meters + 0.5))} m"
