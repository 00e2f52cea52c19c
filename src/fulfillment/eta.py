"""Delivery ETA estimation.

    travel   = distance / speed * 60
    estimate = prep + travel
    min_eta  = max(10, estimate - 5)
    max_eta  = estimate + 5 + buffer

Both bounds round half up to whole minutes.

Shop load and peak hours stretch the estimate: every pending order beyond the
shop's parallel capacity adds two minutes of prep, and peak hours multiply
travel time by 1.25. With the default arguments neither applies.
"""

import math
from dataclasses import dataclass

MIN_ETA_FLOOR_MINUTES = 10
ETA_SPREAD_MINUTES = 5
EXCESS_ORDER_PREP_MINUTES = 2
PEAK_HOUR_TRAVEL_MULTIPLIER = 1.25


def _round_half_up(minutes: float) -> int:
    return math.floor(minutes + 0.5)


@dataclass(frozen=True)
class EtaWindow:
    min_eta: int
    max_eta: int


def estimate_eta(
    prep_minutes: float,
    distance_km: float | None,
    speed_kmph: float,
    buffer_minutes: float,
    *,
    pending_orders: int = 0,
    max_parallel_orders: int | None = None,
    peak_hour: bool = False,
) -> EtaWindow | None:
    """Estimate a ``{min, max}`` delivery window in whole minutes.

    Returns ``None`` when the distance is unknown rather than guessing one.
    """
    if distance_km is None:
        return None

    if max_parallel_orders is not None:
        prep_minutes += max(0, pending_orders - max_parallel_orders) * EXCESS_ORDER_PREP_MINUTES

    travel_minutes = (distance_km / speed_kmph) * 60
    if peak_hour:
        travel_minutes *= PEAK_HOUR_TRAVEL_MULTIPLIER

    estimate = prep_minutes + travel_minutes
    return EtaWindow(
        min_eta=max(MIN_ETA_FLOOR_MINUTES, _round_half_up(estimate - ETA_SPREAD_MINUTES)),
        max_eta=_round_half_up(estimate + ETA_SPREAD_MINUTES + buffer_minutes),
    )


def eta_for_shop(profile, distance_km: float | None, pending_orders: int = 0, peak_hour: bool = False):
    """Apply a shop's delivery profile to ``estimate_eta``."""
    return estimate_eta(
        profile.base_prep_minutes,
        distance_km,
        profile.avg_rider_speed_kmph,
        profile.buffer_minutes,
        pending_orders=pending_orders,
        max_parallel_orders=profile.max_parallel_orders,
        peak_hour=peak_hour,
    )
