"""
Energy cost scoring for tasks.
"""

import math
import re
from ..core.constants import (
    MEAL_KEYWORDS, MEAL_ENERGY_GAIN, MIN_ENERGY_COST, ENERGY_PER_CHUNK, MINUTES_PER_CHUNK,
    CRITICAL_MULTIPLIER, BACKBURNER_MULTIPLIER, MAX_ENERGY, REGEN_POD_RATE_PER_MINUTE,
)

_MEAL_PATTERNS = [re.compile(rf"(?<!\w){re.escape(keyword)}") for keyword in MEAL_KEYWORDS]


def is_meal(task_name: str) -> bool:
    """True when a meal keyword starts a word in the task name."""
    lowered = task_name.lower()
    return any(pattern.search(lowered) for pattern in _MEAL_PATTERNS)


def energy_cost(duration_minutes: int, is_critical: bool = False, is_backburner: bool = False, meal: bool = False) -> int:
    """
    Signed energy delta for a task.

    Meals restore a fixed amount regardless of duration. Everything else costs
    5 per started 15 minutes, scaled up for critical and down for backburner
    tasks, never below 5. A zero-length task costs nothing.
    """
    if meal:
        return MEAL_ENERGY_GAIN
    if duration_minutes <= 0:
        return 0

    base = math.ceil(duration_minutes / MINUTES_PER_CHUNK) * ENERGY_PER_CHUNK
    if is_critical:
        base = _ceil_scaled(base, CRITICAL_MULTIPLIER)
    elif is_backburner:
        base = _ceil_scaled(base, BACKBURNER_MULTIPLIER)
    return max(base, MIN_ENERGY_COST)


def energy_cost_for_task(name: str, duration_minutes: int, is_critical: bool = False, is_backburner: bool = False) -> int:
    return energy_cost(duration_minutes, is_critical, is_backburner, meal=is_meal(name))


def pod_exit_energy(elapsed_minutes: int) -> int:
    """Energy regained after a regen pod session."""
    if elapsed_minutes <= 0:
        return 0
    return min(elapsed_minutes * REGEN_POD_RATE_PER_MINUTE, MAX_ENERGY)


def _ceil_scaled(value: int, multiplier: float) -> int:
    # integer ceil of value * multiplier
    numerator = round(multiplier * 100)
    return -(-value * numerator // 100)
