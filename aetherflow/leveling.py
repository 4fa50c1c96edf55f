"""
Leveling and energy bookkeeping for AetherFlow.
Handles XP from completed tasks, level derivation and energy bounds.
"""

from .scheduling.core.constants import MAX_ENERGY, XP_PER_LEVEL, XP_PER_ENERGY_POINT
from .scheduling.scoring.energy_scoring import pod_exit_energy


def level_for_xp(xp: int) -> int:
    """Flat curve: every XP_PER_LEVEL points is one level, starting at 1"""
    return max(xp, 0) // XP_PER_LEVEL + 1


def clamp_energy(energy: int) -> int:
    return max(0, min(energy, MAX_ENERGY))


def xp_for_completion(energy_cost: int) -> int:
    """Restorative tasks (meals) grant no XP"""
    return max(energy_cost, 0) * XP_PER_ENERGY_POINT


def award_completion(profile, energy_cost: int) -> tuple[int, int]:
    """
    Apply a task completion to the profile: grant XP, spend (or restore) energy
    and level up when enough XP has built up.

    Returns:
        (xp_gained, levels_gained)
    """
    xp_gained = xp_for_completion(energy_cost)
    old_level = profile.level or 1

    profile.xp = (profile.xp or 0) + xp_gained
    profile.level = level_for_xp(profile.xp)
    profile.energy = clamp_energy((profile.energy or 0) - energy_cost)

    return xp_gained, profile.level - old_level


def apply_pod_exit(profile, elapsed_minutes: int) -> int:
    """Grant regen pod energy and clear the pod. Returns the energy actually gained"""
    before = profile.energy or 0
    profile.energy = clamp_energy(before + pod_exit_energy(elapsed_minutes))
    profile.regen_pod_start_time = None
    profile.regen_pod_duration = None
    return profile.energy - before


def get_level_progress(profile) -> dict:
    xp_in_level = (profile.xp or 0) % XP_PER_LEVEL
    return {
        "current_level": profile.level,
        "current_xp": profile.xp,
        "xp_in_current_level": xp_in_level,
        "xp_for_next_level": XP_PER_LEVEL,
        "progress_percentage": round(xp_in_level / XP_PER_LEVEL * 100, 2),
    }
