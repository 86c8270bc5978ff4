"""
Tempo matching with half-time / double-time equivalence.

A track at half or double the reference tempo mixes as if it were at the
reference tempo. Only the track's tempo is scaled, never the reference.
"""

from typing import Optional

MISSING_TEMPO_PENALTY = 100.0


def effective_tempo_distance(
    track_bpm: Optional[float],
    target_bpm: Optional[float],
    missing_penalty: float = MISSING_TEMPO_PENALTY,
) -> float:
    """
    Compute the effective BPM distance between a track and a reference tempo.

    Examples (target 140): 140 -> 0, 70 -> 0, 280 -> 0, 100 -> 40.

    Args:
        track_bpm: Track tempo (0/None = unknown)
        target_bpm: Reference tempo (0/None = unknown)
        missing_penalty: Distance returned when either tempo is unknown

    Returns:
        Non-negative distance in BPM
    """
    if not track_bpm or not target_bpm:
        return missing_penalty

    same = abs(track_bpm - target_bpm)
    half_time = abs(track_bpm * 2 - target_bpm)
    double_time = abs(track_bpm * 0.5 - target_bpm)

    return min(same, half_time, double_time)
