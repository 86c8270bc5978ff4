"""
Energy Curves: Target energy for each position in a setlist.

The primary "wave" curve has two build phases around a peak and a reset:
  warmup 0.30 -> 0.60 | build 0.60 -> 0.90 | peak 0.90 -> 1.00
  reset 1.00 -> 0.60  | build 0.60 -> 0.95 | outro 0.95 -> 0.50

Build phases enable the harmonic energy-boost reward.
"""

import logging
from typing import Dict, Any, List, Tuple

from ..config import ConfigError

logger = logging.getLogger(__name__)

# (start, end, energy_from, energy_to, building)
WAVE_SEGMENTS: List[Tuple[float, float, float, float, bool]] = [
    (0.00, 0.20, 0.30, 0.60, False),  # Warmup
    (0.20, 0.45, 0.60, 0.90, True),  # Build 1
    (0.45, 0.55, 0.90, 1.00, False),  # Peak
    (0.55, 0.65, 1.00, 0.60, False),  # Reset / drop
    (0.65, 0.90, 0.60, 0.95, True),  # Build 2
    (0.90, 1.00, 0.95, 0.50, False),  # Outro
]

SINGLE_PEAK_AT = 0.73


def _progress(index: int, total: int) -> float:
    """Normalized position in the set (0.0 = first track)."""
    if total <= 0:
        return 0.0
    return index / total


def _wave_segment(progress: float) -> Tuple[float, float, float, float, bool]:
    for segment in WAVE_SEGMENTS:
        if progress < segment[1]:
            return segment
    # progress == 1.0 lands in the outro
    return WAVE_SEGMENTS[-1]


def target_energy(index: int, total: int) -> float:
    """
    Target energy of the wave curve for a set position.

    Args:
        index: 0-based position in the setlist
        total: Setlist length

    Returns:
        Target energy (0.0-1.0)
    """
    progress = _progress(index, total)
    start, end, energy_from, energy_to, _ = _wave_segment(progress)
    fraction = (progress - start) / (end - start)
    return energy_from + fraction * (energy_to - energy_from)


def is_building_phase(index: int, total: int) -> bool:
    """True when the position falls inside one of the two wave build phases."""
    return _wave_segment(_progress(index, total))[4]


def single_peak_energy(index: int, total: int) -> float:
    """
    Target energy of the single-peak curve.

    Quadratic rise 0.40 -> 0.95 up to 73% of the set, then linear fall to 0.60.
    """
    progress = _progress(index, total)
    if progress < SINGLE_PEAK_AT:
        rise = progress / SINGLE_PEAK_AT
        return 0.40 + 0.55 * rise * rise
    fall = (progress - SINGLE_PEAK_AT) / (1.0 - SINGLE_PEAK_AT)
    return 0.95 - 0.35 * fall


class EnergyCurve:
    """Target energy and build-phase lookup for set positions."""

    name = "base"

    def target(self, index: int, total: int) -> float:
        raise NotImplementedError

    def is_building(self, index: int, total: int) -> bool:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class WaveCurve(EnergyCurve):
    """Two-build wave: warmup, build, peak, reset, build, outro."""

    name = "wave"

    def target(self, index: int, total: int) -> float:
        return target_energy(index, total)

    def is_building(self, index: int, total: int) -> bool:
        return is_building_phase(index, total)


class SinglePeakCurve(EnergyCurve):
    """Single peak at ~73% of the set; the rise counts as building."""

    name = "single_peak"

    def target(self, index: int, total: int) -> float:
        return single_peak_energy(index, total)

    def is_building(self, index: int, total: int) -> bool:
        return _progress(index, total) < SINGLE_PEAK_AT


ENERGY_CURVES = {
    WaveCurve.name: WaveCurve,
    SinglePeakCurve.name: SinglePeakCurve,
}


def get_energy_curve(name: str = "wave") -> EnergyCurve:
    """
    Look up an energy curve by config name.

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        return ENERGY_CURVES[name]()
    except KeyError:
        raise ConfigError(f"Unknown energy curve: {name!r} (expected one of {sorted(ENERGY_CURVES)})")


def estimate_track_energy(track: Any) -> float:
    """
    Energy level of a track, clamped to [0.0, 1.0].

    Args:
        track: Track object or dict with an "energy" field

    Returns:
        Energy (0.0=quiet, 1.0=intense); 0.0 if missing
    """
    if isinstance(track, dict):
        energy = track.get("energy")
    else:
        energy = getattr(track, "energy", None)

    if energy is None:
        logger.debug(f"No energy data for track {getattr(track, 'id', None)}; using 0.0")
        return 0.0

    return max(0.0, min(1.0, float(energy)))


def compute_energy_distance(energy1: float, energy2: float) -> float:
    """
    Compute energy distance between two levels (0.0-1.0).

    Returns:
        Distance (0.0=same, 1.0=opposite)
    """
    return abs(energy1 - energy2)


def describe_curve(curve: EnergyCurve, total: int) -> List[Dict[str, Any]]:
    """
    Tabulate a curve over a set of the given length (for logs and reports).

    Returns:
        One dict per position: index, target_energy, building
    """
    return [
        {
            "index": idx,
            "target_energy": round(curve.target(idx, total), 3),
            "building": curve.is_building(idx, total),
        }
        for idx in range(total)
    ]
