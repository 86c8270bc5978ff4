"""
Harmonic compatibility on the Camelot wheel.

Two policies over the same notation:
- is_compatible: strict yes/no predicate (same key, relative major/minor,
  or adjacent wheel position on the same letter)
- harmonic_score: weighted transition cost (lower = better), which also
  rewards +2 / +7 "energy boost" jumps while the set is building

Unknown or malformed codes never raise; they resolve to incompatible
(strict) or a neutral penalty (weighted).
"""

import logging
import re
from typing import Optional, Tuple

from ..models import UNKNOWN_CAMELOT

logger = logging.getLogger(__name__)

CAMELOT_PATTERN = re.compile(r"^(1[0-2]|[1-9])([AB])$")

PERFECT_MATCH = 0.0
ENERGY_BOOST = 0.0
ADJACENT = 5.0
MOOD_SHIFT = 10.0
UNKNOWN_PENALTY = 50.0
CLASH = 100.0

# Clockwise wheel steps rewarded during build phases
ENERGY_BOOST_STEPS = (2, 7)


def parse_camelot(code: Optional[str]) -> Optional[Tuple[int, str]]:
    """
    Split a Camelot code into wheel number and mode letter.

    Args:
        code: Camelot code such as "8A" or "12B"

    Returns:
        (number, letter) tuple, or None for unknown/malformed codes
    """
    if not isinstance(code, str) or not code or code == UNKNOWN_CAMELOT:
        return None

    match = CAMELOT_PATTERN.match(code)
    if match is None:
        logger.debug(f"Malformed Camelot code: {code!r}")
        return None

    return int(match.group(1)), match.group(2)


def _wheel_distance(num1: int, num2: int) -> int:
    """Shortest distance between two wheel numbers (0-6)."""
    dist = abs(num1 - num2) % 12
    return min(dist, 12 - dist)


def clockwise_distance(num_current: int, num_next: int) -> int:
    """Clockwise steps from current to next wheel number, in [0, 11]."""
    return (num_next - num_current) % 12


def is_compatible(key1: Optional[str], key2: Optional[str]) -> bool:
    """
    Check if two keys are harmonically compatible in Camelot notation.

    Compatible keys are:
    - Same key (e.g., 8A and 8A)
    - Same number, opposite mode (e.g., 8A and 8B)
    - Adjacent on the wheel, same mode (e.g., 8A and 9A, 12A and 1A)

    Args:
        key1: First Camelot key
        key2: Second Camelot key

    Returns:
        True if compatible; False otherwise or if either key is unknown
    """
    parsed1 = parse_camelot(key1)
    parsed2 = parse_camelot(key2)
    if parsed1 is None or parsed2 is None:
        return False

    num1, mode1 = parsed1
    num2, mode2 = parsed2

    if num1 == num2:
        # Exact match or relative major/minor
        return True

    return mode1 == mode2 and _wheel_distance(num1, num2) == 1


def harmonic_score(
    current: Optional[str],
    candidate: Optional[str],
    is_building_energy: bool,
) -> float:
    """
    Score a key transition (lower = better, 0-100).

    0   identical key, or +2/+7 clockwise on the same letter while building
    5   adjacent wheel number, same letter
    10  same number, different letter (mood shift)
    50  either key unknown
    100 clash

    Args:
        current: Camelot key of the playing track
        candidate: Camelot key of the candidate track
        is_building_energy: Whether the set is in a build phase

    Returns:
        Transition cost
    """
    parsed_current = parse_camelot(current)
    parsed_next = parse_camelot(candidate)
    if parsed_current is None or parsed_next is None:
        return UNKNOWN_PENALTY

    num_a, letter_a = parsed_current
    num_b, letter_b = parsed_next

    if parsed_current == parsed_next:
        return PERFECT_MATCH

    if num_a == num_b:
        return MOOD_SHIFT

    if letter_a != letter_b:
        return CLASH

    if _wheel_distance(num_a, num_b) == 1:
        return ADJACENT

    if is_building_energy and clockwise_distance(num_a, num_b) in ENERGY_BOOST_STEPS:
        return ENERGY_BOOST

    return CLASH
