"""Vibe score: energy and danceability blended into 0-100, plus jitter."""

import random
from typing import Optional

VIBE_JITTER = 10.0


def compute_vibe_score(
    energy: float,
    danceability: float,
    rng: Optional[random.Random] = None,
    jitter: float = VIBE_JITTER,
) -> float:
    """
    High energy + high danceability = high vibe.

    Jitter is uniform on [-jitter, jitter) so identical tracks do not sort
    identically; the result is clamped to [0, 100].
    """
    if rng is None:
        rng = random.Random()

    base = energy * 50.0 + danceability * 50.0
    noise = rng.random() * 2 * jitter - jitter
    return max(0.0, min(100.0, base + noise))
