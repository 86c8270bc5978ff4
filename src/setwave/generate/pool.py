"""
Candidate Pool Selector: Reduce a track collection to a bounded pool.

Ranking favors tempo fit and the precomputed vibe score:
    score = vibe * 2 - effective_tempo_distance * 10 + jitter

Jitter (uniform on [0, magnitude)) keeps repeated runs over near-identical
tracks from collapsing onto the same order. It comes from an injected
random.Random so tests can seed it.
"""

import logging
import random
from typing import Iterable, List, Optional

from ..models import Track
from .tempo import effective_tempo_distance, MISSING_TEMPO_PENALTY

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 50
JITTER_MAGNITUDE = 10.0
VIBE_WEIGHT = 2.0
TEMPO_WEIGHT = 10.0


def unique_tracks(tracks: Iterable[Track]) -> List[Track]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for track in tracks:
        if track.id in seen:
            logger.debug(f"Duplicate track id {track.id}; skipping")
            continue
        seen.add(track.id)
        unique.append(track)
    return unique


def score_candidate(
    track: Track,
    target_bpm: float,
    jitter: float = 0.0,
    missing_tempo_penalty: float = MISSING_TEMPO_PENALTY,
) -> float:
    """
    Desirability of a track for the pool (higher = better).

    Args:
        track: Candidate track
        target_bpm: Requested set tempo
        jitter: Random tie-breaker already drawn by the caller
        missing_tempo_penalty: Tempo distance used for unknown BPM

    Returns:
        Composite score
    """
    tempo_distance = effective_tempo_distance(track.bpm, target_bpm, missing_tempo_penalty)
    return track.vibe * VIBE_WEIGHT - tempo_distance * TEMPO_WEIGHT + jitter


def select_pool(
    all_tracks: Iterable[Track],
    target_bpm: float,
    rng: Optional[random.Random] = None,
    max_pool_size: int = MAX_POOL_SIZE,
    jitter_magnitude: float = JITTER_MAGNITUDE,
    missing_tempo_penalty: float = MISSING_TEMPO_PENALTY,
) -> List[Track]:
    """
    Select the top-ranked candidates for sequencing.

    Args:
        all_tracks: Full track collection
        target_bpm: Requested set tempo
        rng: Randomness source for jitter (fresh unseeded Random if None)
        max_pool_size: Maximum pool length
        jitter_magnitude: Upper bound (exclusive) of the jitter draw
        missing_tempo_penalty: Tempo distance used for unknown BPM

    Returns:
        Up to max_pool_size unique tracks, best first
    """
    if rng is None:
        rng = random.Random()

    tracks = unique_tracks(all_tracks)
    if not tracks:
        logger.debug("Empty track collection; pool is empty")
        return []

    scored = []
    for track in tracks:
        jitter = rng.random() * jitter_magnitude
        score = score_candidate(track, target_bpm, jitter, missing_tempo_penalty)
        scored.append((score, track))

    # Sort by score (descending); stable for equal scores
    scored.sort(key=lambda x: x[0], reverse=True)
    pool = [track for _, track in scored[:max_pool_size]]

    in_range = sum(
        1 for t in tracks
        if effective_tempo_distance(t.bpm, target_bpm, missing_tempo_penalty) <= 10
    )
    logger.info(
        f"Pool: {len(pool)}/{len(tracks)} tracks "
        f"(target {target_bpm:.0f} BPM, {in_range} within ±10 effective BPM)"
    )

    return pool
