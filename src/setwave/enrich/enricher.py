"""
Feature Enricher: Turn raw analyzer output into sequencing-ready tracks.

The analyzer itself is an injected callable (audio decoding and MIR are out
of scope here). It receives a Track and returns a dict of raw features:
    bpm, energy, danceability, valence,
    and either note + scale ("A", "minor") or key + mode (9, 0)

Enrichment is cache-checked and idempotent. When the analyzer fails, the
track comes back unchanged, keeping its sentinel fields.
"""

import logging
import random
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from ..generate.energy import estimate_track_energy
from ..config import Config
from ..models import Track, to_int
from .cache import FeatureCache
from .key import note_to_camelot, pitch_class_to_camelot
from .vibe import compute_vibe_score, VIBE_JITTER

logger = logging.getLogger(__name__)

CONCURRENCY_LIMIT = 8

Analyzer = Callable[[Track], Optional[Dict[str, Any]]]
ProgressCallback = Callable[[int, int, Track], None]


class FeatureEnricher:
    """Cache-checked feature enrichment with bounded parallel fan-out."""

    def __init__(
        self,
        analyzer: Analyzer,
        cache: Optional[FeatureCache] = None,
        rng: Optional[random.Random] = None,
        vibe_jitter: float = VIBE_JITTER,
        concurrency_limit: int = CONCURRENCY_LIMIT,
    ):
        """
        Args:
            analyzer: Callable returning raw features for a track
            cache: Connected FeatureCache, or None for in-memory only
            rng: Randomness source for vibe jitter
            vibe_jitter: Vibe score jitter magnitude
            concurrency_limit: Default worker count for enrich_all
        """
        self.analyzer = analyzer
        self.cache = cache
        self.rng = rng or random.Random()
        self.vibe_jitter = vibe_jitter
        self.concurrency_limit = concurrency_limit
        self._seen: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        analyzer: Analyzer,
        rng: Optional[random.Random] = None,
    ) -> "FeatureEnricher":
        """
        Build an enricher from the [enrichment] config section.

        Opens the feature cache at `cache_path` (an empty path disables it).
        Call close() when done.
        """
        cache_path = config.get("enrichment", "cache_path")
        cache = None
        if cache_path:
            cache = FeatureCache(cache_path)
            cache.connect()

        return cls(
            analyzer,
            cache=cache,
            rng=rng,
            vibe_jitter=config.get("enrichment", "vibe_jitter", VIBE_JITTER),
            concurrency_limit=int(config.get("enrichment", "concurrency_limit", CONCURRENCY_LIMIT)),
        )

    def close(self) -> None:
        """Disconnect the feature cache, if any."""
        if self.cache is not None:
            self.cache.disconnect()

    def _lookup(self, track_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            features = self._seen.get(track_id)
        if features is None and self.cache is not None:
            features = self.cache.get(track_id)
        return features

    def _features_from_analysis(self, track: Track, raw: Dict[str, Any]) -> Dict[str, Any]:
        energy = estimate_track_energy(raw)
        danceability = float(raw.get("danceability") or 0.0)

        if raw.get("note"):
            scale = str(raw.get("scale") or "minor")
            camelot = note_to_camelot(str(raw["note"]), scale)
            mode = 1 if scale.lower() == "major" else 0
            key = track.key
        else:
            key = to_int(raw.get("key"), track.key)
            mode = to_int(raw.get("mode"), track.mode)
            camelot = pitch_class_to_camelot(key, mode)

        with self._lock:
            vibe = compute_vibe_score(energy, danceability, self.rng, self.vibe_jitter)

        return {
            "bpm": float(raw.get("bpm") or 0.0),
            "energy": energy,
            "valence": float(raw.get("valence") or 0.0),
            "danceability": danceability,
            "key": key,
            "mode": mode,
            "camelot": camelot,
            "vibe_score": vibe,
        }

    def enrich(self, track: Track) -> Track:
        """
        Return a copy of the track with analyzed features filled in.

        Args:
            track: Track with sentinel features

        Returns:
            Enriched copy, or the original track if analysis failed
        """
        features = self._lookup(track.id)
        if features is not None:
            logger.debug(f"Cache hit for {track.id}")
            return replace(track, **features)

        try:
            raw = self.analyzer(track)
            if not raw:
                logger.warning(f"No features for {track.name or track.id}; keeping sentinels")
                return track

            features = self._features_from_analysis(track, raw)
            enriched = replace(track, **features)
            if self.cache is not None:
                self.cache.put(enriched)
        except Exception as e:
            logger.warning(f"Failed to analyze {track.name or track.id}: {e}")
            return track

        with self._lock:
            self._seen[track.id] = features

        logger.debug(
            f"Enriched {track.id}: {features['bpm']:.0f} BPM, {features['camelot']}, "
            f"energy {features['energy']:.2f}, vibe {features['vibe_score']:.0f}"
        )
        return enriched

    def enrich_all(
        self,
        tracks: List[Track],
        concurrency_limit: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> List[Track]:
        """
        Enrich a collection with at most `concurrency_limit` analyses in flight.

        Args:
            tracks: Tracks to enrich
            concurrency_limit: Worker count (enricher default if None)
            progress: Optional callback(completed, total, track)

        Returns:
            Enriched tracks, in input order
        """
        total = len(tracks)
        if total == 0:
            return []
        concurrency_limit = concurrency_limit or self.concurrency_limit

        results: List[Optional[Track]] = [None] * total
        completed = 0

        with ThreadPoolExecutor(max_workers=concurrency_limit) as pool:
            futures = {pool.submit(self.enrich, track): idx for idx, track in enumerate(tracks)}
            for future in as_completed(futures):
                idx = futures[future]
                results[idx] = future.result()
                completed += 1
                if progress is not None:
                    progress(completed, total, results[idx])

        enriched = [r for r in results if r is not None]
        known = sum(1 for t in enriched if t.bpm > 0)
        logger.info(f"✅ Enrichment complete: {known}/{total} tracks with tempo")
        return enriched
