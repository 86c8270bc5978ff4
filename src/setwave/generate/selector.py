"""
Setlist Sequencer: Greedy algorithm for ordering a candidate pool.

- Greedy sequential picking (no backtracking)
- Position 0: closest to the target tempo and the curve's opening energy
- Position i: best unused candidate relative to the previous track
- Two interchangeable policies:
  - WeightedSequencer: soft weighted cost (energy, tempo flow, harmonic, vibe)
  - StrictSequencer: hard tempo/Camelot constraints with a fallback pick
- Output: Ordered list of tracks, at most max_setlist_length long
"""

import copy
import logging
import random
from typing import List, Optional, Dict, Any, Iterable, Set, Tuple

from ..config import Config, ConfigError
from ..models import Track, MoodInput
from .energy import EnergyCurve, WaveCurve, get_energy_curve, compute_energy_distance
from .harmonic import harmonic_score, is_compatible
from .pool import select_pool
from .tempo import effective_tempo_distance

logger = logging.getLogger(__name__)

MAX_SETLIST_LENGTH = 30

# Opening pick: tempo fit vs. energy fit
START_TEMPO_WEIGHT = 2.0
START_ENERGY_WEIGHT = 10.0

# Strict policy fallback: bonus for a compatible key
STRICT_COMPATIBLE_BONUS = 5.0


class ScoringWeights:
    """Scoring weights and thresholds from config."""

    def __init__(self, config: dict):
        """
        Args:
            config: Scoring dict from config["scoring"]
        """
        self.energy_weight = config.get("energy_weight", 15.0)
        self.flow_bpm_weight = config.get("flow_bpm_weight", 20.0)
        self.harmonic_weight = config.get("harmonic_weight", 10.0)
        self.vibe_weight = config.get("vibe_weight", 5.0)
        self.flow_bpm_limit = config.get("flow_bpm_limit", 10.0)
        self.flow_bpm_penalty = config.get("flow_bpm_penalty", 1000.0)
        self.missing_tempo_penalty = config.get("missing_tempo_penalty", 100.0)
        self.jitter_magnitude = config.get("jitter_magnitude", 10.0)
        self.strict_bpm_jump = config.get("strict_bpm_jump", 5.0)


class SequencingPolicy:
    """
    Base greedy sequencer.

    Subclasses decide how to pick the next track; the walk over positions,
    the opening pick and early termination are shared.
    """

    name = "base"

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        curve: Optional[EnergyCurve] = None,
        max_length: int = MAX_SETLIST_LENGTH,
    ):
        """
        Args:
            weights: ScoringWeights (defaults if None)
            curve: Energy curve (wave if None)
            max_length: Maximum setlist length
        """
        self.weights = weights or ScoringWeights({})
        self.curve = curve or WaveCurve()
        self.max_length = max_length
        logger.debug(f"{self.__class__.__name__} initialized ({self.curve!r}, max {max_length})")

    def _tempo_distance(self, bpm: float, reference_bpm: float) -> float:
        return effective_tempo_distance(bpm, reference_bpm, self.weights.missing_tempo_penalty)

    def choose_first(
        self,
        pool: List[Track],
        target_bpm: float,
        total: int,
    ) -> Optional[Track]:
        """
        Choose the opening track.

        Minimizes 2 * tempo distance to the target + 10 * distance to the
        curve's opening energy. Ties keep the earliest pool member.

        Args:
            pool: Candidate pool
            target_bpm: Requested set tempo
            total: Setlist length

        Returns:
            Opening track, or None if the pool is empty
        """
        opening_energy = self.curve.target(0, total)
        best: Optional[Track] = None
        best_score = float("inf")

        for track in pool:
            bpm_distance = self._tempo_distance(track.bpm, target_bpm)
            energy_distance = compute_energy_distance(track.energy, opening_energy)
            score = bpm_distance * START_TEMPO_WEIGHT + energy_distance * START_ENERGY_WEIGHT

            if score < best_score:
                best_score = score
                best = track

        if best is not None:
            logger.debug(
                f"Opening with {best.id} (BPM: {best.bpm}, energy: {best.energy:.2f}, "
                f"score: {best_score:.2f})"
            )
        return best

    def choose_next(
        self,
        previous: Track,
        candidates: List[Track],
        index: int,
        total: int,
    ) -> Optional[Tuple[Track, Dict[str, Any]]]:
        """
        Choose the track for position `index`.

        Args:
            previous: Track at position index - 1
            candidates: Unused pool members, in pool order
            index: Position being filled
            total: Setlist length

        Returns:
            Tuple (track, hints) where hints is a dict with scoring info,
            or None if no candidate can be placed
        """
        raise NotImplementedError

    def build_setlist(self, pool: List[Track], mood: MoodInput) -> List[Track]:
        """
        Sequence a candidate pool.

        Args:
            pool: Candidate pool (unique ids)
            mood: Requested mood (target tempo)

        Returns:
            Ordered tracks; shorter than requested if candidates run out
        """
        total = min(len(pool), self.max_length)
        if total == 0:
            logger.warning("Empty pool; no setlist could be built")
            return []

        first = self.choose_first(pool, mood.target_bpm, total)
        if first is None:
            return []

        setlist = [first]
        used: Set[str] = {first.id}

        for index in range(1, total):
            candidates = [t for t in pool if t.id not in used]
            if not candidates:
                logger.warning("No more unused candidates")
                break

            result = self.choose_next(setlist[-1], candidates, index, total)
            if result is None:
                logger.warning(f"No placeable track for position {index}")
                break

            chosen, hints = result
            setlist.append(chosen)
            used.add(chosen.id)

            logger.debug(
                f"Position {index}: {chosen.id} "
                f"(BPM: {chosen.bpm}, key: {chosen.camelot}, "
                f"energy: {chosen.energy:.2f}, hints: {hints})"
            )

        logger.info(f"✅ Setlist built ({self.name}): {len(setlist)}/{total} tracks")
        return setlist


class WeightedSequencer(SequencingPolicy):
    """
    Soft weighted sequencer (default).

    Every unused candidate is scored; nothing is filtered out. Tempo jumps
    beyond the flow limit get a large flat penalty instead of a rejection.
    """

    name = "weighted"

    def transition_cost(
        self,
        previous: Track,
        candidate: Track,
        index: int,
        total: int,
    ) -> Dict[str, float]:
        """
        Break down the weighted cost of placing `candidate` after `previous`.

        Returns:
            Dict with the weighted energy, flow, harmonic and vibe terms and
            their "total" (lower = better)
        """
        w = self.weights
        target = self.curve.target(index, total)
        building = self.curve.is_building(index, total)

        flow = self._tempo_distance(candidate.bpm, previous.bpm)
        if flow > w.flow_bpm_limit:
            flow = w.flow_bpm_penalty

        terms = {
            "energy": compute_energy_distance(candidate.energy, target) * w.energy_weight,
            "flow": flow * w.flow_bpm_weight,
            "harmonic": harmonic_score(previous.camelot, candidate.camelot, building) * w.harmonic_weight,
            "vibe": (100.0 - candidate.vibe) / 100.0 * w.vibe_weight,
        }
        terms["total"] = terms["energy"] + terms["flow"] + terms["harmonic"] + terms["vibe"]
        return terms

    def choose_next(
        self,
        previous: Track,
        candidates: List[Track],
        index: int,
        total: int,
    ) -> Optional[Tuple[Track, Dict[str, Any]]]:
        """Pick the candidate with the lowest weighted cost."""
        if not candidates:
            logger.debug("No candidates available")
            return None

        best: Optional[Track] = None
        best_terms: Dict[str, float] = {}
        best_score = float("inf")

        for candidate in candidates:
            terms = self.transition_cost(previous, candidate, index, total)
            if terms["total"] < best_score:
                best_score = terms["total"]
                best_terms = terms
                best = candidate

        if best is None:
            return None

        hints = {
            "target_energy": round(self.curve.target(index, total), 3),
            "building": self.curve.is_building(index, total),
            "score": round(best_score, 3),
            "terms": {k: round(v, 3) for k, v in best_terms.items() if k != "total"},
            "valid_count": len(candidates),
        }
        return best, hints


class StrictSequencer(SequencingPolicy):
    """
    Hard-constrained sequencer.

    Candidates must stay within strict_bpm_jump effective BPM of the previous
    track AND be Camelot-compatible with it. Among survivors the one closest
    to the curve's target energy wins. If none survive, fall back to the
    smallest raw tempo jump, with a bonus for compatible keys.
    """

    name = "strict"

    def _passes_constraints(self, previous: Track, candidate: Track) -> bool:
        jump = self._tempo_distance(candidate.bpm, previous.bpm)
        if jump > self.weights.strict_bpm_jump:
            logger.debug(f"Track {candidate.id} tempo jump {jump:.1f} too large")
            return False

        if not is_compatible(previous.camelot, candidate.camelot):
            logger.debug(
                f"Track {candidate.id} key {candidate.camelot} "
                f"incompatible with {previous.camelot}"
            )
            return False

        return True

    def _fallback(self, previous: Track, candidates: List[Track]) -> Track:
        def fallback_score(candidate: Track) -> float:
            score = abs(candidate.bpm - previous.bpm)
            if is_compatible(previous.camelot, candidate.camelot):
                score -= STRICT_COMPATIBLE_BONUS
            return score

        return min(candidates, key=fallback_score)

    def choose_next(
        self,
        previous: Track,
        candidates: List[Track],
        index: int,
        total: int,
    ) -> Optional[Tuple[Track, Dict[str, Any]]]:
        """Pick among constraint survivors, or fall back to the closest tempo."""
        if not candidates:
            logger.debug("No candidates available")
            return None

        target = self.curve.target(index, total)
        valid = [c for c in candidates if self._passes_constraints(previous, c)]

        if valid:
            chosen = min(valid, key=lambda c: compute_energy_distance(c.energy, target))
            fallback = False
        else:
            logger.debug(f"No candidate passes constraints at position {index}; falling back")
            chosen = self._fallback(previous, candidates)
            fallback = True

        hints = {
            "target_energy": round(target, 3),
            "energy_distance": round(compute_energy_distance(chosen.energy, target), 3),
            "fallback": fallback,
            "valid_count": len(valid),
        }
        return chosen, hints


SEQUENCING_POLICIES = {
    WeightedSequencer.name: WeightedSequencer,
    StrictSequencer.name: StrictSequencer,
}


def get_sequencing_policy(
    name: str = "weighted",
    weights: Optional[ScoringWeights] = None,
    curve: Optional[EnergyCurve] = None,
    max_length: int = MAX_SETLIST_LENGTH,
) -> SequencingPolicy:
    """
    Build a sequencing policy by config name.

    Args:
        name: "weighted" (soft scoring) or "strict" (hard constraints)
        weights: ScoringWeights
        curve: Energy curve
        max_length: Maximum setlist length

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        policy_cls = SEQUENCING_POLICIES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown sequencing policy: {name!r} (expected one of {sorted(SEQUENCING_POLICIES)})"
        )
    return policy_cls(weights, curve, max_length)


def policy_from_config(config: Config) -> SequencingPolicy:
    """Build the configured sequencing policy."""
    return get_sequencing_policy(
        config.get("sequencing", "policy", "weighted"),
        ScoringWeights(config["scoring"]),
        get_energy_curve(config.get("sequencing", "energy_curve", "wave")),
        config.get("setlist", "max_setlist_length", MAX_SETLIST_LENGTH),
    )


def _average_bpm(tracks: Iterable[Track]) -> float:
    bpms = [t.bpm for t in tracks if t.bpm > 0]
    return sum(bpms) / len(bpms) if bpms else 0.0


def generate_setlist(
    all_tracks: List[Track],
    mood: MoodInput,
    config: Optional[Config] = None,
    rng: Optional[random.Random] = None,
    policy: Optional[SequencingPolicy] = None,
) -> List[Track]:
    """
    Generate an ordered setlist from a track collection.

    Args:
        all_tracks: Full track collection
        mood: Requested mood (target tempo)
        config: Config object or raw config dict (defaults if None)
        rng: Randomness source for pool jitter (fresh unseeded Random if None)
        policy: Sequencing policy (built from config if None)

    Returns:
        Ordered tracks (possibly empty), each id at most once
    """
    if config is None:
        config = Config.default()
    elif isinstance(config, dict):
        config = Config(copy.deepcopy(config))

    if policy is None:
        policy = policy_from_config(config)

    weights = ScoringWeights(config["scoring"])

    logger.info(
        f"Input: {len(all_tracks)} tracks. Target BPM: {mood.target_bpm}. "
        f"Avg input BPM: {_average_bpm(all_tracks):.1f}"
    )

    pool = select_pool(
        all_tracks,
        mood.target_bpm,
        rng=rng,
        max_pool_size=config.get("setlist", "max_pool_size", 50),
        jitter_magnitude=weights.jitter_magnitude,
        missing_tempo_penalty=weights.missing_tempo_penalty,
    )

    return policy.build_setlist(pool, mood)
