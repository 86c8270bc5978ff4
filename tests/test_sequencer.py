"""
Unit tests for setlist sequencing.

Tests the opening pick, weighted and strict next-track choice, termination,
and end-to-end generate_setlist scenarios.
"""

import random

import pytest
from setwave.config import Config, ConfigError
from setwave.generate.energy import SinglePeakCurve
from setwave.generate.selector import (
    ScoringWeights,
    SequencingPolicy,
    WeightedSequencer,
    StrictSequencer,
    get_sequencing_policy,
    policy_from_config,
    generate_setlist,
)
from setwave.models import MoodInput, Track
from conftest import make_track


@pytest.fixture
def weights():
    """Default scoring weights."""
    return ScoringWeights(Config.DEFAULT_CONFIG["scoring"])


@pytest.fixture
def weighted(weights):
    return WeightedSequencer(weights)


@pytest.fixture
def strict(weights):
    return StrictSequencer(weights)


class TestScoringWeights:
    """Test weights loading."""

    def test_defaults(self):
        w = ScoringWeights({})
        assert w.energy_weight == 15.0
        assert w.flow_bpm_weight == 20.0
        assert w.harmonic_weight == 10.0
        assert w.vibe_weight == 5.0
        assert w.flow_bpm_limit == 10.0
        assert w.flow_bpm_penalty == 1000.0
        assert w.strict_bpm_jump == 5.0

    def test_overrides(self):
        w = ScoringWeights({"harmonic_weight": 2.0})
        assert w.harmonic_weight == 2.0


class TestChooseFirst:
    """Test the opening pick."""

    def test_prefers_tempo_and_warmup_energy(self, weighted):
        pool = [
            make_track("hot", bpm=128.0, energy=0.9),
            make_track("warm", bpm=128.0, energy=0.3),
            make_track("off", bpm=100.0, energy=0.3),
        ]
        assert weighted.choose_first(pool, 128.0, 3).id == "warm"

    def test_half_time_opening(self, weighted):
        pool = [make_track("near", bpm=124.0, energy=0.3), make_track("half", bpm=64.0, energy=0.3)]
        assert weighted.choose_first(pool, 128.0, 2).id == "half"

    def test_tie_keeps_pool_order(self, weighted):
        pool = [make_track("a"), make_track("b")]
        assert weighted.choose_first(pool, 128.0, 2).id == "a"

    def test_empty_pool(self, weighted):
        assert weighted.choose_first([], 128.0, 0) is None


class TestWeightedSequencer:
    """Test soft weighted next-track choice."""

    def test_transition_cost_perfect(self, weighted):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        cand = make_track("cand", bpm=128.0, camelot="8A", energy=0.3, vibe_score=100.0)
        terms = weighted.transition_cost(prev, cand, 0, 10)
        assert terms["total"] == pytest.approx(0.0)

    def test_transition_cost_terms(self, weighted):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        cand = make_track("cand", bpm=130.0, camelot="9A", energy=0.5, vibe_score=50.0)
        terms = weighted.transition_cost(prev, cand, 0, 10)
        assert terms["energy"] == pytest.approx(0.2 * 15)
        assert terms["flow"] == pytest.approx(2 * 20)
        assert terms["harmonic"] == pytest.approx(5 * 10)
        assert terms["vibe"] == pytest.approx(0.5 * 5)

    def test_flow_beyond_limit_is_penalized(self, weighted):
        prev = make_track("prev", bpm=128.0)
        cand = make_track("cand", bpm=150.0)
        assert weighted.transition_cost(prev, cand, 1, 10)["flow"] == 1000.0 * 20

    def test_energy_boost_during_build(self, weighted):
        """+2 jump beats a clash while building (position 6 of 30)."""
        prev = make_track("prev", bpm=140.0, camelot="8A")
        candidates = [
            make_track("clash", bpm=140.0, camelot="3B", energy=0.6),
            make_track("boost", bpm=140.0, camelot="10A", energy=0.6),
        ]
        track, hints = weighted.choose_next(prev, candidates, 6, 30)
        assert track.id == "boost"
        assert hints["building"] is True

    def test_no_boost_outside_build(self, weighted):
        """Outside build phases an adjacent key beats the +2 jump."""
        prev = make_track("prev", bpm=140.0, camelot="8A")
        candidates = [
            make_track("boost", bpm=140.0, camelot="10A"),
            make_track("adjacent", bpm=140.0, camelot="9A"),
        ]
        track, hints = weighted.choose_next(prev, candidates, 1, 30)
        assert track.id == "adjacent"
        assert hints["building"] is False

    def test_soft_penalty_not_filter(self, weighted):
        """A lone candidate far off tempo is still placed."""
        prev = make_track("prev", bpm=128.0)
        track, _ = weighted.choose_next(prev, [make_track("far", bpm=170.0)], 1, 10)
        assert track.id == "far"

    def test_tempo_flow_outweighs_clash(self, weighted):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        candidates = [
            make_track("jump", bpm=150.0, camelot="8A"),
            make_track("clash", bpm=130.0, camelot="3B"),
        ]
        track, _ = weighted.choose_next(prev, candidates, 1, 10)
        assert track.id == "clash"

    def test_no_candidates(self, weighted):
        assert weighted.choose_next(make_track("prev"), [], 1, 10) is None


class TestStrictSequencer:
    """Test hard-constrained next-track choice."""

    def test_picks_closest_energy_among_valid(self, strict):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        # Target energy at position 1 of 10 is 0.45
        candidates = [
            make_track("loud", bpm=131.0, camelot="8B", energy=0.9),
            make_track("fit", bpm=129.0, camelot="9A", energy=0.45),
            make_track("too-fast", bpm=140.0, camelot="8A", energy=0.45),
        ]
        track, hints = strict.choose_next(prev, candidates, 1, 10)
        assert track.id == "fit"
        assert hints["fallback"] is False
        assert hints["valid_count"] == 2

    def test_rejects_incompatible_key(self, strict):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        candidates = [
            make_track("clash", bpm=128.0, camelot="2A", energy=0.45),
            make_track("ok", bpm=128.0, camelot="7A", energy=0.9),
        ]
        track, _ = strict.choose_next(prev, candidates, 1, 10)
        assert track.id == "ok"

    def test_fallback_smallest_tempo_jump(self, strict):
        prev = make_track("prev", bpm=128.0, camelot="8A")
        candidates = [
            make_track("far", bpm=160.0, camelot="8A"),
            make_track("near", bpm=135.0, camelot="3B"),
        ]
        track, hints = strict.choose_next(prev, candidates, 1, 10)
        assert track.id == "near"
        assert hints["fallback"] is True

    def test_fallback_compatibility_bonus(self, strict):
        """A compatible key earns 5 BPM of slack in the fallback."""
        prev = make_track("prev", bpm=128.0, camelot="8A")
        candidates = [
            make_track("clash", bpm=132.0, camelot="3B"),
            make_track("relative", bpm=134.0, camelot="8B"),
        ]
        track, hints = strict.choose_next(prev, candidates, 1, 10)
        assert track.id == "relative"
        assert hints["fallback"] is True

    def test_unknown_keys_fall_back(self, strict):
        prev = make_track("prev", bpm=128.0, camelot="Unknown")
        track, hints = strict.choose_next(prev, [make_track("x", bpm=128.0)], 1, 10)
        assert track.id == "x"
        assert hints["fallback"] is True


class TestBuildSetlist:
    """Test the shared sequencing walk."""

    def test_empty_pool(self, weighted):
        assert weighted.build_setlist([], MoodInput(128)) == []

    def test_respects_max_length(self, weights):
        policy = WeightedSequencer(weights, max_length=5)
        pool = [make_track(f"t{i}") for i in range(20)]
        assert len(policy.build_setlist(pool, MoodInput(128))) == 5

    def test_uses_every_track_of_small_pool(self, weighted):
        pool = [make_track(f"t{i}", energy=i / 10) for i in range(6)]
        setlist = weighted.build_setlist(pool, MoodInput(128))
        assert sorted(t.id for t in setlist) == sorted(t.id for t in pool)

    def test_stops_early_when_no_pick(self, weights):
        class NoFollowUp(SequencingPolicy):
            name = "no-follow-up"

            def choose_next(self, previous, candidates, index, total):
                return None

        pool = [make_track(f"t{i}") for i in range(5)]
        setlist = NoFollowUp(weights).build_setlist(pool, MoodInput(128))
        assert len(setlist) == 1

    def test_repeated_runs_are_independent(self, weighted):
        pool = [make_track(f"t{i}", energy=i / 10) for i in range(8)]
        first = weighted.build_setlist(pool, MoodInput(128))
        second = weighted.build_setlist(pool, MoodInput(128))
        assert [t.id for t in first] == [t.id for t in second]

    def test_strict_never_repeats(self, strict, varied_library):
        setlist = strict.build_setlist(varied_library[:40], MoodInput(128))
        ids = [t.id for t in setlist]
        assert len(ids) == len(set(ids)) == 30


class TestPolicyLookup:
    """Test policy selection by name."""

    def test_known_policies(self):
        assert isinstance(get_sequencing_policy("weighted"), WeightedSequencer)
        assert isinstance(get_sequencing_policy("strict"), StrictSequencer)

    def test_unknown_policy(self):
        with pytest.raises(ConfigError):
            get_sequencing_policy("random")

    def test_from_config(self):
        config = Config.default()
        config["sequencing"]["policy"] = "strict"
        config["sequencing"]["energy_curve"] = "single_peak"
        config["setlist"]["max_setlist_length"] = 12
        policy = policy_from_config(config)
        assert isinstance(policy, StrictSequencer)
        assert isinstance(policy.curve, SinglePeakCurve)
        assert policy.max_length == 12


class TestGenerateSetlist:
    """End-to-end setlist generation."""

    def test_empty_input(self):
        assert generate_setlist([], MoodInput(target_bpm=128)) == []

    def test_length_and_uniqueness(self, varied_library):
        setlist = generate_setlist(varied_library, MoodInput(128), rng=random.Random(3))
        ids = [t.id for t in setlist]
        assert len(ids) == 30
        assert len(set(ids)) == len(ids)
        assert set(ids) <= {t.id for t in varied_library}

    def test_short_collection(self):
        tracks = [make_track(f"t{i}") for i in range(7)]
        assert len(generate_setlist(tracks, MoodInput(128))) == 7

    def test_duplicate_ids_collapse(self):
        tracks = [make_track("same") for _ in range(5)] + [make_track("other")]
        setlist = generate_setlist(tracks, MoodInput(128))
        assert sorted(t.id for t in setlist) == ["other", "same"]

    def test_off_tempo_track_never_opens(self):
        tracks = [
            make_track("perfect", bpm=140.0),
            make_track("half", bpm=70.0),
            make_track("double", bpm=280.0),
            make_track("bad", bpm=100.0),
        ]
        for seed in range(10):
            setlist = generate_setlist(tracks, MoodInput(140), rng=random.Random(seed))
            assert len(setlist) == 4
            assert setlist[0].id != "bad"

    def test_identical_tracks_vary_between_runs(self):
        """Jitter makes the opening track differ between differently seeded runs."""
        clones = [make_track(f"clone-{i}", bpm=140.0) for i in range(50)]
        first_ids = set()
        for seed in range(10):
            setlist = generate_setlist(clones, MoodInput(140), rng=random.Random(seed))
            assert len(setlist) == 30
            first_ids.add(setlist[0].id)
        assert len(first_ids) > 1

    def test_same_seed_same_setlist(self, varied_library):
        run1 = generate_setlist(varied_library, MoodInput(128), rng=random.Random(11))
        run2 = generate_setlist(varied_library, MoodInput(128), rng=random.Random(11))
        assert [t.id for t in run1] == [t.id for t in run2]

    def test_tracks_not_mutated(self, varied_library):
        before = [t.to_dict() for t in varied_library]
        generate_setlist(varied_library, MoodInput(128), rng=random.Random(5))
        assert [t.to_dict() for t in varied_library] == before

    def test_config_dict_selects_strict(self, varied_library):
        config = {"sequencing": {"policy": "strict", "energy_curve": "wave"}}
        setlist = generate_setlist(varied_library, MoodInput(128), config=config, rng=random.Random(2))
        assert len(setlist) == 30

    def test_config_limits(self, varied_library):
        config = Config.default()
        config["setlist"]["max_pool_size"] = 10
        setlist = generate_setlist(varied_library, MoodInput(128), config=config, rng=random.Random(2))
        assert len(setlist) == 10

    def test_explicit_policy(self, varied_library, weights):
        policy = WeightedSequencer(weights, max_length=8)
        setlist = generate_setlist(varied_library, MoodInput(128), rng=random.Random(2), policy=policy)
        assert len(setlist) == 8

    def test_numeric_camelot_codes_score_as_unknown(self):
        records = [
            {"id": f"t{i}", "bpm": 128, "energy": 0.5, "camelot": 8, "vibeScore": 50}
            for i in range(5)
        ]
        tracks = [Track.from_dict(r) for r in records] + [make_track("raw", camelot=8)]
        for policy in ("weighted", "strict"):
            config = {"sequencing": {"policy": policy, "energy_curve": "wave"}}
            setlist = generate_setlist(tracks, MoodInput(128), config=config, rng=random.Random(3))
            assert sorted(t.id for t in setlist) == sorted(t.id for t in tracks)
