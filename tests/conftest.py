"""Shared fixtures for SetWave tests."""

import random

import pytest

from setwave.models import Track


def make_track(track_id, bpm=128.0, camelot="8A", energy=0.5, vibe_score=50.0, **extra):
    """Build a test track with readable defaults."""
    return Track(
        id=track_id,
        name=f"Track {track_id}",
        artist="Artist",
        uri=f"spotify:track:{track_id}",
        bpm=bpm,
        energy=energy,
        valence=0.5,
        danceability=0.5,
        key=0,
        mode=1,
        camelot=camelot,
        vibe_score=vibe_score,
        **extra,
    )


@pytest.fixture
def rng():
    """Seeded randomness source."""
    return random.Random(42)


@pytest.fixture
def varied_library():
    """80 tracks with varied tempo, key and energy."""
    gen = random.Random(7)
    keys = [f"{n}{letter}" for n in range(1, 13) for letter in "AB"] + ["Unknown"]
    return [
        make_track(
            f"track-{i}",
            bpm=gen.choice([0.0, 64.0, 122.0, 126.0, 128.0, 130.0, 140.0, 256.0]),
            camelot=gen.choice(keys),
            energy=round(gen.random(), 2),
            vibe_score=round(gen.random() * 100, 1),
        )
        for i in range(80)
    ]
