"""
Feature Enrichment: Fill in harmonic and vibe fields before sequencing.

- Camelot codes from note names or pitch classes
- Vibe score from energy and danceability plus jitter
- SQLite cache so repeated runs skip analysis
- Bounded-concurrency fan-out over a track collection
"""

__all__ = ["key", "vibe", "cache", "enricher"]
