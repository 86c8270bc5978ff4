"""
Set Generation Module: Select a candidate pool and sequence it.

- Greedy sequential picking (no backtracking)
- Soft weighted scoring or hard harmonic/tempo constraints
- Output: ordered list of tracks, exportable as CSV, text or URI list
"""

__all__ = ["tempo", "harmonic", "energy", "pool", "selector", "playlist"]
