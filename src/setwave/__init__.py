# SetWave: DJ setlist sequencing along a tempo target and an energy wave
# Package: src.setwave

__version__ = "1.0.0.dev0"
__author__ = "SetWave Contributors"
__description__ = "Greedy harmonic setlist builder with build-peak-cooldown energy curves"

# Module structure:
#   - setwave.models    : Track and MoodInput value types
#   - setwave.generate  : Tempo, harmonic, energy scoring and sequencing
#   - setwave.enrich    : Feature enrichment (Camelot, vibe score, cache)
#   - setwave.config    : Configuration management
#   - setwave.cli       : Command-line interface
