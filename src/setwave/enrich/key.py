"""
Key to Camelot conversion.

Two source encodings are supported:
- note name + scale, as reported by audio analyzers ("F#", "minor")
- pitch class 0-11 + mode flag, as reported by streaming platform APIs
  (0=C, 1=C#, ..., 11=B; mode 1=major, 0=minor)
"""

import logging
from typing import Optional

from ..models import UNKNOWN_CAMELOT, to_int

logger = logging.getLogger(__name__)

STANDARD_TO_CAMELOT_MAJOR = {
    "C": "8B",
    "C#": "3B",
    "Db": "3B",
    "D": "10B",
    "D#": "5B",
    "Eb": "5B",
    "E": "12B",
    "F": "7B",
    "F#": "2B",
    "Gb": "2B",
    "G": "9B",
    "G#": "4B",
    "Ab": "4B",
    "A": "11B",
    "A#": "6B",
    "Bb": "6B",
    "B": "1B",
}

STANDARD_TO_CAMELOT_MINOR = {
    "C": "5A",
    "C#": "12A",
    "Db": "12A",
    "D": "7A",
    "D#": "2A",
    "Eb": "2A",
    "E": "9A",
    "F": "4A",
    "F#": "11A",
    "Gb": "11A",
    "G": "6A",
    "G#": "1A",
    "Ab": "1A",
    "A": "8A",
    "A#": "3A",
    "Bb": "3A",
    "B": "10A",
}

PITCH_CLASSES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def _normalize_note(note: str) -> str:
    """'f#' -> 'F#', 'bb' -> 'Bb'."""
    note = note.strip()
    return note[:1].upper() + note[1:].lower()


def note_to_camelot(note: Optional[str], scale: Optional[str]) -> str:
    """
    Convert a note name and scale to Camelot notation.

    Args:
        note: Note name, sharps or flats ("A", "F#", "Gb")
        scale: "major" or "minor" (anything else is treated as minor)

    Returns:
        Camelot code, "Unknown" if note is empty, or the note unchanged when
        it is not a recognized note name
    """
    if not note:
        return UNKNOWN_CAMELOT

    is_major = (scale or "").lower() == "major"
    mapping = STANDARD_TO_CAMELOT_MAJOR if is_major else STANDARD_TO_CAMELOT_MINOR
    camelot = mapping.get(_normalize_note(note))

    if camelot is None:
        logger.warning(f"Unknown note: {note}")
        return note

    return camelot


def pitch_class_to_camelot(key: Optional[int], mode: Optional[int]) -> str:
    """
    Convert a pitch class and mode flag to Camelot notation.

    Args:
        key: Pitch class 0-11 (0=C)
        mode: 1 for major, 0 for minor

    Returns:
        Camelot code, or "Unknown" for missing/out-of-range pitch classes
    """
    key = to_int(key, -1)
    if not 0 <= key <= 11:
        return UNKNOWN_CAMELOT

    note = PITCH_CLASSES[key]
    return note_to_camelot(note, "major" if to_int(mode, 1) == 1 else "minor")
