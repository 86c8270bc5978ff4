"""
Track and mood value types.

Tracks are immutable snapshots for the duration of one setlist generation.
Fields with no available measurement carry sentinels:
bpm=0, camelot="Unknown", vibe_score=None (scored as 0).
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

UNKNOWN_CAMELOT = "Unknown"

VIBE_LEVELS = ("low", "medium", "high")


def _number(value: Any, default: float = 0.0) -> float:
    """Coerce a loosely typed field to float, falling back on the sentinel."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int) -> int:
    """Coerce a loosely typed integer field (key, mode), falling back on the sentinel."""
    if isinstance(value, bool):
        return default
    try:
        return int(_number(value, default))
    except (OverflowError, ValueError):
        return default


def to_camelot(value: Any) -> str:
    """Camelot code as given, or the unknown sentinel for empty/non-string values."""
    if isinstance(value, str) and value:
        return value
    return UNKNOWN_CAMELOT


@dataclass(frozen=True)
class Track:
    """Immutable container for track identity and audio features."""

    id: str
    name: str = ""
    artist: str = ""
    uri: str = ""
    bpm: float = 0.0  # 0 = unknown tempo
    energy: float = 0.0
    valence: float = 0.0
    danceability: float = 0.0
    key: int = -1  # Pitch class 0-11, -1 = unknown
    mode: int = 1  # 1 = major, 0 = minor
    camelot: str = UNKNOWN_CAMELOT  # "8A", "5B", ... or "Unknown"
    vibe_score: Optional[float] = None  # 0-100, from enrichment
    image: Optional[str] = None

    @property
    def vibe(self) -> float:
        """Vibe score with the missing sentinel resolved to 0."""
        return self.vibe_score or 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """
        Build a Track from a loosely shaped dict.

        Accepts snake_case and camelCase keys ("vibe_score" or "vibeScore").

        Args:
            data: Track record (e.g. parsed from JSON)

        Returns:
            Track with sentinels filled in for missing fields
        """
        vibe = data.get("vibe_score", data.get("vibeScore"))
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            artist=data.get("artist") or "",
            uri=data.get("uri") or "",
            bpm=_number(data.get("bpm")),
            energy=_number(data.get("energy")),
            valence=_number(data.get("valence")),
            danceability=_number(data.get("danceability")),
            key=to_int(data.get("key"), -1),
            mode=to_int(data.get("mode"), 1),
            camelot=to_camelot(data.get("camelot")),
            vibe_score=None if vibe is None else _number(vibe),
            image=data.get("image"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict (camelCase vibeScore)."""
        data = asdict(self)
        data["vibeScore"] = data.pop("vibe_score")
        return data


@dataclass(frozen=True)
class MoodInput:
    """
    Requested mood for a setlist.

    start_vibe is accepted and carried along but does not influence scoring.
    """

    target_bpm: float
    start_vibe: Optional[str] = None

    def __post_init__(self):
        if not self.target_bpm or self.target_bpm <= 0:
            raise ValueError(f"target_bpm must be > 0, got {self.target_bpm}")
        if self.start_vibe is not None and self.start_vibe not in VIBE_LEVELS:
            raise ValueError(
                f"start_vibe must be one of {VIBE_LEVELS}, got {self.start_vibe!r}"
            )
