"""
Setlist export: CSV sheet, numbered text list, and playlist URI list.

- CSV rows: "name","artist",bpm,"key","camelot",energy (text fields double-quoted)
- Text lines: "{rank}. {name} - {artist} [{bpm} BPM] [{camelot}]"
- URI list: one track URI per line, in set order (for playlist creation)
"""

import logging
from pathlib import Path
from typing import List, Dict, Iterable, Optional
from datetime import datetime, timezone

from ..models import Track

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Track Name", "Artist", "BPM", "Key", "Camelot", "Energy"]

EXPORT_FORMATS = ("csv", "txt", "uris")


def _quote(value) -> str:
    """Double-quote a text field, doubling embedded quotes."""
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _number(value: float) -> str:
    """Render whole numbers without a trailing .0 (128.0 -> 128)."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_csv(setlist: Iterable[Track]) -> str:
    """
    Render a setlist as CSV.

    Args:
        setlist: Ordered tracks

    Returns:
        CSV text (header row plus one row per track, no trailing newline)
    """
    rows = [",".join(CSV_HEADERS)]
    for track in setlist:
        rows.append(
            ",".join([
                _quote(track.name),
                _quote(track.artist),
                _number(track.bpm),
                _quote(track.key),
                _quote(track.camelot),
                _number(track.energy),
            ])
        )
    return "\n".join(rows)


def format_text(setlist: Iterable[Track]) -> str:
    """Render a setlist as numbered lines, ranks starting at 1."""
    return "\n".join(
        f"{rank}. {track.name} - {track.artist} [{_number(track.bpm)} BPM] [{track.camelot}]"
        for rank, track in enumerate(setlist, start=1)
    )


def extract_uris(setlist: Iterable[Track]) -> List[str]:
    """Track URIs in set order; tracks without a URI are skipped."""
    return [track.uri for track in setlist if track.uri]


def _write(content: str, output_path: Path, label: str) -> bool:
    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)
            if content:
                f.write("\n")
        logger.info(f"Wrote {label}: {output_path}")
        return True
    except OSError as e:
        logger.error(f"Failed to write {label}: {e}")
        return False


def write_csv(setlist: List[Track], output_path: Path) -> bool:
    """
    Write the setlist CSV.

    Returns:
        True if successful, False otherwise
    """
    return _write(format_csv(setlist), Path(output_path), "setlist CSV")


def write_text(setlist: List[Track], output_path: Path) -> bool:
    """
    Write the numbered text setlist.

    Returns:
        True if successful, False otherwise
    """
    return _write(format_text(setlist), Path(output_path), "setlist text")


def write_uris(setlist: List[Track], output_path: Path) -> bool:
    """
    Write one track URI per line.

    Returns:
        True if successful, False otherwise
    """
    return _write("\n".join(extract_uris(setlist)), Path(output_path), "URI list")


WRITERS = {
    "csv": ("csv", write_csv),
    "txt": ("txt", write_text),
    "uris": ("uris.txt", write_uris),
}


def export_setlist(
    setlist: List[Track],
    output_dir: str = "data/setlists",
    formats: Optional[Iterable[str]] = None,
) -> Optional[Dict[str, str]]:
    """
    Write the setlist in the requested formats to timestamped files.

    Args:
        setlist: Ordered tracks
        output_dir: Directory to write outputs
        formats: Subset of EXPORT_FORMATS (all if None)

    Returns:
        Dict mapping format -> written path, or None if any write failed
    """
    formats = list(formats) if formats is not None else list(EXPORT_FORMATS)
    unknown = [f for f in formats if f not in WRITERS]
    if unknown:
        logger.error(f"Unknown export format(s): {unknown}")
        return None

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    written = {}

    for fmt in formats:
        suffix, writer = WRITERS[fmt]
        path = output_path / f"setlist-{timestamp}.{suffix}"
        if not writer(setlist, path):
            return None
        written[fmt] = str(path)

    logger.info(f"✅ Exported setlist ({len(setlist)} tracks): {', '.join(written)}")
    return written
