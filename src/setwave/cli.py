#!/usr/bin/env python3
"""
Generate a DJ setlist from an analyzed track collection.

Main entrypoint: setwave --tracks tracks.json --bpm 128

Reads a JSON list of track records (already enriched with bpm, energy,
camelot and vibeScore), sequences them and writes the requested exports.
"""

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config, ConfigError
from .models import Track, MoodInput, VIBE_LEVELS
from .generate.energy import describe_curve
from .generate.playlist import EXPORT_FORMATS, export_setlist, format_text
from .generate.selector import generate_setlist, policy_from_config

logger = logging.getLogger(__name__)


def load_tracks(path: str) -> List[Track]:
    """
    Load track records from a JSON file.

    Accepts either a list of records or an object with a "tracks" list.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("tracks", [])

    return [Track.from_dict(record) for record in data]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="setwave",
        description="Order a track collection into a harmonic, energy-shaped DJ setlist",
    )
    parser.add_argument("--tracks", required=True, help="JSON file with track records")
    parser.add_argument("--bpm", type=float, default=None, help="Target BPM (config default if omitted)")
    parser.add_argument("--vibe", choices=VIBE_LEVELS, default=None, help="Starting vibe hint")
    parser.add_argument("--policy", choices=("weighted", "strict"), default=None, help="Sequencing policy")
    parser.add_argument("--config", default=None, help="Path to setwave.toml")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for pool jitter")
    parser.add_argument("--output-dir", default=None, help="Directory for exported files")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=EXPORT_FORMATS,
        help="Export format (repeatable; default: all when --output-dir is set)",
    )
    parser.add_argument("--show-curve", action="store_true", help="Log the target energy curve")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main generation entrypoint."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    )

    try:
        logger.info("🎵 Starting setlist generation...")

        config = Config.load(args.config)
        if args.policy:
            config["sequencing"]["policy"] = args.policy
        logger.info(f"Config loaded: {config}")

        tracks = load_tracks(args.tracks)
        logger.info(f"Loaded {len(tracks)} tracks from {args.tracks}")

        target_bpm = args.bpm if args.bpm is not None else config.get("setlist", "default_target_bpm", 128)
        mood = MoodInput(target_bpm=target_bpm, start_vibe=args.vibe)
        rng = random.Random(args.seed) if args.seed is not None else None

        policy = policy_from_config(config)
        setlist = generate_setlist(tracks, mood, config=config, rng=rng, policy=policy)

        if args.show_curve:
            for point in describe_curve(policy.curve, len(setlist)):
                logger.info(
                    f"  #{point['index'] + 1:>2} target energy {point['target_energy']:.2f}"
                    f"{' (build)' if point['building'] else ''}"
                )

        if not setlist:
            logger.warning("No valid setlist could be built from the input tracks")
            return 0

        print(format_text(setlist))

        if args.output_dir:
            written = export_setlist(setlist, args.output_dir, args.formats)
            if written is None:
                logger.error("Export failed")
                return 1
            for fmt, path in written.items():
                logger.info(f"✅ {fmt}: {path}")

        return 0

    except KeyboardInterrupt:
        logger.warning("Generation interrupted by user")
        return 130
    except (ConfigError, ValueError, OSError, KeyError) as e:
        logger.error(f"Generation failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
