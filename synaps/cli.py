from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from config import MATCH_MODE
from synaps.matching import InvalidArgumentError, ScoringPolicy, filter_by_topic, rank, seed_profiles
from synaps.matching.engine import build_candidate_pool
from synaps.models import Profile


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rank candidate profiles for a requester using the compatibility engine."
    )
    parser.add_argument("--requester", type=Path, required=True, help="Path to requester JSON profile")
    parser.add_argument("--candidates", type=Path, required=True, help="Path to JSON array of candidate profiles")
    parser.add_argument("--topic", help="Only keep candidates whose interests or reasoning mention this topic")
    parser.add_argument(
        "--mode",
        choices=("baseline", "promotional"),
        default=MATCH_MODE,
        help="Scoring policy (default: baseline)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of matches to print")
    parser.add_argument(
        "--min-pool",
        type=int,
        default=0,
        help="Top up with demo profiles when fewer candidates than this are given",
    )
    return parser.parse_args(argv)


def _load_json(path: Path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    requester = _load_json(args.requester)
    candidates = _load_json(args.candidates)
    if not isinstance(candidates, list):
        raise SystemExit("--candidates must contain a JSON array")

    policy = ScoringPolicy(mode=args.mode, min_pool_size=args.min_pool)
    pool = [Profile.from_dict(c) if isinstance(c, dict) else c for c in candidates]
    if args.min_pool:
        pool = build_candidate_pool(pool, seed_profiles(), args.min_pool)

    try:
        matches = rank(requester, pool, policy=policy)
    except InvalidArgumentError as e:
        raise SystemExit(f"Invalid input: {e}") from e

    matches = filter_by_topic(matches, args.topic)
    if args.limit is not None:
        matches = matches[: args.limit]

    json.dump([m.to_dict() for m in matches], sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
