"""Command line entrypoint.

Usage:
  leaderboard-client fetch
  leaderboard-client rank 1200
  leaderboard-client post 1200 ann

The endpoint comes from --endpoint or LB_ENDPOINT_URL.
"""

from __future__ import annotations

import argparse
import asyncio

from leaderboard.client import LeaderboardClient
from leaderboard.config import ClientConfig
from leaderboard.display import render_outcome, render_snapshot
from leaderboard.log import setup_logger


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="leaderboard-client", description="Fetch and submit leaderboard scores.")
    p.add_argument("--endpoint", help="ranking endpoint URL (default: $LB_ENDPOINT_URL)")
    p.add_argument("--timeout", type=float, help="per-attempt timeout in seconds")
    p.add_argument("--retries", type=int, help="retries after a failed attempt")
    p.add_argument("--debug", action="store_true")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("fetch", help="print the current ranking")
    rank = sub.add_parser("rank", help="where would SCORE place")
    rank.add_argument("score", type=int)
    post = sub.add_parser("post", help="submit SCORE for NAME")
    post.add_argument("score", type=int)
    post.add_argument("name")
    return p


async def run(args: argparse.Namespace, config: ClientConfig) -> int:
    async with LeaderboardClient(config) as client:
        if args.command == "fetch":
            snapshot = await client.fetch_ranking()
            print(render_snapshot(snapshot))
            return 0 if snapshot is not None else 1

        if args.command == "rank":
            snapshot = await client.fetch_ranking()
            if snapshot is None:
                print(render_snapshot(snapshot))
                return 1
            decision = client.should_post_to_ranking(args.score, snapshot)
            print(f"#{client.get_user_rank(args.score, snapshot)} ({decision.reason})")
            return 0

        outcome = await client.post_score(args.score, args.name)
        print(render_outcome(outcome))
        if outcome.snapshot is not None:
            print(render_snapshot(outcome.snapshot))
        return 0 if outcome.success else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ClientConfig.from_env()
    config.update(
        endpoint_url=args.endpoint,
        request_timeout_sec=args.timeout,
        max_retries=args.retries,
        debug=args.debug or None,
    )
    if not config.endpoint_url:
        parser.error("no endpoint: pass --endpoint or set LB_ENDPOINT_URL")

    setup_logger("leaderboard", debug=config.debug, log_file=config.log_file)
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    raise SystemExit(main())
