"""Command-line entry point.

Usage:
    python -m streamscout.main streams movie 550
    python -m streamscout.main streams tv 1396 --season 1 --episode 2 --provider coflix
    python -m streamscout.main resolve https://player.example/embed/abc
    python -m streamscout.main trending day2soap --type tv
    python -m streamscout.main recent day2soap --limit 5
    python -m streamscout.main providers

Prints JSON to stdout; logs go to stderr.
"""
import argparse
import asyncio
import json
import logging
import sys

from streamscout import config
from streamscout.providers.runner import ProviderEngine


async def run_streams(engine: ProviderEngine, args):
    if args.provider:
        streams = await engine.run_provider(args.provider, args.tmdb_id, args.media_type,
                                            args.season, args.episode)
    else:
        streams = await engine.run_all(args.tmdb_id, args.media_type, args.season, args.episode)
    return [s.to_dict() for s in streams]


async def run_resolve(engine: ProviderEngine, args):
    stream = await engine.resolve(args.url, args.server or "")
    return stream.to_dict() if stream else None


async def run_listing(engine: ProviderEngine, args):
    results = await engine.browse(args.provider, args.command,
                                  getattr(args, "media_type", "movie"), args.limit)
    return [r.to_dict() for r in results]


async def run(args):
    engine = ProviderEngine(timeout=args.timeout)
    try:
        if args.command == "streams":
            return await run_streams(engine, args)
        if args.command == "resolve":
            return await run_resolve(engine, args)
        if args.command in ("trending", "recent"):
            return await run_listing(engine, args)
        return {"providers": engine.list_providers(), "embeds": engine.list_embeds()}
    finally:
        await engine.close()


def build_parser():
    parser = argparse.ArgumentParser(prog="streamscout")
    parser.add_argument("--timeout", type=int, default=config.FETCH_TIMEOUT,
                        help="Per-request timeout in seconds")
    sub = parser.add_subparsers(dest="command", required=True)

    streams = sub.add_parser("streams", help="Find streams for a TMDB title")
    streams.add_argument("media_type", choices=["movie", "tv"])
    streams.add_argument("tmdb_id")
    streams.add_argument("--season", type=int)
    streams.add_argument("--episode", type=int)
    streams.add_argument("--provider", help="Run a single provider by id")

    resolve = sub.add_parser("resolve", help="Resolve one embed URL to a direct stream")
    resolve.add_argument("url")
    resolve.add_argument("--server", help="Server label passed through as a hint")

    trending = sub.add_parser("trending", help="List what a provider is currently promoting")
    trending.add_argument("provider")
    trending.add_argument("--type", dest="media_type", choices=["movie", "tv"], default="movie")
    trending.add_argument("--limit", type=int, default=20)

    recent = sub.add_parser("recent", help="List a provider's latest additions")
    recent.add_argument("provider")
    recent.add_argument("--limit", type=int, default=20)

    sub.add_parser("providers", help="List registered providers and embed variants")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.command == "streams" and args.media_type == "tv" and (
            args.season is None or args.episode is None):
        print("tv lookups need --season and --episode", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    result = asyncio.run(run(args))
    print(json.dumps(result, indent=2, ensure_ascii=False))
    if result is None or result == []:
        sys.exit(1)


if __name__ == "__main__":
    main()
