"""
Offline catalog build.
Loads the playlist from the configured sources (or a given file), classifies
it, prints a summary and optionally writes the tree as JSON and warms the cache.
"""
import argparse
import asyncio
from pathlib import Path

from m3u_catalog.config import get_settings
from m3u_catalog.errors import FeedUnavailable
from m3u_catalog.models.catalog import Domain
from m3u_catalog.services.background import BackgroundParser
from m3u_catalog.services.cache import CacheManager
from m3u_catalog.services.feed_loader import FeedLoader, LocalFileSource


def print_summary(tree, source: str):
    counts = tree.counts()
    print("\n" + "=" * 60)
    print("PLAYLIST CATALOG")
    print("=" * 60)
    print(f"Source: {source}")
    print("-" * 60)
    print(f"{'Movies':30} {counts['filmes']:6}")
    print(f"{'Series':30} {counts['series']:6} ({counts['episodes']} episodes)")
    print(f"{'Channels':30} {counts['tv']:6}")
    print("-" * 60)
    for domain in Domain:
        subcategories = sorted(tree.domain_map(domain))
        print(f"{domain.value}: {len(subcategories)} subcategories")
        for sub in subcategories[:10]:
            print(f"   - {sub} ({len(tree.domain_map(domain)[sub])})")
    print("=" * 60)


async def build(playlist: str | None, output: str | None, warm_cache: bool) -> int:
    settings = get_settings()
    loader = FeedLoader([LocalFileSource(playlist)]) if playlist else FeedLoader.from_settings(settings)

    try:
        feed = await loader.load()
    except FeedUnavailable as e:
        print(f"❌ {e}")
        return 1

    parser = BackgroundParser(settings.parse_executor)
    try:
        result = await parser.run(feed.content)
    finally:
        parser.shutdown()

    print_summary(result.tree, feed.source)
    print(f"Parsed {result.records} entries in {result.elapsed:.2f}s "
          f"({result.malformed_lines} malformed lines, {result.fallbacks} fallbacks)")

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        Path(output).write_text(result.tree.model_dump_json(indent=2), encoding="utf-8")
        print(f"\n📄 Catalog saved to: {output}")

    if warm_cache:
        tier = await CacheManager.from_settings(settings).save(result.tree)
        print(f"Cache: {tier or 'not saved'}")
    return 0


async def main():
    parser = argparse.ArgumentParser(description="Build the playlist catalog")
    parser.add_argument(
        "--playlist", "-p",
        type=str,
        default=None,
        help="Playlist file to parse (default: configured feed sources)"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the categorized tree to this JSON file"
    )
    parser.add_argument(
        "--warm-cache",
        action="store_true",
        help="Store the result in the catalog cache"
    )

    args = parser.parse_args()
    raise SystemExit(await build(args.playlist, args.output, args.warm_cache))


if __name__ == "__main__":
    asyncio.run(main())
