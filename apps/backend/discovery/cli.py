#!/usr/bin/env python3
"""
Discover POIs around a coordinate from the command line.

Prints each published state as the phases progress, then the ranked list.

Usage:
    python -m discovery.cli --lat 48.8566 --lon 2.3522 --origin paris
    python -m discovery.cli --lat 48.8566 --lon 2.3522 --category commercial --radius 2000
    python -m discovery.cli --lat 48.8566 --lon 2.3522 --sources wikipedia,overpass --json
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from discovery.factory import build_engine_from_env
from discovery.models import DiscoverySettings, DiscoveryState, Origin, POICategory, POISource
from observability.sentry_config import init_sentry


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discover nearby points of interest")
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lon", type=float, required=True)
    parser.add_argument("--origin", default=None, help="Origin id used as cache key")
    parser.add_argument("--country", default=None, help="Origin country name, e.g. France")
    parser.add_argument(
        "--category",
        choices=[c.value for c in POICategory],
        default=POICategory.ATTRACTION.value,
    )
    parser.add_argument("--radius", type=int, default=5000, help="Search radius in meters (1000-10000)")
    parser.add_argument("--sources", default=None, help="Comma-separated sources to enable")
    parser.add_argument(
        "--local-content",
        action="store_true",
        help="Request provider content in the origin country's language",
    )
    parser.add_argument("--limit", type=int, default=None, help="Only print the first N results")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    return parser.parse_args(argv)


def _print_progress(state: DiscoveryState) -> None:
    print(
        f"[{state.phase.value}] {len(state.pois)} POIs, "
        f"{state.successful_sources}/{state.total_sources} sources ok",
        file=sys.stderr,
    )


async def _run(args: argparse.Namespace) -> int:
    sources = (
        frozenset(POISource(s.strip()) for s in args.sources.split(",") if s.strip())
        if args.sources
        else frozenset(POISource)
    )
    settings = DiscoverySettings(
        enabled_sources=sources,
        search_radius_m=args.radius,
        use_local_content=args.local_content,
    )
    origin = Origin(
        id=args.origin or f"{args.lat:.4f},{args.lon:.4f}",
        latitude=args.lat,
        longitude=args.lon,
        country=args.country,
    )

    engine = build_engine_from_env(settings_provider=lambda: settings)
    engine.subscribe(_print_progress)
    try:
        state = await engine.discover(origin, POICategory(args.category))
    finally:
        await engine.aclose()

    if state is None:
        return 1
    if state.error is not None:
        print(f"Error ({state.error.code}): {state.error.message}", file=sys.stderr)

    pois = state.pois[: args.limit] if args.limit else state.pois
    if args.json:
        print(json.dumps([poi.model_dump(mode="json") for poi in pois], indent=2))
    else:
        for poi in pois:
            sources = ",".join(s.value for s in poi.sources)
            print(
                f"{poi.notability_score:>3}  {poi.type.value:<18} {poi.name}  "
                f"({int(poi.distance_from_origin)} m, {sources})"
            )
    return 0 if state.error is None else 2


def main(argv: Optional[List[str]] = None) -> int:
    init_sentry()
    return asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
