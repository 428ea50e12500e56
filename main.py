import argparse
import asyncio
import json
import sys

from bootstrap import build_agent, build_repository
from config.logging_config import log
from config.settings import settings
from scheduler import run_alerts_job, run_cleanup_job, start_scheduler
from scraping.models import SearchFilter


async def run_search(args) -> int:
    repository = await build_repository(settings, in_memory=args.no_db)
    agent = build_agent(repository)
    search_filter = SearchFilter(
        location_text=args.location,
        price_min=args.price_min,
        price_max=args.price_max,
        surface_min=args.surface_min,
        surface_max=args.surface_max,
        property_type=args.property_type,
    )
    try:
        listings = await agent.on_search_request(args.identity, args.location, search_filter)
    finally:
        await agent.coordinator.close()

    print(json.dumps([l.model_dump(mode="json") for l in listings], ensure_ascii=False, indent=2))
    return len(listings)


def main():
    parser = argparse.ArgumentParser(description="Crousscraper housing search agent")
    sub = parser.add_subparsers(dest="action", required=True)

    search = sub.add_parser("search", help="Run one search and print the listings as JSON")
    search.add_argument("location")
    search.add_argument("--identity", default="cli")
    search.add_argument("--price-min", type=int)
    search.add_argument("--price-max", type=int)
    search.add_argument("--surface-min", type=int)
    search.add_argument("--surface-max", type=int)
    search.add_argument("--property-type")
    search.add_argument("--no-db", action="store_true", help="Keep state in memory instead of PostgreSQL")

    sub.add_parser("schedule", help="Run weekly alerts and daily cleanup on a timer")
    sub.add_parser("alerts", help="Send weekly alerts now")
    sub.add_parser("cleanup", help="Delete expired sessions now")

    args = parser.parse_args()

    if args.action == "search":
        count = asyncio.run(run_search(args))
        log.info(f"Search finished with {count} listing(s)")
    elif args.action == "schedule":
        start_scheduler()
    elif args.action == "alerts":
        run_alerts_job()
    elif args.action == "cleanup":
        run_cleanup_job()

if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        log.info("Stopping...")
        sys.exit(0)
    except Exception as e:
        log.critical(f"Unhandled exception: {e}")
        sys.exit(1)
