"""
Beyblade Stats Tracker - command line entry point
"""
import asyncio
import json
import sys
from loguru import logger

from app.config import server_config
from app.personal_stats import get_service


# Logging setup
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/beystats_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


async def run_stats(player: str, category: str) -> int:
    """Print a player's statistics as JSON"""
    service = get_service()
    try:
        stats = await service.get_player_stats(player, category)
    except ValueError as e:
        logger.error(str(e))
        return 2

    print(json.dumps(stats.to_dict(), ensure_ascii=False, indent=2, default=str))
    return 0


async def run_search(query: str) -> int:
    """Print matching player names"""
    service = get_service()
    for name in await service.search_players(query):
        print(name)
    return 0


def main() -> int:
    """Main"""
    import argparse

    parser = argparse.ArgumentParser(description="Beyblade personal match statistics")
    parser.add_argument(
        "--mode",
        choices=["stats", "search", "serve"],
        default="stats",
        help="Run mode"
    )
    parser.add_argument("--player", help="Player name (stats mode)")
    parser.add_argument(
        "--category",
        choices=["all", "practice", "casual", "ranked"],
        default="all",
        help="Tournament category filter"
    )
    parser.add_argument("--query", help="Search term (search mode)")

    args = parser.parse_args()

    if args.mode == "stats":
        if not args.player:
            parser.error("--player is required in stats mode")
        return asyncio.run(run_stats(args.player, args.category))

    if args.mode == "search":
        if not args.query:
            parser.error("--query is required in search mode")
        return asyncio.run(run_search(args.query))

    # serve
    import uvicorn

    uvicorn.run(
        "app.server:app",
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        log_level="info"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
