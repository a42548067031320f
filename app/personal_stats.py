"""
Personal stats service

Fetches a player's matches and the parts catalogue from Supabase and runs the
aggregator over them. The parts catalogue is loaded once per service.
"""
from typing import Optional, List, Dict, Any

from loguru import logger

from app.config import StatsConfig, stats_config
from database.supabase_client import StatsRepository
from stats import aggregate_player_stats, filter_by_category, PartTables, PlayerStats, part_display_info
from stats.models import PartInfo


class PersonalStatsService:
    """Personal statistics for any player"""

    def __init__(self, repository: StatsRepository, settings: Optional[StatsConfig] = None):
        self.repository = repository
        self.settings = settings or stats_config
        self._parts: Optional[PartTables] = None

    async def get_parts_tables(self) -> PartTables:
        """Parts catalogue (cached after the first successful load)"""
        if self._parts is None or self._parts.is_empty:
            self._parts = await self.repository.fetch_parts_tables()
        return self._parts

    async def get_player_stats(self, player: str, category: str = "all") -> PlayerStats:
        """
        Statistics of a player, optionally restricted to one tournament category

        Raises:
            ValueError: unsupported category
        """
        rows = await self.repository.fetch_player_matches(player)
        rows = filter_by_category(rows, category)
        if not rows:
            logger.info(f"No {category} matches for {player}")
            return PlayerStats.empty(player)

        parts = await self.get_parts_tables()
        stats = aggregate_player_stats(
            rows,
            parts,
            player,
            side_cutover=self.settings.side_tracking_cutover,
            recent_rounds_limit=self.settings.recent_rounds_limit,
        )
        if stats.skipped_records:
            logger.warning(f"{stats.skipped_records} malformed rows skipped for {player}")
        return stats

    async def get_player_awards(self, player: str, player_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.repository.fetch_player_awards(player, player_id)

    async def search_players(self, query: str) -> List[str]:
        return await self.repository.search_players(query, limit=self.settings.search_limit)

    async def is_private(self, player: str) -> bool:
        return await self.repository.is_private(player)

    async def get_part_info(self, part_name: str) -> PartInfo:
        parts = await self.get_parts_tables()
        return part_display_info(part_name, parts)


# Singleton instance
_service: Optional[PersonalStatsService] = None


def get_service() -> PersonalStatsService:
    """Service singleton backed by the shared Supabase client"""
    global _service
    if _service is None:
        _service = PersonalStatsService(StatsRepository())
    return _service
