"""
Supabase database client (read side of the stats tracker)
"""
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from supabase import create_client, Client
from loguru import logger

from app.config import supabase_config
from stats.models import PartTables


# Singleton client
_supabase_client: Optional[Client] = None

PARTS_TABLES = {
    "blades": ("beypart_blade", "*"),
    "ratchets": ("beypart_ratchet", "*"),
    "bits": ("beypart_bit", "*"),
    "lockchips": ("beypart_lockchip", "*"),
    "assist_blades": (
        "beypart_assistblade",
        '"Assist Blade","Assist Blade Name",Type,Height,Attack,Defense,Stamina,"Total Stat"',
    ),
}

MATCH_SELECT = "*, tournaments!inner(id, name, tournament_date, is_practice, tournament_type)"
AWARD_SELECT = "*, tournaments(name, tournament_date)"


def _quote(value: str) -> str:
    """PostgREST filter value in double quotes (commas, dots and parentheses stay literal)"""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _award_time(award: Dict[str, Any]) -> datetime:
    """awarded_at as an aware datetime (naive values are UTC, missing ones sort last)"""
    raw = award.get("awarded_at")
    if not raw:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_supabase_client() -> Client:
    """
    Supabase client instance (singleton)
    """
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("Set the SUPABASE_URL and SUPABASE_KEY environment variables")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


class StatsRepository:
    """Queries behind the personal stats views"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client if client is not None else get_supabase_client()

    # ==================== Parts catalogue ====================

    async def fetch_parts_tables(self) -> PartTables:
        """Every row of the five beypart_* tables"""
        tables = PartTables()
        for attr, (table, columns) in PARTS_TABLES.items():
            try:
                result = self.client.table(table).select(columns).execute()
                setattr(tables, attr, result.data or [])
            except Exception as e:
                logger.error(f"Parts table {table} query error: {e}")
        logger.info(
            f"Parts catalogue loaded: {len(tables.blades)} blades, {len(tables.ratchets)} ratchets, "
            f"{len(tables.bits)} bits, {len(tables.lockchips)} lockchips, {len(tables.assist_blades)} assist blades"
        )
        return tables

    # ==================== Matches ====================

    async def fetch_player_matches(self, player: str) -> List[Dict[str, Any]]:
        """match_results rows where the player is either participant"""
        if not player:
            return []
        normalized = player.lower()
        name, norm = _quote(player), _quote(normalized)
        try:
            result = self.client.table("match_results").select(MATCH_SELECT).or_(
                f"player1_name.eq.{name},player2_name.eq.{name},"
                f"normalized_player1_name.eq.{norm},normalized_player2_name.eq.{norm}"
            ).execute()
        except Exception as e:
            logger.error(f"Match query error for {player}: {e}")
            return []

        rows = []
        for row in result.data or []:
            tournament = row.get("tournaments")
            if isinstance(tournament, list):
                row = {**row, "tournaments": tournament[0] if tournament else None}
            rows.append(row)
        logger.debug(f"{len(rows)} match rows fetched for {player}")
        return rows

    # ==================== Awards ====================

    async def fetch_player_awards(self, player_name: str, player_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        tournament_awards of a player

        Merges up to three lookups (player id, exact name, space-insensitive
        name so "Jet Fire" also finds "JetFire"), deduplicated by award id,
        newest first.
        """
        queries = []
        if player_id:
            queries.append(
                self.client.table("tournament_awards").select(AWARD_SELECT)
                .eq("player_id", player_id).order("awarded_at", desc=True)
            )
        if player_name and player_name.strip():
            token = "".join(player_name.split()).lower()
            queries.append(
                self.client.table("tournament_awards").select(AWARD_SELECT)
                .eq("player_name", player_name).order("awarded_at", desc=True)
            )
            queries.append(
                self.client.table("tournament_awards").select(AWARD_SELECT)
                .ilike("player_name", f"%{token}%").order("awarded_at", desc=True)
            )
        if not queries:
            return []

        merged: Dict[Any, Dict[str, Any]] = {}
        for query in queries:
            try:
                result = query.execute()
            except Exception as e:
                logger.error(f"Award query error for {player_name}: {e}")
                return []
            for award in result.data or []:
                if not award or not award.get("id"):
                    continue
                merged.setdefault(award["id"], award)

        return sorted(merged.values(), key=_award_time, reverse=True)

    # ==================== Players ====================

    async def search_players(self, query: str, limit: int = 20) -> List[str]:
        """Public profile usernames, topped up with names found in match results"""
        if not query or not query.strip():
            return []
        try:
            profiles = self.client.table("profiles").select("username").ilike(
                "username", f"%{query}%"
            ).eq("is_private", False).limit(limit).execute()
            names = [p["username"] for p in profiles.data or [] if p.get("username")]

            if len(names) < 10:
                pattern = _quote(f"%{query}%")
                matches = self.client.table("match_results").select(
                    "player1_name, player2_name"
                ).or_(
                    f"player1_name.ilike.{pattern},player2_name.ilike.{pattern}"
                ).limit(50).execute()
                for m in matches.data or []:
                    for key in ("player1_name", "player2_name"):
                        name = m.get(key)
                        if name and name not in names:
                            names.append(name)

            return names[:limit]
        except Exception as e:
            logger.error(f"Player search error ({query}): {e}")
            return []

    async def is_private(self, username: str) -> bool:
        """Whether the player's profile is private (unknown players are public)"""
        try:
            result = self.client.table("profiles").select("is_private").eq(
                "username", username
            ).limit(1).execute()
            if result.data:
                return bool(result.data[0].get("is_private"))
            return False
        except Exception as e:
            logger.error(f"Privacy lookup error for {username}: {e}")
            return False

    async def set_privacy(self, user_id: str, is_private: bool) -> bool:
        """Update the profile privacy flag"""
        try:
            result = self.client.table("profiles").update({
                "is_private": is_private
            }).eq("id", user_id).execute()
            return len(result.data or []) > 0
        except Exception as e:
            logger.error(f"Privacy update error for {user_id}: {e}")
            return False
