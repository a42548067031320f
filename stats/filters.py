"""
Tournament category filter
"""
from typing import List, Optional, Any, Dict, Union

from .models import TournamentInfo


TOURNAMENT_CATEGORIES = ["practice", "casual", "ranked"]


def tournament_category(tournament: Optional[Union[TournamentInfo, Dict[str, Any], list]]) -> str:
    """practice / casual / ranked, anything else is unknown"""
    if isinstance(tournament, list):
        tournament = tournament[0] if tournament else None
    if tournament is None:
        return "unknown"

    if isinstance(tournament, TournamentInfo):
        raw_type = tournament.tournament_type
    elif isinstance(tournament, dict):
        raw_type = tournament.get("tournament_type")
    else:
        return "unknown"

    category = str(raw_type or "").lower()
    return category if category in TOURNAMENT_CATEGORIES else "unknown"


def filter_by_category(rows: List[Dict[str, Any]], category: str = "all") -> List[Dict[str, Any]]:
    """Keep match rows whose tournament falls in the category ("all" keeps everything)"""
    category = (category or "all").lower()
    if category == "all":
        return list(rows)
    if category not in TOURNAMENT_CATEGORIES:
        raise ValueError(f"Unsupported tournament category: {category}")
    return [
        row for row in rows
        if isinstance(row, dict) and tournament_category(row.get("tournaments")) == category
    ]
