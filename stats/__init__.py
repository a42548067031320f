"""
Beyblade personal match statistics

Aggregates a player's match history into overview, combination, part,
round and session statistics.
"""
from .aggregator import (
    aggregate_player_stats,
    build_rounds,
    side_win_rates,
    strip_outcome,
    finish_points,
    make_round_key,
    SIDE_TRACKING_CUTOVER,
    RECENT_ROUNDS_LIMIT,
)
from .filters import tournament_category, filter_by_category, TOURNAMENT_CATEGORIES
from .fun_stats import compute_fun_stats, group_sessions
from .models import (
    FINISH_POINTS,
    MatchRecord,
    TournamentInfo,
    PartTables,
    ParsedCombo,
    PartInfo,
    OverviewStats,
    ComboStats,
    PartStats,
    MatchData,
    TournamentRound,
    FunStats,
    PlayerStats,
)
from .parser import decompose, combo_type, wilson_score, part_display_info

__all__ = [
    "aggregate_player_stats",
    "build_rounds",
    "side_win_rates",
    "strip_outcome",
    "finish_points",
    "make_round_key",
    "SIDE_TRACKING_CUTOVER",
    "RECENT_ROUNDS_LIMIT",
    "tournament_category",
    "filter_by_category",
    "TOURNAMENT_CATEGORIES",
    "compute_fun_stats",
    "group_sessions",
    "FINISH_POINTS",
    "MatchRecord",
    "TournamentInfo",
    "PartTables",
    "ParsedCombo",
    "PartInfo",
    "OverviewStats",
    "ComboStats",
    "PartStats",
    "MatchData",
    "TournamentRound",
    "FunStats",
    "PlayerStats",
    "decompose",
    "combo_type",
    "wilson_score",
    "part_display_info",
]
