"""
Session-level fun stats

A session is every match between the same two players within one
tournament round, replayed in match-number order.
"""
from collections import defaultdict
from typing import List, Dict, Tuple

from .models import MatchRecord, FunStats


SessionKey = Tuple[str, str, str, int]


def _percentage(numerator: int, denominator: int) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def group_sessions(records: List[MatchRecord]) -> Dict[SessionKey, List[MatchRecord]]:
    """Group by (player1, player2, tournament, round), sorted by match number"""
    sessions: Dict[SessionKey, List[MatchRecord]] = defaultdict(list)
    for record in records:
        key = (record.player1_name, record.player2_name, record.tournament_id, record.round_number)
        sessions[key].append(record)

    for matches in sessions.values():
        matches.sort(key=lambda m: m.match_number or 0)
    return dict(sessions)


def compute_fun_stats(records: List[MatchRecord], subject_normalized: str) -> FunStats:
    """Clutch factor, comeback rate and first-strike advantage

    - clutch factor: sessions ending with both tallies >= 3 and one apart
    - comeback rate: sessions where the subject trailed 0-3 at some point
    - first-strike advantage: sessions of 3+ matches, won after taking the first match
    """
    deciding_sessions = deciding_wins = 0
    comeback_sessions = comeback_wins = 0
    first_strike_sessions = first_strike_wins = 0

    for matches in group_sessions(records).values():
        player_score = opponent_score = 0
        scored_first = False
        trailed_zero_three = False

        for idx, match in enumerate(matches):
            winner = match.normalized_winner_name or (match.winner_name or "").lower()
            if winner == subject_normalized:
                player_score += 1
                if idx == 0:
                    scored_first = True
            else:
                opponent_score += 1
            if player_score == 0 and opponent_score == 3:
                trailed_zero_three = True

        won_session = player_score > opponent_score

        if min(player_score, opponent_score) >= 3 and abs(player_score - opponent_score) == 1:
            deciding_sessions += 1
            if won_session:
                deciding_wins += 1

        if trailed_zero_three:
            comeback_sessions += 1
            if won_session:
                comeback_wins += 1

        if len(matches) >= 3:
            first_strike_sessions += 1
            if scored_first and won_session:
                first_strike_wins += 1

    return FunStats(
        clutch_factor=_percentage(deciding_wins, deciding_sessions),
        comeback_rate=_percentage(comeback_wins, comeback_sessions),
        first_strike_advantage=_percentage(first_strike_wins, first_strike_sessions),
    )
