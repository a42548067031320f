"""
Match statistics aggregator

Builds every personal statistic of a player from the flat list of their
match_results rows in a single pass:
- overview counters (K/D, win %, points per match/round, flawless rounds, overdrive)
- per-combination and per-part rollups
- recent round summaries with an MVP combination
- finish distribution, role totals and stadium side win rates
- session fun stats (see stats.fun_stats)

The aggregation is pure: no I/O, no state kept between runs. Rows that fail
validation are logged and skipped, never abort the run.
"""
from collections import defaultdict
from datetime import date
from typing import List, Dict, Any, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from .models import (
    FINISH_POINTS,
    EXTREME_FINISH,
    COMBO_TYPES,
    MatchRecord,
    PartTables,
    ParsedCombo,
    OverviewStats,
    ComboStats,
    PartStats,
    MatchData,
    TournamentRound,
    FinishSlice,
    PointsPerFinish,
    RoleStats,
    PlayerStats,
)
from .parser import decompose, combo_type, wilson_score, PART_TYPE_NAMES
from .fun_stats import compute_fun_stats


# Stadium sides are recorded from this date on
SIDE_TRACKING_CUTOVER = date(2025, 9, 13)

RECENT_ROUNDS_LIMIT = 10


def strip_outcome(outcome: Optional[str]) -> str:
    """'Burst Finish (Left)' -> 'Burst Finish'"""
    label = (outcome or "").split(" (")[0]
    return label or "Unknown"


def finish_points(outcome: str, points_awarded: Optional[int] = None) -> int:
    """Explicit points when recorded, else the finish table (unknown finish = 0)"""
    if points_awarded:
        return points_awarded
    return FINISH_POINTS.get(outcome, 0)


def make_round_key(tournament_id: str, opponent: str, officer: str, round_number: int) -> str:
    """Head-to-head round key shared by every match of the same round"""
    return f"{tournament_id}_{opponent}__TO:{officer}__R:{round_number}"


def kd_ratio(wins: int, losses: int) -> float:
    return wins / losses if losses > 0 else float(wins)


def _win_rate(wins: int, matches: int) -> float:
    return wins / matches * 100 if matches > 0 else 0.0


def _to_record(row: Union[MatchRecord, Dict[str, Any]]) -> MatchRecord:
    if isinstance(row, MatchRecord):
        return row
    return MatchRecord.model_validate(row)


# ==================== Accumulators ====================

def _accumulate_finish(target: Union[ComboStats, PartStats], outcome: str, points: int):
    target.finish_distribution[outcome] = target.finish_distribution.get(outcome, 0) + 1
    target.points_per_finish[outcome] = target.points_per_finish.get(outcome, 0) + points


def _finalize_combos(combos: Dict[str, ComboStats], combo_tournaments: Dict[str, set]) -> List[ComboStats]:
    for name, combo in combos.items():
        combo.win_rate = _win_rate(combo.total_wins, combo.matches)
        combo.kd_ratio = kd_ratio(combo.total_wins, combo.total_losses)
        combo.points_delta = (combo.total_points - combo.points_given) / max(combo.matches, 1)
        combo.tournaments = len(combo_tournaments[name])
    return sorted(combos.values(), key=lambda c: c.win_rate, reverse=True)


def _finalize_parts(parts: Dict[Tuple[str, str], PartStats]) -> List[PartStats]:
    result = []
    for part in parts.values():
        if part.matches == 0:
            continue
        part.win_rate = _win_rate(part.wins, part.matches)
        part.confidence = wilson_score(part.wins, part.matches)
        result.append(part)
    result.sort(key=lambda p: (p.confidence, p.win_rate), reverse=True)
    return result


def _count_round_groups(round_groups: Dict[str, List[bool]]) -> Tuple[int, int]:
    """(round wins, flawless rounds) over head-to-head round groups

    A flawless round is won in full with exactly 4 or 5 matches played.
    """
    round_wins = 0
    flawless = 0
    for results in round_groups.values():
        wins = sum(1 for is_win in results if is_win)
        losses = len(results) - wins
        if wins > losses:
            round_wins += 1
        if wins == len(results) and len(results) in (4, 5):
            flawless += 1
    return round_wins, flawless


def build_rounds(matches: List[MatchData], limit: Optional[int] = RECENT_ROUNDS_LIMIT) -> List[TournamentRound]:
    """Group by (tournament, round, officer); newest tournaments first"""
    rounds: Dict[Tuple[str, int, str], TournamentRound] = {}
    for match in matches:
        key = (match.tournament_name, match.round_number, match.tournament_officer)
        if key not in rounds:
            rounds[key] = TournamentRound(
                tournament_name=match.tournament_name,
                tournament_date=match.tournament_date,
                round_number=match.round_number,
            )
        rounds[key].matches.append(match)

    for rnd in rounds.values():
        wins = sum(1 for m in rnd.matches if m.is_win)
        losses = len(rnd.matches) - wins
        rnd.win_loss = f"{wins}-{losses}"
        rnd.kd_ratio = kd_ratio(wins, losses)
        rnd.points_gained = sum(m.points_gained for m in rnd.matches)
        rnd.points_given = sum(m.points_given for m in rnd.matches)

        bey_points: Dict[str, int] = {}
        for m in rnd.matches:
            if m.is_win:
                bey_points[m.player_beyblade] = bey_points.get(m.player_beyblade, 0) + m.points_gained

        # First maximum in encounter order wins ties
        mvp, best = "N/A", None
        for bey, points in bey_points.items():
            if best is None or points > best:
                mvp, best = bey, points
        rnd.mvp_bey = mvp

    ordered = sorted(rounds.values(), key=lambda r: r.tournament_date or date.min, reverse=True)
    return ordered[:limit] if limit is not None else ordered


def side_win_rates(
    records: List[Tuple[MatchRecord, bool]],
    player_name: str,
    cutover: date = SIDE_TRACKING_CUTOVER,
) -> Tuple[float, float]:
    """(B side, X side) win rates over matches dated on/after the cutover

    Undated matches count as before the cutover.
    """
    normalized = player_name.lower()

    def holds(side_player: Optional[str]) -> bool:
        return bool(side_player) and (side_player == player_name or side_player.lower() == normalized)

    b_matches = b_wins = x_matches = x_wins = 0
    for record, is_winner in records:
        played_on = record.played_on
        if played_on is None or played_on < cutover:
            continue
        if holds(record.b_side_player):
            b_matches += 1
            if is_winner:
                b_wins += 1
        if holds(record.x_side_player):
            x_matches += 1
            if is_winner:
                x_wins += 1

    return _win_rate(b_wins, b_matches), _win_rate(x_wins, x_matches)


# ==================== Aggregation ====================

def aggregate_player_stats(
    matches: List[Union[MatchRecord, Dict[str, Any]]],
    part_tables: PartTables,
    player_name: str,
    *,
    side_cutover: date = SIDE_TRACKING_CUTOVER,
    recent_rounds_limit: Optional[int] = RECENT_ROUNDS_LIMIT,
) -> PlayerStats:
    """Aggregate a player's match history

    Args:
        matches: match_results rows (dicts with the embedded tournaments row) or MatchRecords,
                 in recorded order
        part_tables: parts catalogue used to decompose combination names
        player_name: subject player (matched exactly or case-insensitively)
        side_cutover: first date with stadium side assignments
        recent_rounds_limit: rounds kept in PlayerStats.rounds (None keeps all)

    Returns:
        PlayerStats, zeroed when nothing matches
    """
    stats = PlayerStats.empty(player_name)
    if not matches or not player_name:
        return stats

    normalized_player = player_name.lower()

    match_data: List[MatchData] = []
    included: List[Tuple[MatchRecord, bool]] = []
    combos: Dict[str, ComboStats] = {}
    combo_tournaments: Dict[str, set] = defaultdict(set)
    parts: Dict[Tuple[str, str], PartStats] = {}
    parsed_cache: Dict[Tuple[str, Optional[str]], ParsedCombo] = {}
    round_groups: Dict[str, List[bool]] = defaultdict(list)
    finish_counts: Dict[str, int] = {}
    points_by_finish: Dict[str, int] = {}

    total_points = 0
    total_points_given = 0
    overdrive = 0
    last_extreme_key: Optional[str] = None
    consecutive_extremes = 0

    for row in matches:
        try:
            record = _to_record(row)
        except ValidationError as e:
            stats.skipped_records += 1
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(f"Skipping malformed match row {row_id}: {e.error_count()} validation error(s)")
            continue

        is_player1 = record.player1_name == player_name or record.normalized_player1_name == normalized_player
        is_player2 = record.player2_name == player_name or record.normalized_player2_name == normalized_player
        if is_player1 == is_player2:
            continue

        is_winner = record.winner_name == player_name or record.normalized_winner_name == normalized_player

        if is_player1:
            player_beyblade, blade_line = record.player1_beyblade, record.player1_blade_line
            opponent_name, opponent_beyblade = record.player2_name, record.player2_beyblade
        else:
            player_beyblade, blade_line = record.player2_beyblade, record.player2_blade_line
            opponent_name, opponent_beyblade = record.player1_name, record.player1_beyblade

        outcome = strip_outcome(record.outcome)
        points = finish_points(outcome, record.points_awarded)
        round_key = make_round_key(
            record.tournament_id, opponent_name, record.tournament_officer, record.round_number
        )

        # Overdrive: two Extreme Finish wins in a row within one round
        if is_winner and outcome == EXTREME_FINISH:
            if last_extreme_key == round_key:
                consecutive_extremes += 1
            else:
                consecutive_extremes = 1
                last_extreme_key = round_key
            if consecutive_extremes == 2:
                overdrive += 1
        else:
            consecutive_extremes = 0
            last_extreme_key = None

        if is_winner:
            finish_counts[outcome] = finish_counts.get(outcome, 0) + 1
            points_by_finish[outcome] = points_by_finish.get(outcome, 0) + points
            total_points += points
        else:
            total_points_given += points

        round_groups[round_key].append(is_winner)
        included.append((record, is_winner))

        match_data.append(MatchData(
            id=record.id,
            tournament_id=record.tournament_id,
            tournament_name=record.tournament_name,
            tournament_date=record.played_on,
            round_number=record.round_number,
            match_number=record.match_number,
            phase_number=record.phase_number,
            player_beyblade=player_beyblade,
            opponent_name=opponent_name,
            opponent_beyblade=opponent_beyblade,
            outcome=outcome,
            winner=record.winner_name,
            points_gained=points if is_winner else 0,
            points_given=0 if is_winner else points,
            is_win=is_winner,
            tournament_officer=record.tournament_officer,
            round_key=round_key,
        ))

        cache_key = (player_beyblade, blade_line)
        if cache_key not in parsed_cache:
            parsed_cache[cache_key] = decompose(player_beyblade, blade_line, part_tables)
        parsed = parsed_cache[cache_key]

        # Combination rollup
        combo = combos.get(player_beyblade)
        if combo is None:
            combo = combos[player_beyblade] = ComboStats(
                combo=player_beyblade,
                blade_line=blade_line or "Unknown",
                type=combo_type(parsed),
            )
        combo.matches += 1
        combo_tournaments[player_beyblade].add(record.tournament_id)
        if is_winner:
            combo.total_wins += 1
            combo.total_points += points
            _accumulate_finish(combo, outcome, points)
        else:
            combo.total_losses += 1
            combo.points_given += points

        # Part rollup
        for slot, part_name in parsed.parts():
            key = (slot, part_name)
            part = parts.get(key)
            if part is None:
                part = parts[key] = PartStats(part_name=part_name, part_type=PART_TYPE_NAMES[slot])
            part.matches += 1
            if is_winner:
                part.wins += 1
                part.total_points += points
                _accumulate_finish(part, outcome, points)
            else:
                part.losses += 1
                part.points_given += points

    if not match_data:
        logger.debug(f"No matches for {player_name} ({stats.skipped_records} skipped)")
        return stats

    round_wins, flawless = _count_round_groups(round_groups)
    b_side, x_side = side_win_rates(included, player_name, side_cutover)

    total_matches = len(match_data)
    match_wins = sum(1 for m in match_data if m.is_win)
    match_losses = total_matches - match_wins

    stats.overview = OverviewStats(
        points_per_match=total_points / total_matches,
        points_per_round=total_points / round_wins if round_wins > 0 else 0.0,
        kd_ratio=kd_ratio(match_wins, match_losses),
        win_percentage=_win_rate(match_wins, total_matches),
        round_wins=round_wins,
        points_delta=(total_points - total_points_given) / max(total_matches, 1),
        match_wins=match_wins,
        match_losses=match_losses,
        flawless_rounds=flawless,
        overdrive=overdrive,
        b_side_win_rate=b_side,
        x_side_win_rate=x_side,
    )

    combo_list = _finalize_combos(combos, combo_tournaments)

    role_stats = {t: RoleStats() for t in COMBO_TYPES}
    for combo in combo_list:
        role = role_stats.get(combo.type)
        if role is None:
            continue
        role.wins += combo.total_wins
        role.losses += combo.total_losses
        role.kills += combo.total_points
        role.deaths += combo.points_given

    stats.combos = combo_list
    stats.parts = _finalize_parts(parts)
    stats.matches = match_data
    stats.rounds = build_rounds(match_data, recent_rounds_limit)
    stats.finish_distribution = [FinishSlice(name=f, value=c) for f, c in finish_counts.items()]
    stats.points_per_finish = [
        PointsPerFinish(finish=f, points=p, count=finish_counts.get(f, 0))
        for f, p in points_by_finish.items()
    ]
    stats.role_stats = role_stats
    stats.fun_stats = compute_fun_stats([r for r, _ in included], normalized_player)

    logger.debug(
        f"Aggregated {total_matches} matches for {player_name}: "
        f"{match_wins}W-{match_losses}L, {len(combo_list)} combos, {len(stats.parts)} parts"
    )
    return stats
