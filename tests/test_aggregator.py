"""
Match statistics aggregator tests
"""

from datetime import date

import pytest

from stats.aggregator import (
    aggregate_player_stats,
    strip_outcome,
    finish_points,
    make_round_key,
    kd_ratio,
)
from stats.models import MatchRecord, PartTables


def extreme(make_match, win=True, **kw):
    return make_match(win=win, outcome="Extreme Finish", **kw)


class TestClassificationHelpers:
    """Per-record helpers"""

    def test_strip_outcome(self):
        assert strip_outcome("Burst Finish (Left)") == "Burst Finish"
        assert strip_outcome("Spin Finish") == "Spin Finish"
        assert strip_outcome(None) == "Unknown"
        assert strip_outcome("") == "Unknown"

    def test_finish_points_table(self):
        assert finish_points("Spin Finish") == 1
        assert finish_points("Burst Finish") == 2
        assert finish_points("Over Finish") == 2
        assert finish_points("Extreme Finish") == 3
        assert finish_points("Own Finish") == 0

    def test_explicit_points_win(self):
        assert finish_points("Spin Finish", 3) == 3

    def test_round_key(self):
        assert make_round_key("t1", "Bob", "Judge", 2) == "t1_Bob__TO:Judge__R:2"

    def test_kd_ratio(self):
        assert kd_ratio(3, 0) == 3.0
        assert kd_ratio(3, 2) == 1.5


class TestOverview:
    """Overview counters"""

    def test_empty_input(self, part_tables):
        stats = aggregate_player_stats([], part_tables, "Alice")
        assert stats.overview.match_wins == 0
        assert stats.overview.win_percentage == 0
        assert stats.combos == []
        assert stats.parts == []
        assert stats.rounds == []
        assert stats.fun_stats.clutch_factor == 0

    def test_wins_plus_losses(self, part_tables, make_match):
        rows = [make_match(True), make_match(False), make_match(True)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        o = stats.overview
        assert o.match_wins + o.match_losses == 3
        assert o.match_wins == 2
        assert o.win_percentage == pytest.approx(2 / 3 * 100)
        assert o.kd_ratio == 2.0
        assert o.points_per_match == pytest.approx(2 / 3)
        assert o.points_delta == pytest.approx((2 - 1) / 3)

    def test_other_players_ignored(self, part_tables, make_match):
        rows = [
            make_match(True),
            make_match(player1_name="Carol", player2_name="Dave", winner_name="Carol"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.total_matches == 1

    def test_self_pairing_ignored(self, part_tables, make_match):
        rows = [make_match(player2_name="Alice")]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.total_matches == 0

    def test_case_insensitive_subject(self, part_tables, make_match):
        rows = [make_match(True), make_match(False)]
        stats = aggregate_player_stats(rows, part_tables, "alice")
        assert stats.overview.match_wins == 1
        assert stats.overview.match_losses == 1

    def test_subject_as_player2(self, part_tables, make_match):
        rows = [make_match(
            player1_name="Bob",
            player2_name="Alice",
            winner_name="Alice",
            player1_beyblade="PhoenixWing 3-60 LR",
            player2_beyblade="WizardRod 9-60 B",
        )]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        match = stats.matches[0]
        assert match.player_beyblade == "WizardRod 9-60 B"
        assert match.opponent_name == "Bob"
        assert match.opponent_beyblade == "PhoenixWing 3-60 LR"

    def test_malformed_row_skipped(self, part_tables, make_match):
        bad = make_match(True)
        del bad["round_number"]
        rows = [bad, make_match(True), make_match(False)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.skipped_records == 1
        assert stats.total_matches == 2

    def test_accepts_match_records(self, part_tables, make_match):
        rows = [MatchRecord.model_validate(make_match(True))]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.match_wins == 1

    def test_points_awarded_and_finish_labels(self, part_tables, make_match):
        rows = [
            make_match(True, outcome="Burst Finish (Left)"),
            make_match(True, outcome="Spin Finish", points_awarded=3),
            make_match(True, outcome="Penalty Finish"),
            make_match(False, outcome="Over Finish"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert [m.outcome for m in stats.matches][0] == "Burst Finish"
        assert [m.points_gained for m in stats.matches] == [2, 3, 0, 0]
        assert stats.matches[3].points_given == 2
        # Unknown finish still counts as a win
        assert stats.overview.match_wins == 3

    def test_points_per_round(self, part_tables, make_match):
        rows = [make_match(True, outcome="Burst Finish") for _ in range(3)]
        rows.append(make_match(False, round_number=2))
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.round_wins == 1
        assert stats.overview.points_per_round == 6.0


class TestFlawlessRounds:
    """Flawless = all won with exactly 4 or 5 matches"""

    @pytest.mark.parametrize("size,expected", [(3, 0), (4, 1), (5, 1), (6, 0)])
    def test_round_size(self, part_tables, make_match, size, expected):
        rows = [make_match(True) for _ in range(size)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.flawless_rounds == expected

    def test_one_loss_breaks_flawless(self, part_tables, make_match):
        rows = [make_match(True) for _ in range(3)] + [make_match(False)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.flawless_rounds == 0

    def test_rounds_keyed_by_officer(self, part_tables, make_match):
        rows = [make_match(True, tournament_officer="Judge") for _ in range(4)]
        rows += [make_match(True, tournament_officer="Other") for _ in range(4)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.flawless_rounds == 2


class TestOverdrive:
    """Two Extreme Finish wins in a row within one round"""

    def test_two_in_a_row(self, part_tables, make_match):
        rows = [extreme(make_match), extreme(make_match)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 1

    def test_third_in_a_row_not_counted_again(self, part_tables, make_match):
        rows = [extreme(make_match) for _ in range(3)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 1

    def test_streak_reset_by_other_result(self, part_tables, make_match):
        rows = [
            extreme(make_match), extreme(make_match),
            make_match(True, outcome="Spin Finish"),
            extreme(make_match), extreme(make_match),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 2

    def test_streak_broken_by_loss(self, part_tables, make_match):
        rows = [extreme(make_match), extreme(make_match, win=False), extreme(make_match)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 0

    def test_streak_does_not_cross_rounds(self, part_tables, make_match):
        rows = [extreme(make_match, round_number=1), extreme(make_match, round_number=2)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 0

    def test_input_order_matters(self, part_tables, make_match):
        rows = [
            extreme(make_match, round_number=1),
            extreme(make_match, round_number=2),
            extreme(make_match, round_number=1),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.overdrive == 0


class TestComboStats:
    """Per-combination rollup"""

    def test_combo_rollup(self, part_tables, make_match):
        rows = [
            make_match(True, outcome="Burst Finish"),
            make_match(True, outcome="Extreme Finish"),
            make_match(False, outcome="Spin Finish", tournament_id="t2"),
            make_match(True, player1_beyblade="PhoenixWing 9-60 Attack", outcome="Over Finish"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        combos = {c.combo: c for c in stats.combos}

        wizard = combos["WizardRod 9-60 B"]
        assert wizard.matches == 3
        assert wizard.total_wins == 2
        assert wizard.total_losses == 1
        assert wizard.total_points == 5
        assert wizard.points_given == 1
        assert wizard.win_rate == pytest.approx(2 / 3 * 100)
        assert wizard.kd_ratio == 2.0
        assert wizard.points_delta == pytest.approx(4 / 3)
        assert wizard.finish_distribution == {"Burst Finish": 1, "Extreme Finish": 1}
        assert wizard.points_per_finish == {"Burst Finish": 2, "Extreme Finish": 3}
        assert wizard.tournaments == 2
        assert wizard.blade_line == "Basic"
        assert wizard.type == "Unknown"

        phoenix = combos["PhoenixWing 9-60 Attack"]
        assert phoenix.type == "Attack"
        assert phoenix.kd_ratio == 1.0

        # Sorted by win rate
        assert stats.combos[0].combo == "PhoenixWing 9-60 Attack"

    def test_role_stats(self, part_tables, make_match):
        rows = [
            make_match(True, player1_beyblade="PhoenixWing 9-60 Attack", outcome="Burst Finish"),
            make_match(False, player1_beyblade="PhoenixWing 9-60 Attack", outcome="Spin Finish"),
            make_match(True),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        attack = stats.role_stats["Attack"]
        assert (attack.wins, attack.losses, attack.kills, attack.deaths) == (1, 1, 2, 1)
        assert stats.role_stats["Stamina"].wins == 0


class TestPartStats:
    """Per-part rollup"""

    def test_part_shared_across_combos(self, part_tables, make_match):
        rows = [
            make_match(True, player1_beyblade="WizardRod 9-60 B"),
            make_match(False, player1_beyblade="WizardRod 3-60 LR"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        parts = {(p.part_type, p.part_name): p for p in stats.parts}
        wizard = parts[("Blade", "WizardRod")]
        assert wizard.matches == 2
        assert wizard.wins == 1
        assert wizard.losses == 1
        assert parts[("Bit", "B")].matches == 1
        assert parts[("Ratchet", "3-60")].losses == 1

    def test_custom_parts(self, part_tables, make_match):
        rows = [make_match(True, player1_beyblade="ValkyrieBlast W 3-80 LR", player1_blade_line="Custom")]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        types = {p.part_type for p in stats.parts}
        assert types == {"Lockchip", "Main Blade (Custom)", "Assist Blade", "Ratchet", "Bit"}

    def test_sorted_by_confidence(self, part_tables, make_match):
        rows = [make_match(True, player1_beyblade="WizardRod 9-60 B") for _ in range(6)]
        rows += [make_match(True, player1_beyblade="DranBuster 1-60 R")]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        confidences = [p.confidence for p in stats.parts]
        assert confidences == sorted(confidences, reverse=True)
        assert stats.parts[0].matches == 6
        dran = next(p for p in stats.parts if p.part_name == "DranBuster")
        assert dran.win_rate == 100.0
        assert dran.confidence < stats.parts[0].confidence

    def test_unparseable_combo_has_no_parts(self, part_tables, make_match):
        rows = [make_match(True, player1_beyblade="Homemade Spinner")]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.parts == []
        assert stats.combos[0].combo == "Homemade Spinner"


class TestRounds:
    """(tournament, round, officer) rollups"""

    def test_round_mvp(self, part_tables, make_match):
        rows = [
            make_match(True, player1_beyblade="WizardRod 9-60 B", outcome="Burst Finish"),
            make_match(True, player1_beyblade="DranBuster 1-60 R", outcome="Extreme Finish"),
            make_match(False),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        rnd = stats.rounds[0]
        assert rnd.mvp_bey == "DranBuster 1-60 R"
        assert rnd.win_loss == "2-1"
        assert rnd.kd_ratio == 2.0
        assert rnd.points_gained == 5
        assert rnd.points_given == 1
        assert len(rnd.matches) == 3

    def test_mvp_tie_first_encountered(self, part_tables, make_match):
        rows = [
            make_match(True, player1_beyblade="DranBuster 1-60 R", outcome="Burst Finish"),
            make_match(True, player1_beyblade="WizardRod 9-60 B", outcome="Over Finish"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.rounds[0].mvp_bey == "DranBuster 1-60 R"

    def test_no_wins_no_mvp(self, part_tables, make_match):
        stats = aggregate_player_stats([make_match(False)], part_tables, "Alice")
        assert stats.rounds[0].mvp_bey == "N/A"
        assert stats.rounds[0].kd_ratio == 0.0

    def test_newest_first_and_limited(self, part_tables, make_match):
        rows = []
        for month in range(1, 13):
            name = f"Cup {month}"
            rows.append(make_match(True, tournament_id=name, tournaments={
                "id": name, "name": name, "tournament_date": f"2025-{month:02d}-01", "tournament_type": "ranked",
            }))
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert len(stats.rounds) == 10
        assert stats.rounds[0].tournament_name == "Cup 12"
        assert stats.rounds[0].tournament_date == date(2025, 12, 1)

        everything = aggregate_player_stats(rows, part_tables, "Alice", recent_rounds_limit=None)
        assert len(everything.rounds) == 12


class TestStadiumSides:
    """Side win rates only count matches from the cutover on"""

    def test_before_cutover_excluded(self, part_tables, make_match):
        early = {"id": "t0", "name": "Summer", "tournament_date": "2025-08-01"}
        rows = [
            make_match(False, b_side_player="Alice", tournaments=early, tournament_id="t0"),
            make_match(True, b_side_player="Alice"),
            make_match(False, x_side_player="Alice"),
            make_match(True, x_side_player="Alice"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.b_side_win_rate == 100.0
        assert stats.overview.x_side_win_rate == 50.0

    def test_only_pre_cutover(self, part_tables, make_match):
        early = {"id": "t0", "name": "Summer", "tournament_date": "2025-08-01"}
        rows = [make_match(True, b_side_player="Alice", tournaments=early)]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.b_side_win_rate == 0.0

    def test_custom_cutover(self, part_tables, make_match):
        early = {"id": "t0", "name": "Summer", "tournament_date": "2025-08-01"}
        rows = [make_match(True, b_side_player="Alice", tournaments=early)]
        stats = aggregate_player_stats(rows, part_tables, "Alice", side_cutover=date(2025, 1, 1))
        assert stats.overview.b_side_win_rate == 100.0

    def test_undated_excluded(self, part_tables, make_match):
        rows = [make_match(True, b_side_player="Alice", tournaments={"id": "t1", "name": "No date"})]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        assert stats.overview.b_side_win_rate == 0.0


class TestFinishDistribution:
    def test_distribution_over_wins(self, part_tables, make_match):
        rows = [
            make_match(True, outcome="Burst Finish"),
            make_match(True, outcome="Burst Finish"),
            make_match(True, outcome="Extreme Finish"),
            make_match(False, outcome="Over Finish"),
        ]
        stats = aggregate_player_stats(rows, part_tables, "Alice")
        dist = {s.name: s.value for s in stats.finish_distribution}
        assert dist == {"Burst Finish": 2, "Extreme Finish": 1}
        points = {p.finish: (p.points, p.count) for p in stats.points_per_finish}
        assert points == {"Burst Finish": (4, 2), "Extreme Finish": (3, 1)}


class TestToDict:
    def test_serializable_shape(self, make_match):
        stats = aggregate_player_stats([make_match(True)], PartTables(), "Alice")
        d = stats.to_dict()
        assert d["player_name"] == "Alice"
        assert d["overview"]["match_wins"] == 1
        assert set(d["role_stats"]) == {"Attack", "Defense", "Stamina", "Balance"}
