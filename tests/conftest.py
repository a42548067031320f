"""
Pytest configuration and fixtures for Beyblade Stats Tracker tests
"""

import itertools
import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stats.models import PartTables


@pytest.fixture(scope="function")
def part_tables():
    """Small parts catalogue covering every blade line"""
    return PartTables(
        blades=[
            {"Blades": "WizardRod", "Line": "Basic", "Attack": 30, "Defense": 35, "Stamina": 55},
            {"Blades": "PhoenixWing", "Line": "Basic", "Attack": 60, "Defense": 30, "Stamina": 20},
            {"Blades": "DranBuster", "Line": "Unique", "Attack": 65, "Defense": 20, "Stamina": 15},
            {"Blades": "Blast", "Line": "Custom", "Attack": 40, "Defense": 30, "Stamina": 30},
        ],
        ratchets=[
            {"Ratchet": "9-60", "Attack": 12, "Defense": 15, "Stamina": 13},
            {"Ratchet": "3-60", "Attack": 13, "Defense": 14, "Stamina": 13},
            {"Ratchet": "3-80", "Attack": 13, "Defense": 13, "Stamina": 14},
            {"Ratchet": "1-60", "Attack": 16, "Defense": 12, "Stamina": 12},
        ],
        bits=[
            {"Bit": "Ball", "Shortcut": "B", "Attack": 10, "Defense": 30, "Stamina": 40, "Dash": 10, "Burst Res": 60},
            {"Bit": "Rush", "Shortcut": "R", "Attack": 40, "Defense": 20, "Stamina": 20, "Dash": 30, "Burst Res": 40},
            {"Bit": "Low Rush", "Shortcut": "LR", "Attack": 45, "Defense": 15, "Stamina": 20, "Dash": 35, "Burst Res": 40},
            {"Bit": "Attack", "Shortcut": None, "Attack": 50, "Defense": 10, "Stamina": 10, "Dash": 40, "Burst Res": 30},
        ],
        lockchips=[
            {"Lockchip": "Valkyrie"},
            {"Lockchip": "Emperor"},
        ],
        assist_blades=[
            {"Assist Blade": "W", "Assist Blade Name": "Wheel", "Attack": 5, "Defense": 10, "Stamina": 15},
            {"Assist Blade": "S", "Assist Blade Name": "Slash", "Attack": 15, "Defense": 5, "Stamina": 5},
        ],
    )


@pytest.fixture(scope="function")
def make_match():
    """Factory of match_results rows from Alice's point of view (Alice vs Bob by default)"""
    counter = itertools.count(1)

    def _make(win: bool = True, **overrides):
        n = next(counter)
        row = {
            "id": f"m{n}",
            "tournament_id": "t1",
            "round_number": 1,
            "match_number": n,
            "phase_number": 1,
            "player1_name": "Alice",
            "player2_name": "Bob",
            "winner_name": "Alice" if win else "Bob",
            "player1_beyblade": "WizardRod 9-60 B",
            "player2_beyblade": "PhoenixWing 3-60 LR",
            "player1_blade_line": "Basic",
            "player2_blade_line": "Basic",
            "outcome": "Spin Finish",
            "tournament_officer": "Judge",
            "tournaments": {
                "id": "t1",
                "name": "Spring Cup",
                "tournament_date": "2025-10-01",
                "tournament_type": "ranked",
            },
        }
        row.update(overrides)
        return row

    return _make
