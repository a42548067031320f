"""
Match statistics data models

Input rows are validated with Pydantic (a row that fails validation is skipped
by the aggregator), derived statistics are plain dataclasses rebuilt on every
aggregation run.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Iterator, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


# Finish type -> points awarded to the winner
FINISH_POINTS = {
    "Spin Finish": 1,
    "Burst Finish": 2,
    "Over Finish": 2,
    "Extreme Finish": 3,
}

EXTREME_FINISH = "Extreme Finish"

COMBO_TYPES = ["Attack", "Defense", "Stamina", "Balance"]


def _parse_date(value: Any) -> Optional[date]:
    """Parse a date or ISO timestamp, None when unparseable"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


# ==================== Input rows ====================

class TournamentInfo(BaseModel):
    """Tournament row embedded in a match result"""
    id: Optional[str] = Field(None, description="Tournament ID")
    name: str = Field(default="Unknown", description="Tournament name")
    tournament_date: Optional[date] = Field(None, description="Tournament date")
    is_practice: Optional[bool] = Field(None, description="Practice flag")
    tournament_type: Optional[str] = Field(None, description="practice / casual / ranked / experimental")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        return v or "Unknown"

    @field_validator("tournament_date", mode="before")
    @classmethod
    def parse_tournament_date(cls, v: Any) -> Optional[date]:
        return _parse_date(v)

    class Config:
        extra = "ignore"


class MatchRecord(BaseModel):
    """A single match_results row"""

    # Identity
    id: str = Field(..., description="Match ID")
    tournament_id: str = Field(..., description="Tournament ID")
    round_number: int = Field(..., description="Round number")
    match_number: Optional[int] = Field(None, description="Match number within the round")
    phase_number: Optional[int] = Field(None, description="Phase number")

    # Participants
    player1_name: str = Field(..., min_length=1, description="Player 1 name")
    player2_name: str = Field(..., min_length=1, description="Player 2 name")
    normalized_player1_name: Optional[str] = None
    normalized_player2_name: Optional[str] = None
    winner_name: Optional[str] = Field(None, description="Winner name")
    normalized_winner_name: Optional[str] = None

    # Loadouts
    player1_beyblade: str = Field(default="", description="Player 1 combination")
    player2_beyblade: str = Field(default="", description="Player 2 combination")
    player1_blade_line: Optional[str] = None
    player2_blade_line: Optional[str] = None

    # Outcome
    outcome: Optional[str] = Field(None, description="Finish label, e.g. 'Burst Finish (Left)'")
    points_awarded: Optional[int] = Field(None, description="Explicit points")

    # Context
    tournament_officer: str = Field(default="Unknown", description="Officiating tournament officer")
    b_side_player: Optional[str] = None
    x_side_player: Optional[str] = None
    tournament: Optional[TournamentInfo] = Field(None, alias="tournaments")
    tournament_date: Optional[date] = None

    @field_validator("id", "tournament_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("player1_beyblade", "player2_beyblade", mode="before")
    @classmethod
    def default_beyblade(cls, v: Any) -> str:
        return v or ""

    @field_validator("tournament_officer", mode="before")
    @classmethod
    def default_officer(cls, v: Any) -> str:
        return v or "Unknown"

    @field_validator("tournament", mode="before")
    @classmethod
    def unwrap_tournament(cls, v: Any) -> Any:
        # PostgREST embeds may come back as a one-element list
        if isinstance(v, list):
            return v[0] if v else None
        return v

    @field_validator("tournament_date", mode="before")
    @classmethod
    def parse_match_date(cls, v: Any) -> Optional[date]:
        return _parse_date(v)

    @model_validator(mode="after")
    def fill_normalized_names(self) -> "MatchRecord":
        """Derive normalized names when the row does not carry them"""
        if not self.normalized_player1_name:
            self.normalized_player1_name = self.player1_name.lower()
        if not self.normalized_player2_name:
            self.normalized_player2_name = self.player2_name.lower()
        if not self.normalized_winner_name and self.winner_name:
            self.normalized_winner_name = self.winner_name.lower()
        return self

    @property
    def tournament_name(self) -> str:
        return self.tournament.name if self.tournament else "Unknown"

    @property
    def played_on(self) -> Optional[date]:
        """Tournament date, falling back to the match row's own date"""
        if self.tournament and self.tournament.tournament_date:
            return self.tournament.tournament_date
        return self.tournament_date

    class Config:
        extra = "ignore"
        populate_by_name = True


# ==================== Part catalogue ====================

@dataclass
class PartTables:
    """Rows of the five beypart_* tables"""
    blades: List[Dict[str, Any]] = field(default_factory=list)
    ratchets: List[Dict[str, Any]] = field(default_factory=list)
    bits: List[Dict[str, Any]] = field(default_factory=list)
    lockchips: List[Dict[str, Any]] = field(default_factory=list)
    assist_blades: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.blades or self.ratchets or self.bits or self.lockchips or self.assist_blades)


@dataclass
class ParsedCombo:
    """A combination name split into its parts"""
    is_custom: bool = False
    blade: Optional[str] = None
    main_blade: Optional[str] = None
    assist_blade: Optional[str] = None
    ratchet: Optional[str] = None
    bit: Optional[str] = None
    lockchip: Optional[str] = None

    def parts(self) -> Iterator[Tuple[str, str]]:
        """(slot, part name) for every filled slot"""
        for slot in ("blade", "ratchet", "bit", "lockchip", "main_blade", "assist_blade"):
            value = getattr(self, slot)
            if value:
                yield slot, value


@dataclass
class PartInfo:
    """Catalogue entry resolved for display"""
    display_name: str
    type: str
    attack: int = 0
    defense: int = 0
    stamina: int = 0
    dash: int = 0
    burst_res: int = 0

    def to_dict(self):
        return asdict(self)


# ==================== Derived statistics ====================

@dataclass
class OverviewStats:
    """Overview counters over the filtered match set"""
    points_per_match: float = 0.0
    points_per_round: float = 0.0
    kd_ratio: float = 0.0
    win_percentage: float = 0.0
    round_wins: int = 0
    points_delta: float = 0.0
    match_wins: int = 0
    match_losses: int = 0
    flawless_rounds: int = 0
    overdrive: int = 0
    b_side_win_rate: float = 0.0
    x_side_win_rate: float = 0.0


@dataclass
class ComboStats:
    """Per-combination rollup"""
    combo: str
    blade_line: str = "Unknown"
    type: str = "Unknown"
    tournaments: int = 0
    matches: int = 0
    total_wins: int = 0
    total_losses: int = 0
    total_points: int = 0
    points_given: int = 0
    win_rate: float = 0.0
    kd_ratio: float = 0.0
    points_delta: float = 0.0
    finish_distribution: Dict[str, int] = field(default_factory=dict)
    points_per_finish: Dict[str, int] = field(default_factory=dict)


@dataclass
class PartStats:
    """Per-part rollup, independent of the combination it appeared in"""
    part_name: str
    part_type: str
    matches: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    confidence: float = 0.0
    total_points: int = 0
    points_given: int = 0
    finish_distribution: Dict[str, int] = field(default_factory=dict)
    points_per_finish: Dict[str, int] = field(default_factory=dict)


@dataclass
class MatchData:
    """A classified match from the subject's point of view"""
    id: str
    tournament_id: str
    tournament_name: str
    tournament_date: Optional[date]
    round_number: int
    match_number: Optional[int]
    phase_number: Optional[int]
    player_beyblade: str
    opponent_name: str
    opponent_beyblade: str
    outcome: str
    winner: Optional[str]
    points_gained: int
    points_given: int
    is_win: bool
    tournament_officer: str
    round_key: str


@dataclass
class TournamentRound:
    """Rollup of one (tournament, round, officer) group"""
    tournament_name: str
    tournament_date: Optional[date]
    round_number: int
    mvp_bey: str = "N/A"
    win_loss: str = "0-0"
    kd_ratio: float = 0.0
    points_gained: int = 0
    points_given: int = 0
    matches: List[MatchData] = field(default_factory=list)


@dataclass
class FinishSlice:
    """Finish distribution entry"""
    name: str
    value: int


@dataclass
class PointsPerFinish:
    """Points earned per finish type"""
    finish: str
    points: int
    count: int


@dataclass
class RoleStats:
    """Totals per combination type"""
    wins: int = 0
    losses: int = 0
    kills: int = 0
    deaths: int = 0


@dataclass
class FunStats:
    """Session-level derived percentages"""
    clutch_factor: float = 0.0
    comeback_rate: float = 0.0
    first_strike_advantage: float = 0.0


@dataclass
class PlayerStats:
    """Everything derived for one subject player"""
    player_name: str
    overview: OverviewStats = field(default_factory=OverviewStats)
    combos: List[ComboStats] = field(default_factory=list)
    parts: List[PartStats] = field(default_factory=list)
    matches: List[MatchData] = field(default_factory=list)
    rounds: List[TournamentRound] = field(default_factory=list)
    finish_distribution: List[FinishSlice] = field(default_factory=list)
    points_per_finish: List[PointsPerFinish] = field(default_factory=list)
    role_stats: Dict[str, RoleStats] = field(
        default_factory=lambda: {t: RoleStats() for t in COMBO_TYPES}
    )
    fun_stats: FunStats = field(default_factory=FunStats)
    skipped_records: int = 0

    @classmethod
    def empty(cls, player_name: str) -> "PlayerStats":
        """No statistics available"""
        return cls(player_name=player_name)

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    def to_dict(self):
        return asdict(self)
