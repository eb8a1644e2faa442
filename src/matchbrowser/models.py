from __future__ import annotations
from typing import Optional, List, Literal
from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, Field, model_validator

MAX_PAGE_SIZE = 100

SortKey = Literal[
    "match_time",
    "id",
    "home_team",
    "away_team",
    "full_time_home_goals",
    "full_time_away_goals",
]


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"


class ResultCategory(str, Enum):
    HOME_WIN = "home_win"
    AWAY_WIN = "away_win"
    DRAW = "draw"


def result_from_score(home_goals: int, away_goals: int) -> str:
    if home_goals > away_goals:
        return ResultCategory.HOME_WIN.value
    if away_goals > home_goals:
        return ResultCategory.AWAY_WIN.value
    return ResultCategory.DRAW.value


class Team(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None


class League(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None


class Match(BaseModel):
    id: str
    home_team: str
    away_team: str
    match_time: datetime
    half_time_home_goals: int = Field(default=0, ge=0)
    half_time_away_goals: int = Field(default=0, ge=0)
    full_time_home_goals: int = Field(default=0, ge=0)
    full_time_away_goals: int = Field(default=0, ge=0)
    match_status: Optional[str] = None
    btts: bool = False
    comeback: bool = False
    result: Optional[str] = None
    league: Optional[str] = None
    country: Optional[str] = None
    season: Optional[str] = None

    @property
    def total_goals(self) -> int:
        return self.full_time_home_goals + self.full_time_away_goals

    @property
    def ht_score(self) -> str:
        return f"{self.half_time_home_goals}-{self.half_time_away_goals}"

    @property
    def ft_score(self) -> str:
        return f"{self.full_time_home_goals}-{self.full_time_away_goals}"


class MatchInsert(BaseModel):
    home_team: str = Field(min_length=1)
    away_team: str = Field(min_length=1)
    match_time: datetime
    half_time_home_goals: Optional[int] = Field(default=None, ge=0)
    half_time_away_goals: Optional[int] = Field(default=None, ge=0)
    full_time_home_goals: int = Field(ge=0)
    full_time_away_goals: int = Field(ge=0)

    @model_validator(mode="after")
    def _half_time_within_full_time(self) -> "MatchInsert":
        if self.half_time_home_goals is not None and self.half_time_home_goals > self.full_time_home_goals:
            raise ValueError("half_time_home_goals cannot exceed full_time_home_goals")
        if self.half_time_away_goals is not None and self.half_time_away_goals > self.full_time_away_goals:
            raise ValueError("half_time_away_goals cannot exceed full_time_away_goals")
        return self


class MatchFilters(BaseModel):
    """Every recognized match filter. Unset fields add no predicate.

    home_team / away_team: exact team name on that side.
    team: case-insensitive substring of either team name.
    btts / comeback: computed event flags.
    start_date / end_date: inclusive kickoff date range.
    league / country / season: exact match.
    min_/max_home_goals, min_/max_away_goals: inclusive full-time goal bounds.
    result: result category (home_win, away_win, draw).
    """

    home_team: Optional[str] = None
    away_team: Optional[str] = None
    team: Optional[str] = None
    btts: Optional[bool] = None
    comeback: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    league: Optional[str] = None
    country: Optional[str] = None
    season: Optional[str] = None
    min_home_goals: Optional[int] = Field(default=None, ge=0)
    max_home_goals: Optional[int] = Field(default=None, ge=0)
    min_away_goals: Optional[int] = Field(default=None, ge=0)
    max_away_goals: Optional[int] = Field(default=None, ge=0)
    result: Optional[ResultCategory] = None

    @model_validator(mode="after")
    def _check_ranges(self) -> "MatchFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        for side in ("home", "away"):
            low = getattr(self, f"min_{side}_goals")
            high = getattr(self, f"max_{side}_goals")
            if low is not None and high is not None and low > high:
                raise ValueError(f"min_{side}_goals must not exceed max_{side}_goals")
        return self

    @property
    def has_team_pair(self) -> bool:
        return bool(self.home_team and self.away_team)


class MatchSort(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)
    sort_key: SortKey = "match_time"
    sort_direction: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class AverageGoals(BaseModel):
    average_total_goals: float
    average_home_goals: float
    average_away_goals: float


class HeadToHeadStats(BaseModel):
    home_wins: int
    away_wins: int
    draws: int
    home_win_percentage: int
    away_win_percentage: int
    draw_percentage: int


class TeamStats(BaseModel):
    home_team: str
    away_team: str
    matches_count: int
    both_teams_scored_percentage: int
    average_goals: AverageGoals
    home_form_index: int = Field(ge=0, le=100)
    away_form_index: int = Field(ge=0, le=100)
    head_to_head_stats: HeadToHeadStats


class PoissonPrediction(BaseModel):
    home_goals: int
    away_goals: int


class EloPrediction(BaseModel):
    home_win_prob: float
    draw_prob: float
    away_win_prob: float


class ModelPredictions(BaseModel):
    random_forest: str
    poisson: PoissonPrediction
    elo: EloPrediction


class Prediction(BaseModel):
    home_team: str
    away_team: str
    home_expected_goals: float
    away_expected_goals: float
    both_teams_to_score_prob: int
    predicted_winner: Literal["home", "away", "draw"]
    confidence: float
    model_predictions: ModelPredictions


class MatchPage(BaseModel):
    matches: List[Match] = []
    total_count: int = 0
    page: int = 1
    page_size: int = 10
    team_analysis: Optional[TeamStats] = None
    prediction: Optional[Prediction] = None
    teams: List[str] = []
