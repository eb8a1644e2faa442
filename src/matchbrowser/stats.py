from __future__ import annotations
from typing import Optional, Sequence, Union
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import logging
import random

import pandas as pd

from .models import (
    AverageGoals,
    EloPrediction,
    HeadToHeadStats,
    Match,
    ModelPredictions,
    PoissonPrediction,
    Prediction,
    TeamStats,
)

logger = logging.getLogger(__name__)

FORM_WINDOW = 10
NEUTRAL_FORM_INDEX = 50
_FRAME_COLUMNS = ["match_time", "home_team", "away_team", "home_goals", "away_goals"]


def round_half_up(value: float, digits: int = 0) -> Union[int, float]:
    """Round with ties away from zero (2.5 -> 3), unlike the built-in round()."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def matches_frame(matches: Sequence[Match]) -> pd.DataFrame:
    rows = [
        {
            "match_time": _utc(m.match_time),
            "home_team": m.home_team,
            "away_team": m.away_team,
            "home_goals": int(m.full_time_home_goals),
            "away_goals": int(m.full_time_away_goals),
        }
        for m in matches
    ]
    df = pd.DataFrame(rows, columns=_FRAME_COLUMNS)
    df["home_goals"] = df["home_goals"].astype(int)
    df["away_goals"] = df["away_goals"].astype(int)
    return df


def _pair_rows(df: pd.DataFrame, home_team: str, away_team: str) -> pd.DataFrame:
    """Rows where the two teams faced each other, either way round."""
    return df[
        ((df["home_team"] == home_team) & (df["away_team"] == away_team)) |
        ((df["home_team"] == away_team) & (df["away_team"] == home_team))
    ]


def _team_rows(df: pd.DataFrame, team: str) -> pd.DataFrame:
    return df[(df["home_team"] == team) | (df["away_team"] == team)]


def _recent(df: pd.DataFrame, last_n: int) -> pd.DataFrame:
    # Chronological tail; stable sort keeps input order for equal kickoffs
    return df.sort_values(by=["match_time"], kind="mergesort").tail(last_n)


def _pct(count: int, total: int) -> int:
    return round_half_up(count / total * 100)


def _form_index(df: pd.DataFrame, team: str, last_n: int) -> int:
    recent = _recent(_team_rows(df, team), last_n)
    if recent.empty:
        return NEUTRAL_FORM_INDEX
    is_home = recent["home_team"] == team
    gf = recent["home_goals"].where(is_home, recent["away_goals"])
    ga = recent["away_goals"].where(is_home, recent["home_goals"])
    # Form points: W=3, D=1, L=0 from the team perspective
    points = 3 * int((gf > ga).sum()) + int((gf == ga).sum())
    return round_half_up(points / (len(recent) * 3) * 100)


def calculate_form_index(team: str, matches: Sequence[Match], last_n: int = FORM_WINDOW) -> int:
    """0-100 score over the team's last `last_n` matches; 50 when it has none."""
    return _form_index(matches_frame(matches), team, last_n)


def compute_team_stats(
    home_team: str,
    away_team: str,
    matches: Sequence[Match],
    form_window: int = FORM_WINDOW,
) -> Optional[TeamStats]:
    """
    Head-to-head aggregates for the (home_team, away_team) pair over `matches`.
    Wins are credited to the named team whichever side it played on. Form
    indices use each team's recent matches from the whole of `matches`.
    Returns None when the two teams never met.
    """
    df = matches_frame(matches)
    h2h = _pair_rows(df, home_team, away_team)
    if h2h.empty:
        logger.debug("No head-to-head matches for %s vs %s", home_team, away_team)
        return None

    n = int(len(h2h))
    hg = h2h["home_goals"]
    ag = h2h["away_goals"]
    named_home_side = h2h["home_team"] == home_team
    home_team_goals = hg.where(named_home_side, ag)
    away_team_goals = ag.where(named_home_side, hg)

    home_wins = int((home_team_goals > away_team_goals).sum())
    away_wins = int((away_team_goals > home_team_goals).sum())
    draws = int((hg == ag).sum())
    btts = int(((hg > 0) & (ag > 0)).sum())

    return TeamStats(
        home_team=home_team,
        away_team=away_team,
        matches_count=n,
        both_teams_scored_percentage=_pct(btts, n),
        average_goals=AverageGoals(
            average_total_goals=round_half_up(int((hg + ag).sum()) / n, 2),
            average_home_goals=round_half_up(int(hg.sum()) / n, 2),
            average_away_goals=round_half_up(int(ag.sum()) / n, 2),
        ),
        home_form_index=_form_index(df, home_team, form_window),
        away_form_index=_form_index(df, away_team, form_window),
        head_to_head_stats=HeadToHeadStats(
            home_wins=home_wins,
            away_wins=away_wins,
            draws=draws,
            home_win_percentage=_pct(home_wins, n),
            away_win_percentage=_pct(away_wins, n),
            draw_percentage=_pct(draws, n),
        ),
    )


def generate_prediction(
    home_team: str,
    away_team: str,
    stats: TeamStats,
    rng: Optional[random.Random] = None,
) -> Prediction:
    """
    Placeholder forecast for a team pair.

    Values are drawn uniformly within fixed bounds and are not derived from
    `stats`: expected goals in [1, 3], BTTS probability in [60, 90],
    confidence in [0.4, 0.8], Elo-style probabilities home/away in [0.2, 0.6]
    and draw in [0.2, 0.5]. A real goal model (Poisson, Elo) is expected to
    replace this; only the shape and the bounds are part of the contract.
    """
    r = rng or random
    logger.debug(
        "Generating placeholder prediction for %s vs %s (%d h2h matches)",
        home_team, away_team, stats.matches_count,
    )
    home_expected = 1 + r.random() * 2
    away_expected = 1 + r.random() * 2
    winner = r.choice(["home", "away", "draw"])

    return Prediction(
        home_team=home_team,
        away_team=away_team,
        home_expected_goals=round_half_up(home_expected, 2),
        away_expected_goals=round_half_up(away_expected, 2),
        both_teams_to_score_prob=round_half_up(60 + r.random() * 30),
        predicted_winner=winner,
        confidence=round_half_up(0.4 + r.random() * 0.4, 2),
        model_predictions=ModelPredictions(
            random_forest=f"{winner}_win",
            poisson=PoissonPrediction(
                home_goals=round_half_up(home_expected),
                away_goals=round_half_up(away_expected),
            ),
            elo=EloPrediction(
                home_win_prob=round_half_up(0.2 + r.random() * 0.4, 2),
                draw_prob=round_half_up(0.2 + r.random() * 0.3, 2),
                away_win_prob=round_half_up(0.2 + r.random() * 0.4, 2),
            ),
        ),
    )
