from __future__ import annotations
import logging
from typing import Optional

from matchbrowser.models import MatchFilters, MatchPage, MatchSort
from matchbrowser.stats import compute_team_stats, generate_prediction

from .matches_repository import fetch_matches, get_all_team_names
from .store_client import StoreClient

logger = logging.getLogger(__name__)


def build_match_page(
    client: Optional[StoreClient],
    filters: Optional[MatchFilters] = None,
    sort: Optional[MatchSort] = None,
) -> MatchPage:
    """
    Matches for one page plus the total count and team list. When both a home
    and an away team are filtered on, head-to-head analysis and a prediction
    are derived from the fetched rows; both stay None if the teams never met.
    """
    filters = filters or MatchFilters()
    sort = sort or MatchSort()

    result = fetch_matches(client, filters, sort)
    teams = get_all_team_names(client)

    team_analysis = None
    prediction = None
    if filters.has_team_pair:
        team_analysis = compute_team_stats(filters.home_team, filters.away_team, result.matches)
        if team_analysis is not None:
            prediction = generate_prediction(filters.home_team, filters.away_team, team_analysis)
        else:
            logger.info("No head-to-head data for %s vs %s", filters.home_team, filters.away_team)

    return MatchPage(
        matches=result.matches,
        total_count=result.total_count,
        page=sort.page,
        page_size=sort.page_size,
        team_analysis=team_analysis,
        prediction=prediction,
        teams=teams,
    )
