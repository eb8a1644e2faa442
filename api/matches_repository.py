from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
import logging
import uuid
from typing import Optional, Dict, Any, List
import pandas as pd
from pydantic import ValidationError

from matchbrowser.models import (
    League,
    Match,
    MatchFilters,
    MatchInsert,
    MatchSort,
    MatchStatus,
    Team,
    result_from_score,
)
from .store_client import (
    StoreClient,
    StoreError,
    StoreQuery,
    StoreQueryError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

MATCHES_TABLE = "matches"
TEAMS_TABLE = "teams"
LEAGUES_TABLE = "leagues"

HOME_PLACEHOLDER = "Home Team"
AWAY_PLACEHOLDER = "Away Team"

_UNFINISHED = {MatchStatus.SCHEDULED.value, MatchStatus.LIVE.value}


@dataclass
class MatchQueryResult:
    """One page of matches plus the unpaginated total.

    On a failed read, `matches` is empty, `total_count` is 0 and `error`
    holds the StoreError that caused it.
    """

    matches: List[Match] = field(default_factory=list)
    total_count: int = 0
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _safe_int(x) -> int:
    if x is None:
        return 0
    try:
        return max(0, int(float(x)))
    except (TypeError, ValueError):
        return 0


def _parse_time(x) -> datetime:
    if x is None or x == "":
        return datetime.now(timezone.utc)
    ts = pd.to_datetime(x, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return datetime.now(timezone.utc)
    return ts.to_pydatetime()


def _opt_str(x) -> Optional[str]:
    if x is None or x == "":
        return None
    return str(x)


def normalize_match(raw: Dict[str, Any]) -> Match:
    """
    Map a raw `matches` row into a fully populated Match.
    Missing id -> generated placeholder, missing kickoff -> now (UTC),
    missing team -> placeholder label, missing goals -> 0, missing flags -> False.
    """
    raw_id = raw.get("id")
    match_id = str(raw_id) if raw_id is not None and str(raw_id) != "" else f"gen-{uuid.uuid4().hex}"
    fthg = _safe_int(raw.get("full_time_home_goals"))
    ftag = _safe_int(raw.get("full_time_away_goals"))
    status = _opt_str(raw.get("match_status"))
    result = _opt_str(raw.get("result_computed"))
    if result is None and status not in _UNFINISHED:
        result = result_from_score(fthg, ftag)

    return Match(
        id=match_id,
        home_team=_opt_str(raw.get("home_team")) or HOME_PLACEHOLDER,
        away_team=_opt_str(raw.get("away_team")) or AWAY_PLACEHOLDER,
        match_time=_parse_time(raw.get("match_time")),
        half_time_home_goals=_safe_int(raw.get("half_time_home_goals")),
        half_time_away_goals=_safe_int(raw.get("half_time_away_goals")),
        full_time_home_goals=fthg,
        full_time_away_goals=ftag,
        match_status=status,
        btts=bool(raw.get("btts_computed") or False),
        comeback=bool(raw.get("comeback_computed") or False),
        result=result,
        league=_opt_str(raw.get("league")),
        country=_opt_str(raw.get("country")),
        season=_opt_str(raw.get("season")),
    )


def apply_filters(query: StoreQuery, filters: MatchFilters) -> StoreQuery:
    if filters.home_team:
        query = query.eq("home_team", filters.home_team)
    if filters.away_team:
        query = query.eq("away_team", filters.away_team)
    if filters.team:
        query = query.ilike_any(["home_team", "away_team"], filters.team)
    if filters.btts is not None:
        query = query.eq("btts_computed", filters.btts)
    if filters.comeback is not None:
        query = query.eq("comeback_computed", filters.comeback)
    if filters.start_date:
        query = query.gte("match_time", datetime.combine(filters.start_date, time.min))
    if filters.end_date:
        # Inclusive of the whole end day
        query = query.lte("match_time", datetime.combine(filters.end_date, time.max))
    if filters.league:
        query = query.eq("league", filters.league)
    if filters.country:
        query = query.eq("country", filters.country)
    if filters.season:
        query = query.eq("season", filters.season)
    if filters.min_home_goals is not None:
        query = query.gte("full_time_home_goals", filters.min_home_goals)
    if filters.max_home_goals is not None:
        query = query.lte("full_time_home_goals", filters.max_home_goals)
    if filters.min_away_goals is not None:
        query = query.gte("full_time_away_goals", filters.min_away_goals)
    if filters.max_away_goals is not None:
        query = query.lte("full_time_away_goals", filters.max_away_goals)
    if filters.result is not None:
        query = query.eq("result_computed", filters.result.value)
    return query


def count_matches(client: StoreClient, filters: MatchFilters) -> int:
    """Rows matching `filters`, ignoring pagination. Raises StoreError."""
    query = client.table(MATCHES_TABLE).select("*", count="exact", head=True)
    resp = apply_filters(query, filters).execute()
    return int(resp.count or 0)


def fetch_matches(
    client: Optional[StoreClient],
    filters: Optional[MatchFilters] = None,
    sort: Optional[MatchSort] = None,
) -> MatchQueryResult:
    filters = filters or MatchFilters()
    sort = sort or MatchSort()
    if client is None:
        logger.error("Store client is not initialized. Check your environment variables.")
        return MatchQueryResult(error=StoreUnavailableError("Store client is not initialized"))

    query = apply_filters(client.table(MATCHES_TABLE).select("*"), filters)
    query = query.order(sort.sort_key, ascending=sort.sort_direction == "asc")
    if sort.sort_key != "id":
        # Tie-breaker so page boundaries are stable
        query = query.order("id", ascending=True)
    query = query.range(sort.offset, sort.offset + sort.page_size - 1)

    try:
        total = count_matches(client, filters)
        resp = query.execute()
    except StoreError as e:
        logger.error("Error fetching matches: %s", e)
        return MatchQueryResult(error=e)

    matches = [normalize_match(r) for r in resp.data]
    logger.debug("Fetched %d of %d matches (page %d)", len(matches), total, sort.page)
    return MatchQueryResult(matches=matches, total_count=total)


def insert_match(client: Optional[StoreClient], match: MatchInsert) -> Match:
    """Append one row to `matches`. Every failure propagates."""
    if client is None:
        raise StoreUnavailableError("Store client is not initialized")
    rows = client.insert(MATCHES_TABLE, match.model_dump(mode="json", exclude_none=True))
    if not rows:
        raise StoreQueryError("Insert returned no rows")
    logger.info("Inserted match %s vs %s", match.home_team, match.away_team)
    return normalize_match(rows[0])


def _read_rows(client: Optional[StoreClient], table: str, columns: str = "*") -> List[Dict[str, Any]]:
    if client is None:
        logger.error("Store client is not initialized; %s unavailable", table)
        return []
    try:
        return client.table(table).select(columns).order("name").execute().data
    except StoreError as e:
        logger.error("Error fetching %s: %s", table, e)
        return []


def _parse_rows(model, rows: List[Dict[str, Any]], table: str) -> list:
    out = []
    for r in rows:
        try:
            out.append(model(**r))
        except ValidationError as e:
            logger.warning("Skipping invalid %s row %r: %s", table, r, e)
    return out


def get_leagues(client: Optional[StoreClient]) -> List[League]:
    return _parse_rows(League, _read_rows(client, LEAGUES_TABLE), LEAGUES_TABLE)


def get_teams(client: Optional[StoreClient]) -> List[Team]:
    return _parse_rows(Team, _read_rows(client, TEAMS_TABLE), TEAMS_TABLE)


def get_all_team_names(client: Optional[StoreClient]) -> List[str]:
    return [str(r["name"]) for r in _read_rows(client, TEAMS_TABLE, "name") if r.get("name")]


def get_team_by_name(client: Optional[StoreClient], name: str) -> Optional[Team]:
    if client is None:
        return None
    try:
        rows = client.table(TEAMS_TABLE).select("*").eq("name", name).limit(1).execute().data
    except StoreError as e:
        logger.warning("Team lookup failed for %s: %s", name, e)
        return None
    teams = _parse_rows(Team, rows, TEAMS_TABLE)
    return teams[0] if teams else None


def check_connection(client: Optional[StoreClient]) -> bool:
    if client is None:
        logger.error("Store client is not initialized")
        return False
    try:
        client.table(MATCHES_TABLE).select("id").limit(1).execute()
    except StoreError as e:
        logger.error("Store connection test failed: %s", e)
        return False
    logger.info("Store connection test successful")
    return True
