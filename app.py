from __future__ import annotations
import logging
import os
from datetime import date
from functools import lru_cache
from typing import Optional, Literal
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse
from dotenv import load_dotenv
from pydantic import ValidationError

from api.analytics import build_match_page
from api.matches_repository import (
    check_connection,
    fetch_matches,
    get_leagues,
    get_teams,
    insert_match,
)
from api.store_client import (
    StoreClient,
    StoreQueryError,
    StoreUnavailableError,
    create_store_client,
)
from matchbrowser.export import matches_to_csv
from matchbrowser.models import (
    MAX_PAGE_SIZE,
    Match,
    MatchFilters,
    MatchInsert,
    MatchPage,
    MatchSort,
    SortKey,
)

load_dotenv()  # Load .env in local dev

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
)
logger = logging.getLogger(__name__)

APP = FastAPI(title="MatchBrowser API")


@lru_cache(maxsize=1)
def get_store_client() -> Optional[StoreClient]:
    # Built once from the environment; tests override this dependency
    return create_store_client()


def match_filters(
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    team: Optional[str] = None,
    btts: Optional[bool] = None,
    comeback: Optional[bool] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    league: Optional[str] = None,
    country: Optional[str] = None,
    season: Optional[str] = None,
    min_home_goals: Optional[int] = None,
    max_home_goals: Optional[int] = None,
    min_away_goals: Optional[int] = None,
    max_away_goals: Optional[int] = None,
    result: Optional[str] = None,
) -> MatchFilters:
    try:
        return MatchFilters(
            home_team=home_team,
            away_team=away_team,
            team=team,
            btts=btts,
            comeback=comeback,
            start_date=start_date,
            end_date=end_date,
            league=league,
            country=country,
            season=season,
            min_home_goals=min_home_goals,
            max_home_goals=max_home_goals,
            min_away_goals=min_away_goals,
            max_away_goals=max_away_goals,
            result=result,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


def match_sort(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    sort_key: SortKey = "match_time",
    sort_direction: Literal["asc", "desc"] = "desc",
) -> MatchSort:
    return MatchSort(page=page, page_size=page_size, sort_key=sort_key, sort_direction=sort_direction)


@APP.get("/api/matches", response_model=MatchPage)
def api_matches(
    filters: MatchFilters = Depends(match_filters),
    sort: MatchSort = Depends(match_sort),
    client: Optional[StoreClient] = Depends(get_store_client),
):
    return build_match_page(client, filters, sort)


@APP.post("/api/matches", response_model=Match, status_code=201)
def api_insert_match(
    match: MatchInsert,
    client: Optional[StoreClient] = Depends(get_store_client),
):
    if client is None:
        raise HTTPException(status_code=503, detail="Store not configured. Set SUPABASE_URL and SUPABASE_KEY.")
    try:
        return insert_match(client, match)
    except StoreUnavailableError as e:
        logger.error("Insert failed, store unreachable: %s", e)
        raise HTTPException(status_code=502, detail="Data store unreachable")
    except StoreQueryError as e:
        logger.error("Insert rejected by store: %s", e)
        raise HTTPException(status_code=502, detail=f"Insert rejected: {e.message}")


# Export the requested page of matches as CSV
@APP.get("/api/matches/export")
def api_export_matches(
    filters: MatchFilters = Depends(match_filters),
    sort: MatchSort = Depends(match_sort),
    client: Optional[StoreClient] = Depends(get_store_client),
):
    result = fetch_matches(client, filters, sort)
    csv_text = matches_to_csv(result.matches)
    return StreamingResponse(iter([csv_text]), media_type="text/csv", headers={
        "Content-Disposition": "attachment; filename=matches.csv"
    })


@APP.get("/api/teams")
def api_teams(client: Optional[StoreClient] = Depends(get_store_client)):
    teams = get_teams(client)
    return {"count": len(teams), "teams": [t.model_dump(mode="json") for t in teams]}


@APP.get("/api/leagues")
def api_leagues(client: Optional[StoreClient] = Depends(get_store_client)):
    leagues = get_leagues(client)
    return {"count": len(leagues), "leagues": [lg.model_dump(mode="json") for lg in leagues]}


@APP.get("/api/verify-store")
def verify_store(client: Optional[StoreClient] = Depends(get_store_client)):
    """
    Connectivity diagnostics for the data store.
    """
    response = {
        "configured": client is not None,
        "base_url": client.base_url if client is not None else None,
        "connection_ok": False,
    }
    if client is not None:
        response["connection_ok"] = check_connection(client)
    return response
