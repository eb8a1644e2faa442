"""
Shared fixtures: an in-memory stand-in for the hosted data store.

FakeStoreClient reuses the real StoreQuery builder, so repository code runs
unchanged; only execute()/insert() are answered from Python lists.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from api.store_client import StoreQuery, StoreResponse


def _naive_utc(value: Any) -> Any:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _row_matches(row: Dict[str, Any], column: Any, op: str, value: Any) -> bool:
    if op == "ilike_any":
        needle = str(value).lower()
        return any(needle in str(row.get(c) or "").lower() for c in column)
    cell = row.get(column)
    if cell is None:
        return False
    if isinstance(value, datetime):
        cell, value = _naive_utc(cell), _naive_utc(value)
    if op == "eq":
        return cell == value
    if op == "gte":
        return cell >= value
    if op == "lte":
        return cell <= value
    raise AssertionError(f"unsupported op {op}")


class FakeStoreClient:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.executed: List[StoreQuery] = []
        self.inserted: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None
        self.base_url = "https://fake.store"

    def table(self, name: str) -> StoreQuery:
        return StoreQuery(self, name)

    def execute(self, query: StoreQuery) -> StoreResponse:
        self.executed.append(query)
        if self.fail_with is not None:
            raise self.fail_with
        rows = [
            r for r in self.tables.get(query.table, [])
            if all(_row_matches(r, c, op, v) for c, op, v in query.filters)
        ]
        count = len(rows) if query.count else None
        for column, ascending in reversed(query.order_by):
            rows = sorted(rows, key=lambda r: r.get(column), reverse=not ascending)
        start = query.offset or 0
        end = start + query.row_limit if query.row_limit is not None else None
        rows = [] if query.head else rows[start:end]
        return StoreResponse(data=[dict(r) for r in rows], count=count)

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        if self.fail_with is not None:
            raise self.fail_with
        stored = {"id": len(self.tables.get(table, [])) + 1000, **row}
        self.tables.setdefault(table, []).append(stored)
        self.inserted.append(stored)
        return [stored]


def make_row(
    id: int,
    home: str,
    away: str,
    when: str,
    fthg: int,
    ftag: int,
    hthg: int = 0,
    htag: int = 0,
    league: str = "Premier League",
    season: str = "2023/2024",
) -> Dict[str, Any]:
    if fthg > ftag:
        result = "home_win"
    elif ftag > fthg:
        result = "away_win"
    else:
        result = "draw"
    comeback = (hthg < htag and fthg >= ftag) or (htag < hthg and ftag >= fthg)
    return {
        "id": id,
        "home_team": home,
        "away_team": away,
        "match_time": when,
        "half_time_home_goals": hthg,
        "half_time_away_goals": htag,
        "full_time_home_goals": fthg,
        "full_time_away_goals": ftag,
        "match_status": "finished",
        "btts_computed": fthg > 0 and ftag > 0,
        "comeback_computed": comeback,
        "result_computed": result,
        "league": league,
        "country": "England",
        "season": season,
    }


@pytest.fixture
def match_rows() -> List[Dict[str, Any]]:
    return [
        make_row(1, "Arsenal", "Chelsea", "2024-01-06T15:00:00+00:00", 2, 1, 0, 1),
        make_row(2, "Chelsea", "Arsenal", "2024-02-10T17:30:00+00:00", 0, 3, 0, 1),
        make_row(3, "Liverpool", "Arsenal", "2024-02-24T12:30:00+00:00", 2, 2, 1, 0),
        make_row(4, "Arsenal", "Everton", "2024-03-09T15:00:00+00:00", 2, 0, 1, 0),
        make_row(5, "Everton", "Chelsea", "2024-03-16T15:00:00+00:00", 1, 1, 1, 0),
        make_row(6, "Chelsea", "Liverpool", "2024-04-04T20:00:00+00:00", 2, 3, 2, 1, season="2023/2024"),
        make_row(7, "Liverpool", "Everton", "2024-04-20T15:00:00+00:00", 2, 0, 0, 0),
        make_row(8, "Arsenal", "Chelsea", "2024-08-24T15:00:00+00:00", 1, 1, 0, 0, season="2024/2025"),
    ]


@pytest.fixture
def store(match_rows) -> FakeStoreClient:
    return FakeStoreClient({
        "matches": match_rows,
        "teams": [
            {"id": 3, "name": "Liverpool", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": 1, "name": "Arsenal", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": 4, "name": "Everton", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": 2, "name": "Chelsea", "created_at": "2024-01-01T00:00:00+00:00"},
        ],
        "leagues": [
            {"id": 2, "name": "Premier League", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": 1, "name": "Championship", "created_at": "2024-01-01T00:00:00+00:00"},
        ],
    })
