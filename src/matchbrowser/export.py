from __future__ import annotations
from typing import Sequence
import io

import pandas as pd

from .models import Match

EXPORT_COLUMNS = ["Date", "Home Team", "Away Team", "HT Score", "FT Score", "BTTS", "Comeback", "Result"]


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def matches_to_frame(matches: Sequence[Match]) -> pd.DataFrame:
    rows = [
        {
            "Date": m.match_time.strftime("%Y-%m-%d %H:%M"),
            "Home Team": m.home_team,
            "Away Team": m.away_team,
            "HT Score": m.ht_score,
            "FT Score": m.ft_score,
            "BTTS": _yes_no(m.btts),
            "Comeback": _yes_no(m.comeback),
            "Result": m.result or "",
        }
        for m in matches
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def matches_to_csv(matches: Sequence[Match]) -> str:
    buf = io.StringIO()
    matches_to_frame(matches).to_csv(buf, index=False)
    return buf.getvalue()
