"""
Tests for match page assembly (matches + count + analysis + prediction + teams).
"""

from api.analytics import build_match_page
from api.store_client import StoreUnavailableError
from matchbrowser.models import MatchFilters, MatchSort


class TestBuildMatchPage:

    def test_plain_listing_has_no_analysis(self, store):
        page = build_match_page(store, MatchFilters(btts=True), MatchSort(page_size=2))
        assert page.total_count == 5
        assert len(page.matches) == 2
        assert page.page == 1
        assert page.page_size == 2
        assert page.team_analysis is None
        assert page.prediction is None
        assert page.teams == ["Arsenal", "Chelsea", "Everton", "Liverpool"]

    def test_team_pair_adds_analysis_and_prediction(self, store):
        page = build_match_page(store, MatchFilters(home_team="Arsenal", away_team="Chelsea"))
        # Rows 1 (2-1) and 8 (1-1) are Arsenal at home to Chelsea
        assert page.total_count == 2
        stats = page.team_analysis
        assert stats is not None
        assert stats.home_team == "Arsenal"
        assert stats.away_team == "Chelsea"
        assert stats.matches_count == 2
        assert stats.head_to_head_stats.home_wins == 1
        assert stats.head_to_head_stats.draws == 1
        assert stats.head_to_head_stats.away_wins == 0
        assert stats.both_teams_scored_percentage == 100
        assert stats.average_goals.average_total_goals == 2.5
        # Arsenal W, D -> 4 / 6; Chelsea L, D -> 1 / 6
        assert stats.home_form_index == 67
        assert stats.away_form_index == 17
        assert page.prediction is not None
        assert page.prediction.home_team == "Arsenal"

    def test_pair_without_meetings_has_no_analysis(self, store):
        page = build_match_page(store, MatchFilters(home_team="Everton", away_team="Arsenal"))
        assert page.matches == []
        assert page.total_count == 0
        assert page.team_analysis is None
        assert page.prediction is None

    def test_single_team_filter_has_no_analysis(self, store):
        page = build_match_page(store, MatchFilters(home_team="Arsenal"))
        assert page.total_count == 3
        assert page.team_analysis is None

    def test_unconfigured_store_returns_empty_page(self):
        page = build_match_page(None, MatchFilters(home_team="A", away_team="B"))
        assert page.matches == []
        assert page.total_count == 0
        assert page.teams == []
        assert page.team_analysis is None

    def test_store_outage_returns_empty_page(self, store):
        store.fail_with = StoreUnavailableError("down")
        page = build_match_page(store)
        assert page.matches == []
        assert page.total_count == 0
        assert page.teams == []
