"""
Tests for two-phase rating periods.
"""

import pytest

from tabletop_meta.config import AVERAGE_OPPONENT_RATING, AVERAGE_OPPONENT_RD
from tabletop_meta.models import (
    GameOutcome,
    Rating,
    TournamentImportFormat,
    TournamentPlayer,
    TournamentRecord,
)
from tabletop_meta.rating.glicko2 import update_rating
from tabletop_meta.rating.periods import (
    HISTORY_COLUMNS,
    PeriodGame,
    collect_outcomes,
    outcomes_from_standings,
    run_rating_period,
    run_rating_periods,
    run_standings_period,
)


@pytest.fixture
def prior():
    return {
        "alice": Rating(1600, 80, 0.06),
        "bob": Rating(1450, 120, 0.06),
        "carol": Rating(1500, 200, 0.06),
    }


class TestCollectOutcomes:
    """Tests for phase 1 (collecting outcomes from the snapshot)."""

    def test_both_sides_get_an_outcome(self, prior):
        outcomes = collect_outcomes([PeriodGame("alice", "bob", 1.0)], prior)
        assert outcomes["alice"] == [GameOutcome(1450, 120, 1.0)]
        assert outcomes["bob"] == [GameOutcome(1600, 80, 0.0)]

    def test_draw_is_half_for_both(self, prior):
        outcomes = collect_outcomes([PeriodGame("alice", "bob", 0.5)], prior)
        assert outcomes["alice"][0].score == 0.5
        assert outcomes["bob"][0].score == 0.5

    def test_unknown_player_uses_default_rating(self, prior):
        outcomes = collect_outcomes([PeriodGame("newcomer", "alice", 0.0)], prior)
        assert outcomes["alice"] == [GameOutcome(1500, 350, 1.0)]


class TestRunRatingPeriod:
    """Tests for run_rating_period."""

    def test_uses_pre_period_ratings(self, prior):
        games = [PeriodGame("alice", "bob", 1.0), PeriodGame("bob", "carol", 1.0)]
        result = run_rating_period(prior, games)

        # bob's game against carol must see carol's start-of-period rating,
        # and alice's game must see bob's start-of-period rating
        expected_bob = update_rating(prior["bob"], [
            GameOutcome(1600, 80, 0.0),
            GameOutcome(1500, 200, 1.0),
        ])
        expected_alice = update_rating(prior["alice"], [GameOutcome(1450, 120, 1.0)])
        assert result.ratings["bob"] == expected_bob
        assert result.ratings["alice"] == expected_alice

    def test_order_independent(self, prior):
        games = [
            PeriodGame("alice", "bob", 1.0),
            PeriodGame("bob", "carol", 0.5),
            PeriodGame("carol", "alice", 1.0),
        ]
        forward = run_rating_period(prior, games)
        backward = run_rating_period(prior, list(reversed(games)))
        for player in prior:
            assert forward.ratings[player].rating == pytest.approx(backward.ratings[player].rating)
            assert forward.ratings[player].rd == pytest.approx(backward.ratings[player].rd)

    def test_parallel_matches_sequential(self, prior):
        games = [PeriodGame("alice", "bob", 1.0), PeriodGame("carol", "dave", 0.0)]
        sequential = run_rating_period(prior, games)
        parallel = run_rating_period(prior, games, max_workers=4)
        assert parallel == sequential

    def test_idle_players_take_zero_game_step(self, prior):
        result = run_rating_period(prior, [PeriodGame("alice", "bob", 1.0)])
        carol = result.ratings["carol"]
        assert carol.rating == prior["carol"].rating
        assert carol.rd > prior["carol"].rd
        assert result.game_counts == {"alice": 1, "bob": 1, "carol": 0}

    def test_new_players_added(self, prior):
        result = run_rating_period(prior, [PeriodGame("dave", "erin", 1.0)])
        assert result.ratings["dave"].rating > 1500
        assert result.ratings["erin"].rating < 1500

    def test_prior_not_mutated(self, prior):
        before = dict(prior)
        run_rating_period(prior, [PeriodGame("alice", "bob", 1.0)])
        assert prior == before


class TestStandingsPeriod:
    """Tests for rating standings-only imports against an average opponent."""

    @pytest.fixture
    def record(self):
        return TournamentRecord(
            event_name="Club RTT",
            event_date="2025-03-01",
            event_format="RTT",
            source_format=TournamentImportFormat.TABLETOP_ADMIRAL_CSV,
            players=(
                TournamentPlayer(name="Alice", placement=1, wins=3, user_id="u1"),
                TournamentPlayer(name="Bob", placement=2, wins=1, losses=1, draws=1),
                TournamentPlayer(name="Ghost", placement=3),
            ),
        )

    def test_outcomes_from_standings(self, record):
        outcomes = outcomes_from_standings(record)
        assert set(outcomes) == {"u1", "Bob"}
        assert [o.score for o in outcomes["Bob"]] == [1.0, 0.0, 0.5]
        assert all(
            (o.opponent_rating, o.opponent_rd) == (AVERAGE_OPPONENT_RATING, AVERAGE_OPPONENT_RD)
            for o in outcomes["u1"]
        )

    def test_run_standings_period(self, record):
        result = run_standings_period({}, record)
        assert result.ratings["u1"].rating > 1500
        assert result.game_counts["Bob"] == 3
        assert "Ghost" not in result.ratings


class TestRunRatingPeriods:
    """Tests for run_rating_periods."""

    def test_history_frame(self):
        periods = [
            ("2025-01", [PeriodGame("alice", "bob", 1.0)]),
            ("2025-02", [PeriodGame("alice", "carol", 0.0)]),
        ]
        ratings, history = run_rating_periods(periods)

        assert list(history.columns) == HISTORY_COLUMNS
        assert len(history) == 2 + 3  # bob stays rated in the second period
        bob_idle = history[(history["period"] == "2025-02") & (history["player"] == "bob")].iloc[0]
        assert bob_idle["games_in_period"] == 0
        assert bob_idle["rating_after"] == pytest.approx(bob_idle["rating_before"])
        assert ratings["alice"].rating == pytest.approx(
            history[history["player"] == "alice"]["rating_after"].iloc[-1]
        )

    def test_empty_sequence(self):
        ratings, history = run_rating_periods([], prior={"alice": Rating()})
        assert ratings == {"alice": Rating()}
        assert history.empty
        assert list(history.columns) == HISTORY_COLUMNS
