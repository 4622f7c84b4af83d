"""
Rating Periods

Batch Glicko-2 updates for a whole roster. Within a period every player is
rated against the opponents' start-of-period ratings, so the update runs in
explicit phases:

1. Collect: build each player's GameOutcome list from a frozen snapshot
2. Compute: call update_rating() per player (independent, optionally threaded)
3. Commit: write all new ratings into a fresh mapping

Players known before the period but without games take the zero-game step
(RD grows, rating and volatility unchanged).

Standings-only imports carry no pairings. outcomes_from_standings() turns
each win, loss and draw into a game against an average opponent so such an
import can still be rated.

Usage:
    from tabletop_meta.rating.periods import run_rating_period, PeriodGame
    result = run_rating_period(prior, [PeriodGame("alice", "bob", 1.0)])
    result.ratings["alice"]
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType

import pandas as pd

from tabletop_meta.config import AVERAGE_OPPONENT_RATING, AVERAGE_OPPONENT_RD
from tabletop_meta.models import GameOutcome, Rating, TournamentRecord
from tabletop_meta.rating.glicko2 import update_rating
from tabletop_meta.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

HISTORY_COLUMNS = [
    "period",
    "player",
    "rating_before",
    "rd_before",
    "rating_after",
    "rd_after",
    "volatility_after",
    "delta",
    "games_in_period",
]


@dataclass(frozen=True)
class PeriodGame:
    """One pairing in a period, scored from player's side (1, 0.5 or 0)."""
    player: str
    opponent: str
    score: float


@dataclass(frozen=True)
class RatingPeriodResult:
    ratings: dict[str, Rating] = field(default_factory=dict)
    game_counts: dict[str, int] = field(default_factory=dict)


# --- Phase 1: Collect ---
def collect_outcomes(
    games: Iterable[PeriodGame],
    snapshot: Mapping[str, Rating],
) -> dict[str, list[GameOutcome]]:
    """
    Build every player's outcome list from the start-of-period snapshot.

    Each pairing produces an outcome for both sides (score and 1 - score).
    Players missing from the snapshot are treated as new (default Rating).

    Args:
        games: Pairings observed in the period
        snapshot: Ratings at the start of the period (never modified)

    Returns:
        Player -> list of GameOutcome, in game order
    """
    outcomes: dict[str, list[GameOutcome]] = defaultdict(list)
    default = Rating()

    for game in games:
        player_rating = snapshot.get(game.player, default)
        opponent_rating = snapshot.get(game.opponent, default)

        outcomes[game.player].append(
            GameOutcome(opponent_rating.rating, opponent_rating.rd, game.score)
        )
        outcomes[game.opponent].append(
            GameOutcome(player_rating.rating, player_rating.rd, 1 - game.score)
        )

    return dict(outcomes)


def outcomes_from_standings(record: TournamentRecord) -> dict[str, list[GameOutcome]]:
    """
    Synthesize a period from standings that carry no pairings.

    Every win, loss and draw of a player becomes one game against an
    average opponent (AVERAGE_OPPONENT_RATING, AVERAGE_OPPONENT_RD). Players
    are keyed by resolved user id when linked, else by name. Players with
    no games are left out.
    """
    outcomes: dict[str, list[GameOutcome]] = {}

    for player in record.players:
        games = (
            [1.0] * player.wins
            + [0.0] * player.losses
            + [0.5] * player.draws
        )
        if not games:
            continue
        key = player.user_id or player.name
        outcomes.setdefault(key, []).extend(
            GameOutcome(AVERAGE_OPPONENT_RATING, AVERAGE_OPPONENT_RD, score)
            for score in games
        )

    return outcomes


# --- Phase 2 + 3: Compute, Commit ---
def apply_outcomes(
    prior: Mapping[str, Rating],
    outcomes: Mapping[str, list[GameOutcome]],
    max_workers: int | None = None,
) -> RatingPeriodResult:
    """
    Compute and commit one period from already collected outcomes.

    Args:
        prior: Ratings at the start of the period (never modified)
        outcomes: Player -> outcomes built against the same snapshot
        max_workers: Thread pool size; None or 1 computes sequentially

    Returns:
        RatingPeriodResult covering every player in prior or outcomes
    """
    players = list(dict.fromkeys([*prior, *outcomes]))

    def compute(player):
        return update_rating(prior.get(player, Rating()), outcomes.get(player, []))

    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            updated = list(executor.map(compute, players))
    else:
        updated = [compute(player) for player in players]

    ratings = dict(zip(players, updated))
    game_counts = {player: len(outcomes.get(player, [])) for player in players}

    logger.debug(
        f"Rated {sum(1 for n in game_counts.values() if n)} active and "
        f"{sum(1 for n in game_counts.values() if not n)} idle players"
    )
    return RatingPeriodResult(ratings=ratings, game_counts=game_counts)


def run_rating_period(
    prior: Mapping[str, Rating],
    games: Iterable[PeriodGame],
    max_workers: int | None = None,
) -> RatingPeriodResult:
    """
    Run one rating period over pairings.

    Args:
        prior: Ratings before the period
        games: Pairings played in the period
        max_workers: Thread pool size for the compute phase

    Returns:
        RatingPeriodResult with new ratings and per-player game counts
    """
    snapshot = MappingProxyType(dict(prior))
    outcomes = collect_outcomes(games, snapshot)
    return apply_outcomes(snapshot, outcomes, max_workers=max_workers)


def run_standings_period(
    prior: Mapping[str, Rating],
    record: TournamentRecord,
    max_workers: int | None = None,
) -> RatingPeriodResult:
    """Run one rating period from a standings-only TournamentRecord."""
    snapshot = MappingProxyType(dict(prior))
    outcomes = outcomes_from_standings(record)
    logger.info(f"Rating {len(outcomes)} players from standings of {record.event_name}")
    return apply_outcomes(snapshot, outcomes, max_workers=max_workers)


def run_rating_periods(
    periods: Iterable[tuple[str, Iterable[PeriodGame]]],
    prior: Mapping[str, Rating] | None = None,
) -> tuple[dict[str, Rating], pd.DataFrame]:
    """
    Run an ordered sequence of rating periods.

    Args:
        periods: (period id, pairings) in chronological order
        prior: Ratings before the first period (default: nobody rated)

    Returns:
        Tuple of (final ratings, history DataFrame with one row per player
        per period and HISTORY_COLUMNS as columns)
    """
    ratings: dict[str, Rating] = dict(prior or {})
    history = []

    for period_id, games in periods:
        result = run_rating_period(ratings, games)

        for player, after in result.ratings.items():
            before = ratings.get(player, Rating())
            history.append({
                "period": period_id,
                "player": player,
                "rating_before": before.rating,
                "rd_before": before.rd,
                "rating_after": after.rating,
                "rd_after": after.rd,
                "volatility_after": after.volatility,
                "delta": after.rating - before.rating,
                "games_in_period": result.game_counts[player],
            })

        ratings = result.ratings
        logger.info(f"Period {period_id}: {len(result.ratings)} players rated")

    return ratings, pd.DataFrame(history, columns=HISTORY_COLUMNS)
