"""
Meta Aggregates

Faction and detachment statistics over imported tournament records, the
numbers behind the meta dashboards. Draws count as half a win in win rates.

Usage:
    from tabletop_meta.aggregate import compute_faction_stats
    stats = compute_faction_stats(records)
"""

import numpy as np
import pandas as pd

from tabletop_meta.models import TournamentRecord

RESULT_COLUMNS = [
    "event_name",
    "event_date",
    "event_format",
    "player_name",
    "user_id",
    "placement",
    "faction",
    "detachment",
    "wins",
    "losses",
    "draws",
    "points",
]

STAT_COLUMNS = ["players", "wins", "losses", "draws", "games", "win_rate", "representation_pct"]


def records_to_frame(records: list[TournamentRecord]) -> pd.DataFrame:
    """
    Flatten records into one row per player per event.

    Returns:
        DataFrame with RESULT_COLUMNS (empty when there are no players)
    """
    rows = [
        {
            "event_name": record.event_name,
            "event_date": record.event_date,
            "event_format": record.event_format,
            "player_name": player.name,
            "user_id": player.user_id,
            "placement": player.placement,
            "faction": player.faction,
            "detachment": player.detachment,
            "wins": player.wins,
            "losses": player.losses,
            "draws": player.draws,
            "points": player.points,
        }
        for record in records
        for player in record.players
    ]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def _group_stats(df: pd.DataFrame, key: str) -> pd.DataFrame:
    """Win/loss totals, win rate and share of entries per value of key."""
    df = df[df[key].notna() & (df[key].astype(str).str.strip() != "")]
    if df.empty:
        return pd.DataFrame(columns=[key] + STAT_COLUMNS)

    # Players are counted by user id when linked, else by name
    df = df.assign(player_key=df["user_id"].fillna(df["player_name"].str.casefold()))

    stats = df.groupby(key).agg(
        players=("player_key", "nunique"),
        entries=("player_key", "size"),
        wins=("wins", "sum"),
        losses=("losses", "sum"),
        draws=("draws", "sum"),
    ).reset_index()

    stats["games"] = stats["wins"] + stats["losses"] + stats["draws"]
    stats["win_rate"] = np.where(
        stats["games"] > 0,
        (stats["wins"] + 0.5 * stats["draws"]) / stats["games"].where(stats["games"] > 0, 1),
        np.nan,
    )
    stats["representation_pct"] = stats["entries"] / stats["entries"].sum() * 100

    stats = stats.sort_values(["entries", key], ascending=[False, True]).reset_index(drop=True)
    return stats[[key] + STAT_COLUMNS]


def compute_faction_stats(records: list[TournamentRecord]) -> pd.DataFrame:
    """
    Per-faction results across records.

    Returns:
        DataFrame with columns [faction, players, wins, losses, draws,
        games, win_rate, representation_pct], most played faction first.
        Players without a faction are ignored.
    """
    return _group_stats(records_to_frame(records), "faction")


def compute_detachment_stats(records: list[TournamentRecord]) -> pd.DataFrame:
    """Per-detachment results across records, same columns as compute_faction_stats()."""
    return _group_stats(records_to_frame(records), "detachment")
