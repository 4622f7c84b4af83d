"""
Standings Rows

Row handling shared by the tournament CSV dialects. A dialect resolves its
own header aliases; everything after that (player name requirement,
placement rules, count coercion, detachment fallback) is the same for all of
them and lives here.

Usage:
    from tabletop_meta.ingestion.standings import build_standings
    players = build_standings(df, columns, source="bcp-csv")
"""

import pandas as pd

from tabletop_meta.ingestion.detachment import extract_detachment
from tabletop_meta.models import TournamentPlayer
from tabletop_meta.utils import (
    LEADING_INT_RE,
    cell,
    coerce_int,
    setup_logging,
)

# --- Module Logger ---
logger = setup_logging(__name__)


def read_count(row: dict, column: str | None) -> int:
    """Read a W/L/D count; missing or non-numeric is 0 and negatives clamp to 0."""
    return max(coerce_int(cell(row, column)), 0)


def read_placement(raw: str, seen: set[int], source: str, row_number: int) -> int | None:
    """
    Read an explicit placement value.

    The leading integer is used, so "1st" reads as 1. Values that are not
    numeric, not positive, or already taken by an earlier row in the same
    event are reported and recorded as absent.

    Args:
        raw: Cell text from the placement column
        seen: Placements already assigned in this event (updated in place)
        source: Dialect label for diagnostics
        row_number: 1-based data row number for diagnostics

    Returns:
        The placement, or None when unusable
    """
    match = LEADING_INT_RE.match(raw)
    if not match:
        logger.warning(f"{source}: row {row_number} has non-numeric placement {raw!r}")
        return None

    placement = int(match.group(1))
    if placement < 1:
        logger.warning(f"{source}: row {row_number} has non-positive placement {placement}")
        return None
    if placement in seen:
        logger.warning(f"{source}: row {row_number} repeats placement {placement}")
        return None

    seen.add(placement)
    return placement


def player_from_row(
    row: dict,
    columns: dict[str, str | None],
    name: str,
    placement: int | None,
) -> TournamentPlayer:
    """
    Build a TournamentPlayer from one source row.

    The detachment column wins when the dialect has one and the cell is
    filled; otherwise the detachment is read from the army list text.
    """
    list_text = cell(row, columns.get("list_text")) or None
    detachment = cell(row, columns.get("detachment")) or extract_detachment(list_text)

    return TournamentPlayer(
        name=name,
        placement=placement,
        faction=cell(row, columns.get("faction")) or None,
        detachment=detachment,
        wins=read_count(row, columns.get("wins")),
        losses=read_count(row, columns.get("losses")),
        draws=read_count(row, columns.get("draws")),
        points=coerce_int(cell(row, columns.get("points"))),
        list_text=list_text,
    )


def build_standings(
    df: pd.DataFrame,
    columns: dict[str, str | None],
    source: str,
) -> list[TournamentPlayer]:
    """
    Convert a single-event standings DataFrame into players, in row order.

    Rows without a player name are dropped with a warning. When the export
    has no placement column, row order over the kept rows is the placement.

    Args:
        df: Standings as read by read_csv_text()
        columns: Canonical field -> source column (from resolve_columns())
        source: Dialect label for diagnostics

    Returns:
        List of TournamentPlayer in source order
    """
    players: list[TournamentPlayer] = []
    seen_placements: set[int] = set()
    placement_column = columns.get("placement")

    for row_number, row in enumerate(df.to_dict("records"), start=1):
        name = cell(row, columns.get("player_name"))
        if not name:
            logger.warning(f"{source}: row {row_number} has no player name, skipping")
            continue

        if placement_column is None:
            placement = len(players) + 1
        else:
            placement = read_placement(cell(row, placement_column), seen_placements, source, row_number)

        players.append(player_from_row(row, columns, name, placement))

    return players
