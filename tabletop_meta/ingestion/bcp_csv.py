"""
BCP Results Parser

Best Coast Pairings exports final standings as CSV, roughly:

    Place,Player Name,Faction,W,L,D,Total Points,List

Column names vary between event types and export versions, so headers are
matched case-insensitively against the alias table below. The export does
not carry event metadata; the caller supplies it through EventOptions.

Usage:
    from tabletop_meta.ingestion.bcp_csv import parse_bcp_csv
    record = parse_bcp_csv(csv_text, EventOptions("London GT", "2025-06-14"))
"""

import pandas as pd

from tabletop_meta.ingestion.standings import build_standings
from tabletop_meta.models import EventOptions, TournamentImportFormat, TournamentRecord
from tabletop_meta.utils import (
    clean_text,
    read_csv_text,
    resolve_columns,
    setup_logging,
)

# --- Module Logger ---
logger = setup_logging(__name__)

# Canonical field -> accepted header spellings, first match wins
BCP_HEADER_ALIASES = {
    "placement": ["place", "placement", "rank", "finish"],
    "player_name": ["player name", "name", "player", "player_name"],
    "faction": ["faction", "army", "faction/army"],
    "detachment": ["detachment", "sub faction", "subfaction", "sub_faction"],
    "wins": ["w", "wins", "win"],
    "losses": ["l", "losses", "loss"],
    "draws": ["d", "draws", "draw"],
    "points": ["points", "total points", "vp", "total vp", "tournament points"],
    "list_text": ["list", "army list", "list text", "roster"],
}

# Some BCP exports split the player name over two columns
FIRST_NAME_COLUMN = "first name"
LAST_NAME_COLUMN = "last name"
JOINED_NAME_COLUMN = "_player_name"


def _join_split_names(df: pd.DataFrame) -> pd.DataFrame:
    """Add a joined player name column built from First Name / Last Name."""
    first = df[FIRST_NAME_COLUMN].map(clean_text)
    last = df[LAST_NAME_COLUMN].map(clean_text)
    joined = (first + " " + last).str.strip()
    return df.assign(**{JOINED_NAME_COLUMN: joined})


def parse_bcp_csv(text: str, options: EventOptions) -> TournamentRecord:
    """
    Parse a BCP standings export into a TournamentRecord.

    Args:
        text: Raw CSV export
        options: Event name, date and format label for the record

    Returns:
        TournamentRecord with one player per kept row, in source order

    Raises:
        ValueError: If text exceeds MAX_INPUT_SIZE
        UnreadableInputError: If the text cannot be read as CSV at all
    """
    df = read_csv_text(text)
    columns = resolve_columns(df.columns, BCP_HEADER_ALIASES)

    if (
        columns["player_name"] is None
        and FIRST_NAME_COLUMN in df.columns
        and LAST_NAME_COLUMN in df.columns
    ):
        df = _join_split_names(df)
        columns["player_name"] = JOINED_NAME_COLUMN

    players = build_standings(df, columns, source=TournamentImportFormat.BCP_CSV.value)
    logger.info(f"Parsed {len(players)} players from BCP export ({len(df)} rows)")

    return TournamentRecord(
        event_name=options.event_name,
        event_date=options.event_date,
        event_format=options.event_format,
        source_format=TournamentImportFormat.BCP_CSV,
        players=tuple(players),
    )
