"""
Tabletop Admiral Results Parser

Tabletop Admiral exports final standings as CSV, roughly:

    Rank,Player,Faction,CP,Win,Loss,Draw,List

TA calls its tournament points "CP" (championship points) and reports
Win/Loss/Draw as integer counts. Like BCP, the export has no event metadata.

Usage:
    from tabletop_meta.ingestion.tabletop_admiral_csv import parse_tabletop_admiral_csv
    record = parse_tabletop_admiral_csv(csv_text, EventOptions("Club RTT", "2025-03-01", "RTT"))
"""

from tabletop_meta.ingestion.standings import build_standings
from tabletop_meta.models import EventOptions, TournamentImportFormat, TournamentRecord
from tabletop_meta.utils import read_csv_text, resolve_columns, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

TA_HEADER_ALIASES = {
    "placement": ["rank", "place", "placement", "finish", "position"],
    "player_name": ["player", "name", "player name", "player_name"],
    "faction": ["faction", "army", "faction/army"],
    "detachment": ["detachment", "sub_faction", "sub faction", "subfaction"],
    "points": ["cp", "championship points", "vp", "points", "total", "tournament points"],
    "wins": ["win", "wins", "w"],
    "losses": ["loss", "losses", "l"],
    "draws": ["draw", "draws", "d"],
    "list_text": ["list", "army list", "roster", "list text"],
}


def parse_tabletop_admiral_csv(text: str, options: EventOptions) -> TournamentRecord:
    """
    Parse a Tabletop Admiral standings export into a TournamentRecord.

    Args:
        text: Raw CSV export
        options: Event name, date and format label for the record

    Returns:
        TournamentRecord with one player per kept row, in source order
    """
    df = read_csv_text(text)
    columns = resolve_columns(df.columns, TA_HEADER_ALIASES)

    players = build_standings(df, columns, source=TournamentImportFormat.TABLETOP_ADMIRAL_CSV.value)
    logger.info(f"Parsed {len(players)} players from Tabletop Admiral export ({len(df)} rows)")

    return TournamentRecord(
        event_name=options.event_name,
        event_date=options.event_date,
        event_format=options.event_format,
        source_format=TournamentImportFormat.TABLETOP_ADMIRAL_CSV,
        players=tuple(players),
    )
