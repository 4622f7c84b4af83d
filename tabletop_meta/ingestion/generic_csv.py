"""
Generic Tournament CSV Parser

The platform's own documented import format, for data not covered by the
BCP or Tabletop Admiral exports. Unlike those, it embeds event metadata and
one file may describe several events.

Required columns:
    event_name, event_date, player_name

Common columns:
    format, placement, faction, detachment, wins, losses, draws, points, list_text

Per-unit columns (optional):
    unit_name, content_id, unit_games_played, unit_avg_points

For per-unit data, repeat the player's row once per unit. Rows of the same
event with the same player name and placement are merged into one player
("1" and "1st" count as the same placement).

Usage:
    from tabletop_meta.ingestion.generic_csv import parse_generic_csv
    records = parse_generic_csv(csv_text)
"""

from dataclasses import replace

from tabletop_meta.config import DEFAULT_EVENT_FORMAT
from tabletop_meta.ingestion.standings import player_from_row, read_placement
from tabletop_meta.models import (
    TournamentImportFormat,
    TournamentPlayer,
    TournamentRecord,
    UnitResult,
)
from tabletop_meta.utils import (
    LEADING_INT_RE,
    cell,
    coerce_float,
    coerce_int,
    read_csv_text,
    resolve_columns,
    setup_logging,
)

# --- Module Logger ---
logger = setup_logging(__name__)

SOURCE = TournamentImportFormat.GENERIC_CSV.value

GENERIC_HEADER_ALIASES = {
    "event_name": ["event_name", "event name", "event"],
    "event_date": ["event_date", "event date", "date"],
    "event_format": ["format", "event_format", "event format"],
    "placement": ["placement", "place", "rank", "finish"],
    "player_name": ["player_name", "player name", "player", "name"],
    "faction": ["faction", "army"],
    "detachment": ["detachment", "sub_faction", "sub faction", "subfaction"],
    "wins": ["wins", "w", "win"],
    "losses": ["losses", "l", "loss"],
    "draws": ["draws", "d", "draw"],
    "points": ["points", "vp", "total_points", "total points"],
    "list_text": ["list_text", "list text", "list", "army list"],
    "unit_name": ["unit_name", "unit name", "unit"],
    "content_id": ["content_id", "content id", "bsdata_id"],
    "unit_games_played": ["unit_games_played", "games_played", "games played"],
    "unit_avg_points": ["unit_avg_points", "avg_points", "avg points", "average points"],
}


def placement_key(raw: str) -> int | str:
    """Grouping key for a placement cell: its leading integer, else the text."""
    match = LEADING_INT_RE.match(raw)
    return int(match.group(1)) if match else raw.casefold()


def unit_from_row(row: dict, columns: dict[str, str | None]) -> UnitResult | None:
    """Build the per-unit result carried by a row, or None if it names no unit."""
    unit_name = cell(row, columns["unit_name"])
    if not unit_name:
        return None

    return UnitResult(
        unit_name=unit_name,
        content_id=cell(row, columns["content_id"]) or None,
        games_played=max(coerce_int(cell(row, columns["unit_games_played"])), 0),
        average_points=coerce_float(cell(row, columns["unit_avg_points"])),
    )


def parse_generic_csv(text: str) -> list[TournamentRecord]:
    """
    Parse a generic-format CSV into one TournamentRecord per event.

    Events are keyed by (event_name, event_date) and returned in the order
    they first appear. Rows missing either value are dropped with a warning,
    as are rows without a player name.

    Args:
        text: Raw CSV text

    Returns:
        List of TournamentRecord (empty when the text holds no usable rows)
    """
    df = read_csv_text(text)
    columns = resolve_columns(df.columns, GENERIC_HEADER_ALIASES)

    # event key -> {"event_format", "players", "units", "placements"}
    events: dict[tuple[str, str], dict] = {}

    for row_number, row in enumerate(df.to_dict("records"), start=1):
        event_name = cell(row, columns["event_name"])
        event_date = cell(row, columns["event_date"])
        if not event_name or not event_date:
            logger.warning(f"{SOURCE}: row {row_number} is missing event name or date, skipping")
            continue

        name = cell(row, columns["player_name"])
        if not name:
            logger.warning(f"{SOURCE}: row {row_number} has no player name, skipping")
            continue

        event = events.setdefault((event_name, event_date), {
            "event_format": cell(row, columns["event_format"]) or DEFAULT_EVENT_FORMAT,
            "players": {},
            "units": {},
            "placements": set(),
        })

        raw_placement = cell(row, columns["placement"])
        player_key = (name.casefold(), placement_key(raw_placement))
        if player_key not in event["players"]:
            if columns["placement"] is None:
                placement = len(event["players"]) + 1
            else:
                placement = read_placement(raw_placement, event["placements"], SOURCE, row_number)
            event["players"][player_key] = player_from_row(row, columns, name, placement)
            event["units"][player_key] = []

        unit = unit_from_row(row, columns)
        if unit is not None:
            event["units"][player_key].append(unit)

    records = []
    for (event_name, event_date), event in events.items():
        players: list[TournamentPlayer] = [
            replace(player, unit_results=tuple(event["units"][key]))
            for key, player in event["players"].items()
        ]
        records.append(TournamentRecord(
            event_name=event_name,
            event_date=event_date,
            event_format=event["event_format"],
            source_format=TournamentImportFormat.GENERIC_CSV,
            players=tuple(players),
        ))

    logger.info(f"Parsed {len(records)} events from generic CSV ({len(df)} rows)")
    return records
