"""
Tournament Import

Single entry point for raw tournament CSV imports. The operator exports the
CSV from the pairing tool themselves and hands it over together with the
format it came from; this module picks the parser for that format.

BCP and Tabletop Admiral exports do not carry event metadata, so records
from those formats get a placeholder name and today's date unless the caller
already knows better. Callers overwrite the placeholders afterwards with
apply_event_metadata() once the operator has supplied the real values.

Usage:
    from tabletop_meta.ingestion.tournament_import import import_tournament_csv
    records = import_tournament_csv(csv_text, "bcp-csv")
    records = apply_event_metadata(records, "London GT", "2025-06-14")
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import date

from tabletop_meta.config import DEFAULT_EVENT_FORMAT, PLACEHOLDER_EVENT_NAME
from tabletop_meta.errors import UnsupportedFormatError
from tabletop_meta.ingestion.bcp_csv import parse_bcp_csv
from tabletop_meta.ingestion.generic_csv import parse_generic_csv
from tabletop_meta.ingestion.tabletop_admiral_csv import parse_tabletop_admiral_csv
from tabletop_meta.models import EventOptions, TournamentImportFormat, TournamentRecord
from tabletop_meta.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

ParserFn = Callable[[str, EventOptions], list[TournamentRecord]]


def _parse_bcp(raw: str, options: EventOptions) -> list[TournamentRecord]:
    return [parse_bcp_csv(raw, options)]


def _parse_tabletop_admiral(raw: str, options: EventOptions) -> list[TournamentRecord]:
    return [parse_tabletop_admiral_csv(raw, options)]


def _parse_generic(raw: str, options: EventOptions) -> list[TournamentRecord]:
    # Generic CSV embeds its own event metadata
    return parse_generic_csv(raw)


_PARSERS: dict[TournamentImportFormat, ParserFn] = {
    TournamentImportFormat.BCP_CSV: _parse_bcp,
    TournamentImportFormat.TABLETOP_ADMIRAL_CSV: _parse_tabletop_admiral,
    TournamentImportFormat.GENERIC_CSV: _parse_generic,
}


def coerce_format(fmt: TournamentImportFormat | str) -> TournamentImportFormat:
    """
    Convert a format identifier to TournamentImportFormat.

    Raises:
        UnsupportedFormatError: If fmt is not one of the supported formats
    """
    if isinstance(fmt, TournamentImportFormat):
        return fmt
    try:
        return TournamentImportFormat(fmt)
    except ValueError:
        supported = ", ".join(f.value for f in TournamentImportFormat)
        raise UnsupportedFormatError(
            f"Unsupported tournament import format {fmt!r} (expected one of: {supported})"
        ) from None


def import_tournament_csv(
    raw: str,
    fmt: TournamentImportFormat | str,
    event_name: str | None = None,
    event_date: str | None = None,
    event_format: str | None = None,
    today: date | None = None,
) -> list[TournamentRecord]:
    """
    Parse raw tournament CSV text in the given format.

    Args:
        raw: Raw CSV text
        fmt: Import format, a TournamentImportFormat or its string value
        event_name: Event name for formats without embedded metadata
        event_date: ISO event date for formats without embedded metadata
        event_format: Format label (GT, RTT, ...) for formats without embedded metadata
        today: Date used for the placeholder event date (default: date.today())

    Returns:
        List of TournamentRecord (exactly one for BCP and Tabletop Admiral)

    Raises:
        UnsupportedFormatError: If fmt is not a supported format (nothing is parsed)
    """
    import_format = coerce_format(fmt)

    options = EventOptions(
        event_name=event_name or PLACEHOLDER_EVENT_NAME,
        event_date=event_date or (today or date.today()).isoformat(),
        event_format=event_format or DEFAULT_EVENT_FORMAT,
    )

    records = _PARSERS[import_format](raw, options)
    logger.info(
        f"Imported {len(records)} event(s) with "
        f"{sum(len(r.players) for r in records)} players from {import_format.value}"
    )
    return records


def apply_event_metadata(
    records: list[TournamentRecord],
    event_name: str | None = None,
    event_date: str | None = None,
) -> list[TournamentRecord]:
    """
    Return copies of records with the event name and/or date overwritten.

    Arguments left as None keep the record's current value.
    """
    changes = {}
    if event_name:
        changes["event_name"] = event_name
    if event_date:
        changes["event_date"] = event_date
    return [replace(record, **changes) for record in records]
