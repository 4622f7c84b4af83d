"""
Tournament and Army List Ingestion

Modules:
- detachment: Detachment name extraction from army list text
- standings: Row handling shared by the tournament CSV dialects
- bcp_csv: Best Coast Pairings results exports
- tabletop_admiral_csv: Tabletop Admiral results exports
- generic_csv: The platform's own multi-event CSV format
- tournament_import: Format dispatch for raw CSV imports
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "extract_detachment":
        from tabletop_meta.ingestion.detachment import extract_detachment
        return extract_detachment
    if name == "import_tournament_csv":
        from tabletop_meta.ingestion.tournament_import import import_tournament_csv
        return import_tournament_csv
    if name == "TournamentImportFormat":
        from tabletop_meta.models import TournamentImportFormat
        return TournamentImportFormat
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
