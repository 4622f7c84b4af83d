"""
Catalog Loader

Reads a directory of BattleScribe catalogs (typically a clone of a BSData
repository) and builds an in-memory unit index. Documents parse
independently, so they are parsed in a thread pool and merged afterwards in
document name order; the result does not depend on which worker finished
first.

The operator runs, for example:
    git clone https://github.com/BSData/wh40k-10e data/catalogs

Usage:
    from tabletop_meta.catalog.loader import load_catalog_dir, CatalogIndex
    result = load_catalog_dir(CATALOG_FOLDER)
    index = CatalogIndex(result.units)
    index.search_units(faction="space marines", name="intercessor")
"""

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from tabletop_meta.catalog.parser import PARSER_VERSION, parse_catalog
from tabletop_meta.config import CATALOG_EXTENSIONS, CATALOG_LOADER_WORKERS
from tabletop_meta.errors import UnreadableInputError
from tabletop_meta.models import CatalogParseResult, UnitProfile
from tabletop_meta.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


@dataclass
class CatalogLoadResult:
    units: list[UnitProfile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    parser_version: int = PARSER_VERSION


def needs_full_reimport(stored_version: int | None) -> bool:
    """
    Check whether previously imported catalog data must be rebuilt.

    Args:
        stored_version: PARSER_VERSION recorded at the last import (None if never imported)

    Returns:
        True when nothing was imported yet or the parser output has changed since
    """
    return stored_version is None or stored_version != PARSER_VERSION


def _parse_document(name: str, text: str) -> CatalogParseResult:
    """Parse one document, turning unreadable XML into a single error entry."""
    try:
        return parse_catalog(text, faction=Path(name).stem)
    except UnreadableInputError as e:
        logger.warning(f"Skipping unreadable catalog {name}: {e}")
        return CatalogParseResult(errors=[f"{name}: {e}"])


def load_catalog_documents(
    documents: Iterable[tuple[str, str]],
    max_workers: int = CATALOG_LOADER_WORKERS,
) -> CatalogLoadResult:
    """
    Parse catalog documents, in parallel when max_workers > 1.

    The document name's stem is the faction hint, so "Space Marines.cat"
    yields units of faction "Space Marines".

    Args:
        documents: (document name, XML text) pairs
        max_workers: Thread pool size (1 parses sequentially)

    Returns:
        CatalogLoadResult with units and errors merged in document name order
    """
    ordered = sorted(documents, key=lambda doc: doc[0])

    if max_workers and max_workers > 1 and len(ordered) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(_parse_document, name, text) for name, text in ordered]
            parsed = [future.result() for future in futures]
    else:
        parsed = [_parse_document(name, text) for name, text in ordered]

    result = CatalogLoadResult()
    for document in parsed:
        result.units.extend(document.units)
        result.errors.extend(document.errors)

    logger.info(
        f"Loaded {len(result.units)} units from {len(ordered)} catalogs "
        f"(parser v{PARSER_VERSION}, {len(result.errors)} errors)"
    )
    return result


def load_catalog_dir(
    path: Path | str,
    max_workers: int = CATALOG_LOADER_WORKERS,
) -> CatalogLoadResult:
    """
    Load every .cat and .gst file in a directory.

    A missing directory yields an empty result. Files that cannot be read
    are recorded as errors and skipped.

    Args:
        path: Catalog directory
        max_workers: Thread pool size for parsing

    Returns:
        CatalogLoadResult for all documents in the directory
    """
    folder = Path(path)
    if not folder.is_dir():
        logger.warning(f"Catalog directory not found: {folder}")
        return CatalogLoadResult()

    files = sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in CATALOG_EXTENSIONS
    )
    logger.info(f"Found {len(files)} catalog files in {folder}")

    documents = []
    read_errors = []
    for file in files:
        try:
            documents.append((file.name, file.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable catalog file {file.name}: {e}")
            read_errors.append(f"{file.name}: {e}")

    result = load_catalog_documents(documents, max_workers=max_workers)
    result.errors[:0] = read_errors
    return result


class CatalogIndex:
    """
    In-memory unit index keyed by content id.

    Units added later replace earlier units with the same id, so re-importing
    a catalog updates its units instead of duplicating them.
    """

    def __init__(self, units: Iterable[UnitProfile] = ()):
        self._units: dict[str, UnitProfile] = {}
        self.upsert(units)

    def upsert(self, units: Iterable[UnitProfile]) -> None:
        for unit in units:
            self._units[unit.id] = unit

    def __len__(self) -> int:
        return len(self._units)

    def get_unit(self, unit_id: str) -> UnitProfile | None:
        return self._units.get(unit_id)

    def search_units(self, faction: str | None = None, name: str | None = None) -> list[UnitProfile]:
        """Case-insensitive substring search on faction and name, sorted by name."""
        faction_query = (faction or "").casefold()
        name_query = (name or "").casefold()

        results = [
            unit for unit in self._units.values()
            if faction_query in unit.faction.casefold()
            and name_query in unit.name.casefold()
        ]
        return sorted(results, key=lambda unit: unit.name.casefold())

    def list_factions(self) -> list[str]:
        return sorted({unit.faction for unit in self._units.values()})
