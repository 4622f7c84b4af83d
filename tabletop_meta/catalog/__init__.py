"""
Catalog Content

Modules:
- parser: BattleScribe catalog XML to unit profiles
- loader: Parallel document loading and the in-memory unit index
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "parse_catalog":
        from tabletop_meta.catalog.parser import parse_catalog
        return parse_catalog
    if name == "PARSER_VERSION":
        from tabletop_meta.catalog.parser import PARSER_VERSION
        return PARSER_VERSION
    if name == "load_catalog_dir":
        from tabletop_meta.catalog.loader import load_catalog_dir
        return load_catalog_dir
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
