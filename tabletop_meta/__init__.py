"""
Tabletop Meta - Core Package

This package contains the core modules for:
- Catalog parsing (tabletop_meta.catalog)
- Tournament result ingestion (tabletop_meta.ingestion)
- Player name resolution (tabletop_meta.players)
- Glicko-2 rating computation (tabletop_meta.rating)
- Shared configuration and utilities
"""

from tabletop_meta.config import *

__version__ = "1.0.0"
