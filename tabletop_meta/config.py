"""
Central configuration for Tabletop Meta.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = PROJECT_ROOT / "data"
CATALOG_FOLDER = DATA_FOLDER / "catalogs"

# --- Catalog Configuration ---
CATALOG_EXTENSIONS = frozenset({".cat", ".gst"})
CATALOG_LOADER_WORKERS = 4  # Documents parse independently, one per worker

# --- Tournament Import Configuration ---
PLACEHOLDER_EVENT_NAME = "Imported Event"  # Operator corrects this after import
DEFAULT_EVENT_FORMAT = "GT"
MAX_INPUT_SIZE = 5_000_000  # Maximum CSV text size in bytes (~5MB)

# --- Glicko-2 Configuration ---
BASELINE_RATING = 1500  # Starting rating for all new players
BASELINE_RD = 350  # Rating deviation on first appearance
BASELINE_VOLATILITY = 0.06
GLICKO2_SCALE = 173.7178  # Conversion factor between Glicko and Glicko-2 scales
TAU = 0.5  # System constant (constrains volatility change)
EPSILON = 0.000001  # Convergence tolerance for the volatility root search
MAX_VOLATILITY_ITERATIONS = 100
RD_FLOOR = 30  # Rated players never get more certain than this

# --- Standings-Only Periods ---
# Imports without pairings are rated against an "average" opponent per game
AVERAGE_OPPONENT_RATING = 1500
AVERAGE_OPPONENT_RD = 200
