"""
Glicko-2 Rating System

Modules:
- glicko2: Single-player rating update for one rating period
- periods: Two-phase batch updates over whole rosters
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "update_rating":
        from tabletop_meta.rating.glicko2 import update_rating
        return update_rating
    if name == "run_rating_period":
        from tabletop_meta.rating.periods import run_rating_period
        return run_rating_period
    if name == "run_rating_periods":
        from tabletop_meta.rating.periods import run_rating_periods
        return run_rating_periods
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
