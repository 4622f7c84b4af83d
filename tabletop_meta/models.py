"""
Canonical records shared by the parsers, the player matcher and the rating engine.

Every record is a frozen dataclass and stores sequences as tuples, so two
parses of the same source compare equal field by field. Records are never
mutated in place: callers derive updated copies with dataclasses.replace().
"""

from dataclasses import dataclass, field
from enum import Enum

from tabletop_meta.config import (
    BASELINE_RATING,
    BASELINE_RD,
    BASELINE_VOLATILITY,
    DEFAULT_EVENT_FORMAT,
)


# --- Catalog Content ---
@dataclass(frozen=True)
class WeaponAbility:
    """A typed weapon rule, e.g. WeaponAbility("SUSTAINED_HITS", value=1)."""
    kind: str
    value: int | None = None
    keyword: str | None = None


@dataclass(frozen=True)
class WeaponProfile:
    name: str
    range: int | str  # inches, or "melee"
    attacks: int | str  # dice expressions such as "D6" stay strings
    skill: int  # BS or WS: hits on this value or better
    strength: int
    ap: int
    damage: int | str
    abilities: tuple[WeaponAbility, ...] = ()


@dataclass(frozen=True)
class UnitProfile:
    """
    One unit entry from a catalog document.

    Attributes:
        id: Content id, the source entry id (stable across re-imports)
        faction: Faction the catalog belongs to
        weapons: Weapon profiles owned by this unit only
        abilities: Ability names in document order
        keywords: Category link names (e.g. "Infantry")
        points: Point cost, 0 when the entry has none
    """
    id: str
    name: str
    faction: str
    move: int
    toughness: int
    save: int
    wounds: int
    leadership: int
    oc: int
    weapons: tuple[WeaponProfile, ...] = ()
    abilities: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    points: int = 0
    invuln_save: int | None = None
    fnp: int | None = None
    ability_descriptions: tuple[tuple[str, str], ...] = ()


# --- Tournament Results ---
class TournamentImportFormat(str, Enum):
    """The closed set of tournament export dialects that can be imported."""
    BCP_CSV = "bcp-csv"
    TABLETOP_ADMIRAL_CSV = "tabletop-admiral-csv"
    GENERIC_CSV = "generic-csv"


@dataclass(frozen=True)
class UnitResult:
    unit_name: str
    content_id: str | None = None
    games_played: int = 0
    average_points: float = 0.0


@dataclass(frozen=True)
class TournamentPlayer:
    """
    One standings row of an imported event.

    placement is None when the source row carried no usable placement.
    user_id is filled in by tabletop_meta.players, never by a parser.
    """
    name: str
    placement: int | None = None
    faction: str | None = None
    detachment: str | None = None
    wins: int = 0
    losses: int = 0
    draws: int = 0
    points: int = 0
    list_text: str | None = None
    unit_results: tuple[UnitResult, ...] = ()
    user_id: str | None = None

    @property
    def games(self) -> int:
        return self.wins + self.losses + self.draws


@dataclass(frozen=True)
class TournamentRecord:
    event_name: str
    event_date: str  # ISO date, e.g. "2025-06-14"
    event_format: str  # e.g. "GT", "RTT"
    source_format: TournamentImportFormat
    players: tuple[TournamentPlayer, ...] = ()


@dataclass(frozen=True)
class EventOptions:
    """Event metadata for export dialects that do not embed it."""
    event_name: str
    event_date: str
    event_format: str = DEFAULT_EVENT_FORMAT


# --- Ratings ---
@dataclass(frozen=True)
class Rating:
    """A Glicko-2 rating on the public (Elo-like) scale."""
    rating: float = BASELINE_RATING
    rd: float = BASELINE_RD
    volatility: float = BASELINE_VOLATILITY


@dataclass(frozen=True)
class GameOutcome:
    """One game in a rating period, seen from the rated player's side."""
    opponent_rating: float
    opponent_rd: float
    score: float  # 1 = win, 0.5 = draw, 0 = loss


# --- Identity ---
@dataclass(frozen=True)
class UserRow:
    id: str
    username: str | None = None
    display_name: str | None = None


# --- Parse Results ---
@dataclass
class CatalogParseResult:
    units: list[UnitProfile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
