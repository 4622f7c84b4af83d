"""
Player Name Matching

Resolves player names as printed in tournament exports to platform users.
A name matches a user when it equals the user's username or display name,
ignoring case and surrounding whitespace. There is no partial or fuzzy
matching: "ali" does not match "alice".

If two roster entries share a name under case folding, the first entry in
roster order wins. Upstream uniqueness rules make this rare; callers should
not build on it.

Usage:
    from tabletop_meta.players import batch_match_player_names
    ids = batch_match_player_names(["Alice", "bob"], roster)
"""

from collections.abc import Iterable, Sequence
from dataclasses import replace

from tabletop_meta.models import TournamentRecord, UserRow
from tabletop_meta.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


def normalize_player_name(name: str | None) -> str:
    """Case-folded, stripped form used for comparisons ('' for None)."""
    return (name or "").strip().casefold()


def match_player_name(name: str | None, roster: Sequence[UserRow]) -> str | None:
    """
    Find the user id for a single player name.

    Args:
        name: Player name from the import
        roster: Known users

    Returns:
        The matching user's id, or None
    """
    key = normalize_player_name(name)
    if not key:
        return None

    for user in roster:
        if normalize_player_name(user.username) == key:
            return user.id
        if normalize_player_name(user.display_name) == key:
            return user.id

    return None


def build_roster_index(roster: Iterable[UserRow]) -> dict[str, str]:
    """
    Build a case-folded name -> user id lookup in one pass over the roster.

    Usernames and display names share one namespace. The first roster entry
    to claim a name keeps it, which gives the same answers as
    match_player_name().
    """
    index: dict[str, str] = {}
    for user in roster:
        for value in (user.username, user.display_name):
            key = normalize_player_name(value)
            if key:
                index.setdefault(key, user.id)
    return index


def batch_match_player_names(
    names: Iterable[str],
    roster: Iterable[UserRow],
) -> dict[str, str | None]:
    """
    Resolve many player names against one roster.

    The roster is indexed once, however many names are resolved.

    Args:
        names: Player names from the import
        roster: Known users

    Returns:
        Dict mapping each input name to its user id, or None
    """
    index = build_roster_index(roster)
    resolved = {}
    for name in names:
        key = normalize_player_name(name)
        resolved[name] = index.get(key) if key else None

    matched = sum(1 for user_id in resolved.values() if user_id)
    logger.debug(f"Matched {matched}/{len(resolved)} player names against {len(index)} roster names")
    return resolved


def link_record_players(record: TournamentRecord, roster: Iterable[UserRow]) -> TournamentRecord:
    """
    Return a copy of record whose players carry their resolved user ids.

    Players that do not match keep user_id None.
    """
    resolved = batch_match_player_names([p.name for p in record.players], roster)
    players = tuple(
        replace(player, user_id=resolved[player.name])
        for player in record.players
    )
    logger.info(
        f"Linked {sum(1 for p in players if p.user_id)}/{len(players)} players "
        f"of {record.event_name} to platform users"
    )
    return replace(record, players=players)
