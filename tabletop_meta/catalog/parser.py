"""
BattleScribe Catalog Parser

Parses BattleScribe catalog documents (.cat / .gst XML, as published by the
BSData project) into UnitProfile records. Only what the platform needs is
extracted: unit identity, the stat line, weapons, abilities, keywords,
points, invulnerable save and feel no pain.

A unit is a top-level <selectionEntry type="unit"> (or type="model" for
single-model units). Entries nested inside it are its models and wargear:
they contribute weapons but are never emitted as units of their own.

No game content is hardcoded here. Tests use synthetic fixtures.

Usage:
    from tabletop_meta.catalog.parser import parse_catalog
    result = parse_catalog(xml_text, faction="Space Marines")
    result.units, result.errors
"""

import re
import xml.etree.ElementTree as ET

from tabletop_meta.errors import UnreadableInputError
from tabletop_meta.models import (
    CatalogParseResult,
    UnitProfile,
    WeaponAbility,
    WeaponProfile,
)
from tabletop_meta.utils import clean_text, parse_leading_int, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

# Bump when parser output changes in a way that invalidates previously imported data
PARSER_VERSION = 2

UNIT_ENTRY_TYPES = frozenset({"unit", "model"})
CHARACTERISTIC_PROFILE_TYPES = frozenset({
    "unit", "model", "unit characteristics", "model characteristics",
})
WEAPON_PROFILE_TYPES = frozenset({
    "ranged weapon", "ranged weapons", "melee weapon", "melee weapons", "weapon",
})
MELEE_RANGE_VALUES = frozenset({"melee", "-", ""})
WEAPON_ABILITY_CHARACTERISTICS = ("Abilities", "Special Rules", "Keywords")

# (stat name aliases, default) per UnitProfile field
UNIT_STATS = {
    "move": (("M", "Move"), 0),
    "toughness": (("T", "Toughness"), 0),
    "save": (("Sv", "Save"), 0),
    "wounds": (("W", "Wounds"), 1),
    "leadership": (("Ld", "Leadership"), 6),
    "oc": (("OC", "Objective Control"), 1),
}

DICE_OR_NUMBER_RE = re.compile(r"^\d+$")
INVULN_TEXT_RE = re.compile(r"(\d)\+\s*invulnerable\s+save", re.IGNORECASE)
FNP_TEXT_RE = re.compile(r"feel\s+no\s+pain\s+(\d)\+", re.IGNORECASE)


# --- Weapon Ability Keywords ---
# Ordered: the first pattern that matches an ability name decides its kind
def _with_number(kind, default):
    def create(match):
        return WeaponAbility(kind, value=int(match.group(1)) if match.group(1) else default)
    return create


def _plain(kind, value=None):
    def create(match):
        return WeaponAbility(kind, value=value)
    return create


def _anti(match):
    return WeaponAbility("ANTI", value=int(match.group(2)), keyword=match.group(1).strip())


ABILITY_KEYWORDS = [
    (re.compile(r"sustained hits\s*(\d+)?", re.IGNORECASE), _with_number("SUSTAINED_HITS", 1)),
    (re.compile(r"lethal hits", re.IGNORECASE), _plain("LETHAL_HITS")),
    (re.compile(r"devastating wounds", re.IGNORECASE), _plain("DEVASTATING_WOUNDS")),
    (re.compile(r"torrent", re.IGNORECASE), _plain("TORRENT")),
    (re.compile(r"twin.linked", re.IGNORECASE), _plain("TWIN_LINKED")),
    (re.compile(r"blast", re.IGNORECASE), _plain("BLAST")),
    (re.compile(r"re-?roll\s+(?:all\s+)?hit\s+rolls?\s+of\s+1", re.IGNORECASE), _plain("REROLL_HITS_OF_1")),
    (re.compile(r"re-?roll\s+(?:all\s+)?hit\s+rolls?(?!\s+of)", re.IGNORECASE), _plain("REROLL_HITS")),
    (re.compile(r"re-?roll\s+(?:all\s+)?wound\s+rolls?", re.IGNORECASE), _plain("REROLL_WOUNDS")),
    (re.compile(r"heavy", re.IGNORECASE), _plain("HIT_MOD", 1)),
    (re.compile(r"rapid fire\s*(\d+)?", re.IGNORECASE), _with_number("ATTACKS_MOD", 1)),
    (re.compile(r"extra attacks", re.IGNORECASE), _plain("ATTACKS_MOD", 0)),
    (re.compile(r"lance", re.IGNORECASE), _plain("WOUND_MOD", 1)),
    (re.compile(r"anti-(.+?)\s+(\d)\+", re.IGNORECASE), _anti),
    (re.compile(r"melta\s*(\d+)?", re.IGNORECASE), _with_number("MELTA", 1)),
    (re.compile(r"ignores cover", re.IGNORECASE), _plain("IGNORES_COVER")),
    (re.compile(r"hazardous", re.IGNORECASE), _plain("HAZARDOUS")),
    (re.compile(r"precision", re.IGNORECASE), _plain("PRECISION")),
    (re.compile(r"indirect fire", re.IGNORECASE), _plain("INDIRECT_FIRE")),
    (re.compile(r"\bassault\b", re.IGNORECASE), _plain("ASSAULT")),
    (re.compile(r"\bpistol\b", re.IGNORECASE), _plain("PISTOL")),
    (re.compile(r"one shot", re.IGNORECASE), _plain("ONE_SHOT")),
    (re.compile(r"psychic", re.IGNORECASE), _plain("PSYCHIC")),
]


def map_weapon_abilities(names: list[str]) -> tuple[WeaponAbility, ...]:
    """Map weapon ability names to typed abilities; unknown names are dropped."""
    abilities = []
    for name in names:
        for pattern, create in ABILITY_KEYWORDS:
            match = pattern.search(name)
            if match:
                abilities.append(create(match))
                break
    return tuple(abilities)


# --- XML Helpers ---
def _strip_namespaces(root: ET.Element) -> None:
    """Drop '{namespace}' prefixes from every tag so lookups use bare names."""
    for el in root.iter():
        if isinstance(el.tag, str) and "}" in el.tag:
            el.tag = el.tag.rsplit("}", 1)[-1]


def iter_unit_entries(element: ET.Element):
    """Yield selectionEntry elements that have no selectionEntry ancestor."""
    for child in element:
        if child.tag == "selectionEntry":
            yield child
        else:
            yield from iter_unit_entries(child)


def iter_own(element: ET.Element, tag: str):
    """Yield descendants with the given tag, skipping nested selectionEntry subtrees."""
    for child in element:
        if child.tag == "selectionEntry":
            continue
        if child.tag == tag:
            yield child
        yield from iter_own(child, tag)


def _profile_type(profile: ET.Element) -> str:
    return clean_text(profile.get("typeName") or profile.get("type")).lower()


def _characteristics(profile: ET.Element) -> dict[str, str]:
    stats = {}
    for characteristic in profile.iter("characteristic"):
        name = clean_text(characteristic.get("name"))
        if name:
            stats[name] = clean_text(characteristic.text)
    return stats


def _first_stat(stats: dict[str, str], aliases, default: str) -> str:
    for alias in aliases:
        if alias in stats:
            return stats[alias]
    return default


def _dice_or_number(value: str) -> int | str:
    value = value.strip()
    if DICE_OR_NUMBER_RE.match(value):
        return int(value)
    return value  # "D6", "2D6", "D3+1"


def _in_save_range(value: int | None) -> int | None:
    if value is not None and 2 <= value <= 6:
        return value
    return None


# --- Extraction ---
def extract_unit_stats(entry: ET.Element) -> dict[str, int]:
    """Stat line from the unit's own characteristics profile, with defaults."""
    stats: dict[str, str] = {}
    for profile in iter_own(entry, "profile"):
        if _profile_type(profile) in CHARACTERISTIC_PROFILE_TYPES:
            stats = _characteristics(profile)
            break

    return {
        field: parse_leading_int(_first_stat(stats, aliases, str(default)))
        for field, (aliases, default) in UNIT_STATS.items()
    }


def extract_weapons(entry: ET.Element) -> tuple[WeaponProfile, ...]:
    """
    Weapons from the unit's whole subtree, nested model entries included.

    Real catalogs put weapons on the models inside a unit, so the same
    weapon can appear several times; the first occurrence of a name wins.
    """
    weapons: dict[str, WeaponProfile] = {}

    for profile in entry.iter("profile"):
        weapon_type = _profile_type(profile)
        if weapon_type not in WEAPON_PROFILE_TYPES:
            continue
        name = clean_text(profile.get("name"))
        if not name or name in weapons:
            continue

        stats = _characteristics(profile)
        range_text = stats.get("Range", "")
        if weapon_type.startswith("melee") or range_text.lower() in MELEE_RANGE_VALUES:
            weapon_range = "melee"
        else:
            weapon_range = parse_leading_int(range_text)

        ability_text = next(
            (stats[key] for key in WEAPON_ABILITY_CHARACTERISTICS if stats.get(key)), ""
        )
        ability_names = [part.strip() for part in re.split(r"[,;]", ability_text) if part.strip()]

        weapons[name] = WeaponProfile(
            name=name,
            range=weapon_range,
            attacks=_dice_or_number(_first_stat(stats, ("A", "Attacks"), "1")),
            skill=parse_leading_int(_first_stat(stats, ("BS", "WS", "Skill"), "4")),
            strength=parse_leading_int(_first_stat(stats, ("S", "Strength"), "4")),
            ap=parse_leading_int(_first_stat(stats, ("AP",), "0")),
            damage=_dice_or_number(_first_stat(stats, ("D", "Damage"), "1")),
            abilities=map_weapon_abilities(ability_names),
        )

    return tuple(weapons.values())


def extract_abilities(entry: ET.Element) -> tuple[tuple[str, ...], tuple[tuple[str, str], ...]]:
    """Own ability names in document order, plus (name, description) pairs."""
    names = []
    descriptions: dict[str, str] = {}
    for profile in iter_own(entry, "profile"):
        if _profile_type(profile) != "abilities":
            continue
        name = clean_text(profile.get("name"))
        if not name:
            continue
        names.append(name)
        description = _characteristics(profile).get("Description", "")
        if description:
            descriptions[name] = description
    return tuple(names), tuple(descriptions.items())


def extract_keywords(entry: ET.Element) -> tuple[str, ...]:
    names = (clean_text(link.get("name")) for link in iter_own(entry, "categoryLink"))
    return tuple(dict.fromkeys(name for name in names if name))


def extract_points(entry: ET.Element) -> int:
    """
    Point cost from the unit's own 'pts' cost, 0 when absent.

    Raises:
        ValueError: If the cost value is not a finite number
    """
    for cost in iter_own(entry, "cost"):
        if clean_text(cost.get("name")).lower() == "pts":
            value = clean_text(cost.get("value"))
            try:
                return round(float(value))
            except (ValueError, OverflowError):
                raise ValueError(f"non-numeric points cost {value!r}") from None
    return 0


def _own_text(entry: ET.Element) -> str:
    """All text of the entry's own elements, nested selectionEntry subtrees excluded."""
    parts = [entry.text or ""]
    for child in entry:
        if child.tag == "selectionEntry":
            continue
        parts.append(_own_text(child))
    return "\n".join(part for part in parts if part.strip())


def extract_invulnerable_save(entry: ET.Element, own_text: str) -> int | None:
    for profile in iter_own(entry, "profile"):
        if _profile_type(profile) != "invulnerable save":
            continue
        for value in _characteristics(profile).values():
            save = _in_save_range(parse_leading_int(value))
            if save:
                return save

    match = INVULN_TEXT_RE.search(own_text)
    return _in_save_range(int(match.group(1))) if match else None


def extract_feel_no_pain(descriptions: tuple[tuple[str, str], ...], own_text: str) -> int | None:
    for text in [desc for _, desc in descriptions] + [own_text]:
        match = FNP_TEXT_RE.search(text)
        if match:
            fnp = _in_save_range(int(match.group(1)))
            if fnp:
                return fnp
    return None


def parse_unit_entry(entry: ET.Element, faction: str) -> UnitProfile:
    """
    Build a UnitProfile from one top-level selectionEntry.

    Raises:
        ValueError: If the entry has no id or name, or a malformed cost
    """
    unit_id = clean_text(entry.get("id"))
    name = clean_text(entry.get("name"))
    if not unit_id or not name:
        raise ValueError("entry has no id or name")

    abilities, descriptions = extract_abilities(entry)
    own_text = _own_text(entry)

    return UnitProfile(
        id=unit_id,
        name=name,
        faction=faction,
        **extract_unit_stats(entry),
        weapons=extract_weapons(entry),
        abilities=abilities,
        keywords=extract_keywords(entry),
        points=extract_points(entry),
        invuln_save=extract_invulnerable_save(entry, own_text),
        fnp=extract_feel_no_pain(descriptions, own_text),
        ability_descriptions=descriptions,
    )


def parse_catalog(xml_text: str, faction: str | None = None) -> CatalogParseResult:
    """
    Parse one catalog document into unit profiles.

    Malformed unit entries are skipped and described in result.errors; the
    rest of the document is still parsed.

    Args:
        xml_text: Catalog XML (.cat or .gst), namespaced or not
        faction: Faction name for every unit (default: the root's name attribute)

    Returns:
        CatalogParseResult with units in document order and error strings

    Raises:
        UnreadableInputError: If xml_text is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise UnreadableInputError(f"Catalog is not well-formed XML: {e}") from e

    _strip_namespaces(root)
    faction = faction or clean_text(root.get("name"))
    result = CatalogParseResult()

    for entry in iter_unit_entries(root):
        if clean_text(entry.get("type")).lower() not in UNIT_ENTRY_TYPES:
            continue
        try:
            result.units.append(parse_unit_entry(entry, faction))
        except ValueError as e:
            message = (
                f"Failed to parse unit {entry.get('name')!r} "
                f"({entry.get('id')}): {e}"
            )
            logger.warning(message)
            result.errors.append(message)

    logger.info(f"Parsed {len(result.units)} units from catalog {faction!r} ({len(result.errors)} errors)")
    return result
