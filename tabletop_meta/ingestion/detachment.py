"""
Detachment Extraction

Army lists arrive as pasted free text from list-building tools (BattleScribe,
New Recruit, ...) and the layout varies. This module looks for the known
ways a detachment is written down and returns its name.

Patterns tried (in order, the first that matches anywhere in the text wins;
all are case-insensitive):
    1. "+ DETACHMENT: <name>" (BattleScribe roster header)
    2. "Detachment: <name>" (New Recruit, or BattleScribe without the "+")
    3. "-- <name> Detachment --" (BattleScribe banner variant)

Usage:
    from tabletop_meta.ingestion.detachment import extract_detachment
    name = extract_detachment(list_text)
"""

import re

DETACHMENT_PATTERNS = (
    re.compile(r"^\+[ \t]*DETACHMENT:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^Detachment:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^--[ \t]*(.+?)[ \t]*Detachment[ \t]*--[ \t]*$", re.IGNORECASE | re.MULTILINE),
)


def extract_detachment(list_text: str | None) -> str | None:
    """
    Extract the detachment name from army list text.

    Args:
        list_text: Raw army list text (may be empty or None)

    Returns:
        The trimmed detachment name, or None if no pattern matches
    """
    if not list_text:
        return None

    for pattern in DETACHMENT_PATTERNS:
        match = pattern.search(list_text)
        if match:
            name = match.group(1).strip()
            if name:
                return name

    return None
