"""Extract tag names embedded in test and describe titles."""

import re

_BRACKET_PATTERN = re.compile(r"\[([^\]]+)\]")
_AT_PATTERN = re.compile(r"@([a-zA-Z0-9_-]+)")
_HASH_PATTERN = re.compile(r"#([a-zA-Z0-9_-]+)")


def extract_tags_from_string(text: str) -> list[str]:
    """Extract candidate tag names from a title.

    Three markers are recognized: bracket groups (``[unit]``,
    ``[unit, fast]``), at-mentions (``@slow``) and hash-mentions
    (``#integration``). All bracket tags come first, then at-mentions, then
    hash-mentions, each in order of appearance.

    Args:
        text: Test or describe title

    Returns:
        Tag names, possibly with duplicates

    """
    names: list[str] = []

    for match in _BRACKET_PATTERN.finditer(text):
        names.extend(
            piece.strip() for piece in match.group(1).split(",") if piece.strip()
        )

    names.extend(match.group(1) for match in _AT_PATTERN.finditer(text))
    names.extend(match.group(1) for match in _HASH_PATTERN.finditer(text))

    return names
