"""Lot Number Normalization Utilities.

Lot numbers reach the resolver from QR scans, hand-typed URLs and old
spreadsheets, and were stored over the years under several conventions
("LOT-2024-001", "lot2024001", "2024 001"...). Instead of rewriting the
stored data, a lookup tries a fixed set of spellings of the same base.

The process:
1. Sanitize the raw input down to letters, digits and hyphens
   (whitespace between parts counts as a hyphen)
2. Expand the sanitized base into an ordered, de-duplicated variant list

Examples:
    "  lot-2024-001!! " → "lot-2024-001"
    "lot 2024 001"      → "lot-2024-001"
    "LOT-2024-001"      → ["LOT-2024-001", "lot-2024-001", ..., "LOT2024001", "lot 2024 001", ...]
"""

import re
from typing import List, Optional


# Firestore accepts at most 30 values in one "in" filter
MAX_VARIANTS = 30

_SEPARATOR_RUNS = re.compile(r"\s*-\s*|\s+")
_DISALLOWED = re.compile(r"[^A-Za-z0-9\s-]")
_DIGIT_GROUPS = re.compile(r"(\d+)-(\d+)-(\d+)")
_LOT_PREFIX = re.compile(r"^lot-?(?=[A-Za-z0-9])(.+)$", re.IGNORECASE)


def sanitize_lot_number(raw: Optional[str]) -> str:
    """Reduce a raw lot identifier to its canonical base string.

    Every character that is not an ASCII letter, digit, hyphen or whitespace
    is removed first. Outer whitespace is then dropped and whitespace between
    parts becomes a hyphen, so junk set apart by a space leaves no stray
    hyphen behind.

    Args:
        raw: Lot identifier as typed or scanned

    Returns:
        Sanitized base string ("" when nothing usable is left)

    Examples:
        >>> sanitize_lot_number("  lot-2024-001!! ")
        'lot-2024-001'
        >>> sanitize_lot_number("lot 2024 001")
        'lot-2024-001'
        >>> sanitize_lot_number("# LOT-2024-001 !")
        'LOT-2024-001'
        >>> sanitize_lot_number("#!? --")
        ''
    """
    if not raw:
        return ""

    text = _DISALLOWED.sub("", raw)
    text = _SEPARATOR_RUNS.sub("-", text.strip())

    # Hyphens alone do not identify anything
    if not text.replace("-", ""):
        return ""
    return text


def candidate_variants(base: str) -> List[str]:
    """Expand a sanitized lot number into the spellings to look up.

    The list is deterministic for a given base, keeps the first occurrence
    of duplicates, and never exceeds MAX_VARIANTS entries. Order only sets
    lookup priority inside one query.

    Args:
        base: Output of sanitize_lot_number

    Returns:
        Ordered list of variants (empty for an empty base)
    """
    if not base:
        return []

    spaced = base.replace("-", " ")
    compact = base.replace("-", "")

    variants = [
        base,
        base.upper(),
        base.lower(),
        f"LOT-{base}",
        f"LOT{base}",
        f"lot-{base}",
        f"lot{base}",
        compact,
        compact.upper(),
        compact.lower(),
        spaced,
        spaced.upper(),
        spaced.lower(),
        f"LOT {base}",
        f"LOT {spaced}",
        f"lot {spaced}",
        _DIGIT_GROUPS.sub(r"\1\2\3", base, count=1),
    ]

    # Base already carries a "lot" prefix: also try the bare number and
    # the canonical prefixed spellings of it
    match = _LOT_PREFIX.match(base)
    if match:
        rest = match.group(1)
        variants += [
            rest,
            rest.upper(),
            f"LOT-{rest.upper()}",
            f"LOT{rest.replace('-', '').upper()}",
            f"LOT {rest.replace('-', ' ').upper()}",
        ]

    seen = set()
    result = []
    for variant in variants:
        if variant and variant not in seen:
            seen.add(variant)
            result.append(variant)

    return result[:MAX_VARIANTS]
