"""
Text utilities for order numbers and import timestamps.

Order numbers sort like a locale-aware numeric collation: digit runs
compare by value, letters ignore case and accents.
"""

import re
import unicodedata
from datetime import datetime
from typing import Optional

_DIGIT_RUN = re.compile(r"(\d+)")

# Shapes tried after ISO-8601, on the value with "T" -> " " and "-" -> "/"
_FALLBACK_FORMATS = (
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
)


def fold_text(value: Optional[str]) -> str:
    """
    Case- and accent-insensitive form of a string.

    - "Décor" → "decor"
    - "ＡＢＣ" → "abc" (full-width folded by NFKD)
    """
    if not value:
        return ""

    # NFKD separates base chars from accents and folds compatibility forms
    normalized = unicodedata.normalize('NFKD', value)

    without_accents = ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )

    return without_accents.casefold()


def natural_sort_key(value: Optional[str]) -> tuple:
    """
    Sort key that orders digit runs numerically.

    "A2" < "A10", "order-9" < "order-10", "abc" == "ABC".

    Args:
        value: Order number or any identifier

    Returns:
        Tuple of (kind, value) parts comparable across keys
    """
    parts = []
    for chunk in _DIGIT_RUN.split(fold_text(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk))
    return tuple(parts)


def compare_natural(a: Optional[str], b: Optional[str]) -> int:
    """Three-way natural comparison: -1, 0 or 1."""
    ka, kb = natural_sort_key(a), natural_sort_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def parse_timestamp(value: Optional[str]) -> Optional[float]:
    """
    Parse an import or print timestamp to epoch seconds.

    Tries ISO-8601 first, then the slash-separated shapes marketplace
    exports use ("2024/05/01 10:30"). Naive values are read as local time.

    Returns:
        Epoch seconds, or None when the value is empty or unparsable
    """
    if not value:
        return None

    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp()
    except ValueError:
        pass

    normalized = text.replace("T", " ", 1).replace("-", "/")
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(normalized, fmt).timestamp()
        except ValueError:
            continue

    return None
