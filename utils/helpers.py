import logging
import re
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

SIZE_SEPARATOR = ","
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def split_size_field(size_value: Any) -> Tuple[str, ...]:
    """Split a compound size field ("S, M,L") into trimmed, non-empty tokens.

    Order of appearance is kept; duplicates inside a single field are kept
    as well since the catalog treats the field as an ordered label list.
    """
    if size_value is None:
        return ()
    if isinstance(size_value, (list, tuple)):
        size_value = SIZE_SEPARATOR.join(str(item) for item in size_value if item is not None)
    text = str(size_value)
    return tuple(piece.strip() for piece in text.split(SIZE_SEPARATOR) if piece.strip())


def parse_integer_token(token: str) -> Optional[int]:
    """Return the integer value of a token like "42" or None."""
    if not isinstance(token, str):
        return None
    cleaned = token.strip()
    if not _INTEGER_PATTERN.match(cleaned):
        return None
    return int(cleaned)


def dedupe_preserving_order(values: List[str]) -> List[str]:
    seen = set()
    unique: List[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique


def safe_float_conversion(value: Any) -> Optional[float]:
    """Safely convert value to float with error handling."""
    if value is None:
        return None

    try:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        elif isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                return None
            return float(cleaned.replace(",", "."))
        else:
            return float(value)
    except (ValueError, TypeError) as e:
        logger.warning("Error converting to float: %s (%s)", value, e)
        return None


def safe_int_conversion(value: Any) -> Optional[int]:
    """Safely convert value to int with error handling."""
    if value is None:
        return None

    try:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return int(value)
        elif isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                return None
            return int(float(cleaned.replace(",", ".")))
        else:
            return int(value)
    except (ValueError, TypeError) as e:
        logger.warning("Error converting to int: %s (%s)", value, e)
        return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    if value >= 0:
        return int(value + 0.5)
    return -int(-value + 0.5)
