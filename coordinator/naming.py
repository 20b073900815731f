"""Object name validation and rename key derivation."""

import re
from typing import Callable, Tuple

from coordinator.exceptions import InvalidNameError

PATH_SEPARATORS = ("/", "\\")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# YYYY/MM/DD/ (optionally nested below other segments)
_DATE_PREFIX = re.compile(r"(?:^|/)\d{4}/\d{2}/\d{2}/$")

# A segment of 16+ hex chars or a UUID, e.g. "3f2a9c.../" or "c0ffee00-....../"
_RANDOM_SEGMENT = re.compile(
    r"(?:^|/)(?:[0-9a-f]{16,}|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})/",
    re.IGNORECASE,
)

PrefixPredicate = Callable[[str], bool]


def validate_object_name(name) -> str:
    """
    Validate a plain object name and return it trimmed.

    Args:
        name: Candidate leaf name

    Returns:
        The trimmed name

    Raises:
        InvalidNameError: If the name is empty, '.', '..', contains a path
            separator or a control character
    """
    if not isinstance(name, str):
        raise InvalidNameError("Name is required")

    clean = name.strip()
    if not clean or clean in (".", ".."):
        raise InvalidNameError("Name must not be empty")
    if any(sep in clean for sep in PATH_SEPARATORS):
        raise InvalidNameError(f"Name must not contain path separators: {clean!r}")
    if _CONTROL_CHARS.search(clean):
        raise InvalidNameError("Name must not contain control characters")
    return clean


def split_key(key: str) -> Tuple[str, str]:
    """
    Split a key into (prefix, leaf) at the last '/'. The prefix keeps its
    trailing separator and is empty for top-level keys.
    """
    index = key.rfind("/")
    if index < 0:
        return "", key
    return key[:index + 1], key[index + 1:]


def leaf_name(key: str) -> str:
    return split_key(key)[1]


def is_synthetic_prefix(prefix: str) -> bool:
    """
    Heuristic: True when a prefix looks machine generated (a date path such
    as 2025/09/05/ or a long hex/uuid segment) rather than chosen by a person.
    """
    if not prefix:
        return False
    return bool(_DATE_PREFIX.search(prefix) or _RANDOM_SEGMENT.search(prefix))


def derive_destination_key(
    from_key: str,
    new_name: str,
    is_synthetic: PrefixPredicate = is_synthetic_prefix,
) -> str:
    """
    Destination key for renaming `from_key` to `new_name`. Synthetic prefixes
    are dropped; organizational prefixes are kept.
    """
    prefix, _ = split_key(from_key)
    if is_synthetic(prefix):
        return new_name
    return prefix + new_name
