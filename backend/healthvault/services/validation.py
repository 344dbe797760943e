"""
Input checks shared by the mutating services.

All of these run before any write.
"""

from typing import Iterable, List, Optional

from healthvault.config import config
from healthvault.errors import InvalidInput


def require_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} is required")
    if len(value) > max_length:
        raise InvalidInput(f"{field} must be at most {max_length} characters")
    return value


def optional_text(value, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string")
    if len(value) > max_length:
        raise InvalidInput(f"{field} must be at most {max_length} characters")
    return value


def optional_time(value, field: str) -> Optional[int]:
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidInput(f"{field} must be a non-negative integer")
    return value


def normalize_data_types(data_types: Iterable[str]) -> List[str]:
    """Validate a permission scope and return it as an ordered set."""
    if not isinstance(data_types, (list, tuple)):
        raise InvalidInput("data_types must be a list of tags")
    tags = list(data_types)
    if not tags:
        raise InvalidInput("data_types must not be empty")
    if len(tags) > config.MAX_DATA_TYPES:
        raise InvalidInput(f"at most {config.MAX_DATA_TYPES} data types per permission")

    seen = []
    for tag in tags:
        require_text(tag, "data type", config.MAX_TAG_LENGTH)
        if tag not in seen:
            seen.append(tag)
    return seen
