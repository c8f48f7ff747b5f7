"""
Common utility functions and helpers.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set
import hashlib
import json


def generate_hash(text: str) -> str:
    """
    Generate SHA256 hash of text.

    Args:
        text: Text to hash

    Returns:
        Hex digest of hash
    """
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def canonical_json(value: Any) -> str:
    """
    Serialise *value* with sorted keys and no whitespace so that equal
    inputs always produce the same string.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Default value if division fails

    Returns:
        Result of division or default
    """
    return numerator / denominator if denominator != 0 else default


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into the closed interval [low, high]."""
    return max(low, min(high, value))


def to_string_set(items: Optional[Iterable[str]]) -> Set[str]:
    """Set of the given strings; empty for ``None``."""
    return set(items) if items else set()


def sorted_union(a: Mapping[str, Any], b: Mapping[str, Any]) -> List[str]:
    """Sorted, deduplicated keys of two mappings."""
    return sorted(set(a) | set(b))


def dedupe_preserving_order(items: Iterable[str]) -> List[str]:
    """Drop repeated items, keeping the first occurrence of each."""
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)
