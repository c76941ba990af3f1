"""
Utility helper functions for safe payload handling.
"""
from typing import Any, Optional


def safe_str(value: Any, default: str = "") -> str:
    """
    Safely convert value to string, handling None.

    Args:
        value: Any value to convert
        default: Default string if value is None

    Returns:
        String representation or default
    """
    if value is None:
        return default
    return str(value)


def safe_optional_str(value: Any) -> Optional[str]:
    """Convert to string, keeping None and empty strings as None."""
    if value is None or value == "":
        return None
    return str(value)


def safe_int(value: Any, default: int = 0) -> int:
    """
    Safely convert value to int, handling None and invalid values.

    Args:
        value: Any value to convert
        default: Default int if conversion fails

    Returns:
        Integer or default
    """
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def safe_float(value: Any, default: float = 0.0) -> float:
    """Safely convert value to float, handling None and invalid values."""
    if value is None:
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def require_int(raw: dict, field: str) -> int:
    """
    Read a mandatory integer field from a payload.

    Raises:
        ValueError: If the field is missing or not an integer
    """
    value = raw.get(field)
    if value is None or isinstance(value, bool):
        raise ValueError(f"missing integer field '{field}'")
    return int(value)
