"""Utility helper functions for the metadata service."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from metastore.exceptions import ValidationError


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """
    Get the current instant as a timezone-aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    return value.isoformat()


def from_iso(value: str) -> datetime:
    """
    Parse an ISO timestamp written by to_iso. Naive values are taken as UTC.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def require_not_blank(value: Optional[str], field: str) -> str:
    """
    Return value unchanged, or raise ValidationError when it is missing or blank.
    """
    if is_blank(value):
        raise ValidationError(f"{field} is required")
    return value


def validate_path(path: Optional[str]) -> str:
    """
    Validate an absolute file path.

    Rules: starts with '/', contains neither '..' nor '//',
    and does not end with '/' unless it is the root itself.

    Args:
        path: Path to validate

    Returns:
        The path, unchanged

    Raises:
        ValidationError: If any rule is violated
    """
    require_not_blank(path, "path")

    if not path.startswith('/'):
        raise ValidationError(f"Path must be absolute: {path}")
    if '//' in path:
        raise ValidationError(f"Path must not contain empty segments: {path}")
    if '..' in path:
        raise ValidationError(f"Path must not contain '..': {path}")
    if path != '/' and path.endswith('/'):
        raise ValidationError(f"Path must not end with '/': {path}")

    return path
