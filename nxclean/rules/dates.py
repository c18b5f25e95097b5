"""
Age expression resolution for cleanup filters.

Turns the user supplied ``updated`` / ``downloaded`` filter values into a
comparable criterion. Supported forms:

- relative: ``30d``, ``7 days``, ``90 days ago`` (case-insensitive)
- absolute: ``2025-03-01`` or a full ISO-8601 timestamp
- ``never`` (downloaded filter only)
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from nxclean.errors import InvalidExpression

NEVER = "never"

_RELATIVE_PATTERN = re.compile(r"^(\d+)\s*(?:d|days?)(?:\s+ago)?$", re.IGNORECASE)


@dataclass(frozen=True)
class Before:
    """Matches timestamps strictly earlier than ``cutoff``."""
    cutoff: datetime

    def includes(self, timestamp: Optional[datetime]) -> bool:
        return timestamp is not None and as_utc(timestamp) < self.cutoff


@dataclass(frozen=True)
class NeverHappened:
    """Matches only when the event never occurred."""

    def includes(self, timestamp: Optional[datetime]) -> bool:
        return timestamp is None


AgeCriterion = Union[Before, NeverHappened]


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_never(expression: Optional[str]) -> bool:
    """Check if the expression is the literal ``never``."""
    return expression is not None and expression.strip().lower() == NEVER


def resolve(expression: Optional[str], *, now: Optional[datetime] = None,
            allow_never: bool = False) -> AgeCriterion:
    """
    Resolve an age expression into an age criterion.

    Args:
        expression: Filter value as written in the rules file
        now: Reference time for relative expressions (defaults to current UTC time)
        allow_never: Whether the literal ``never`` is accepted

    Returns:
        ``Before`` with the computed cutoff, or ``NeverHappened``

    Raises:
        InvalidExpression: If the expression is not recognised
    """
    if expression is None or not isinstance(expression, str):
        raise InvalidExpression(expression)

    text = expression.strip()
    if not text:
        raise InvalidExpression(expression)

    if is_never(text):
        if allow_never:
            return NeverHappened()
        raise InvalidExpression(expression)

    match = _RELATIVE_PATTERN.match(text)
    if match:
        reference = as_utc(now) if now is not None else datetime.now(timezone.utc)
        return Before(reference - timedelta(days=int(match.group(1))))

    return Before(_parse_absolute(text, expression))


def _parse_absolute(text: str, expression: str) -> datetime:
    # datetime.fromisoformat only accepts a trailing 'Z' from Python 3.11 on
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        raise InvalidExpression(expression) from None
