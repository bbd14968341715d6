# utils/ids.py
from __future__ import annotations

from typing import Optional

from werkzeug.routing import IntegerConverter

# Largest value an `Integer` primary key column holds on MySQL and SQLite alike
MAX_ID = 2**31 - 1


def parse_id(value) -> Optional[int]:
    """Positive int from an int or a decimal string, bounded by MAX_ID; None otherwise."""
    if isinstance(value, bool) or isinstance(value, float):
        return None
    if isinstance(value, str):
        value = value.strip()
        # int() also accepts "+5", "1_000" and non-ASCII digits
        if not (value.isascii() and value.isdigit()):
            return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if 0 < n <= MAX_ID else None


class IdConverter(IntegerConverter):
    """`<id:name>` URL segment: like `<int:name>` but 1..MAX_ID, so larger values 404 at routing."""

    def __init__(self, map, *args, **kwargs):
        super().__init__(map, min=1, max=MAX_ID)
