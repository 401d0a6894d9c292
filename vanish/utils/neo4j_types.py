from datetime import datetime
from typing import Any


def to_native_datetime(value: Any) -> Any:
    """Convert a neo4j temporal value into a standard ``datetime``.

    Values that are already native (or not temporal at all) pass through
    untouched so pydantic can apply its own parsing.
    """
    if isinstance(value, datetime):
        return value
    if hasattr(value, "to_native"):
        return value.to_native()
    return value
