"""JSON text columns.

Free-form structures (activity metadata, quiz answers, audit details) are
stored in Cassandra TEXT columns and encoded with orjson.
"""

from typing import Any

import orjson


def dumps_json(value: Any) -> str:
    """Encode a JSON-compatible value to text with stable key order."""
    return orjson.dumps(value, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def loads_json(text: str | None, default: Any = None) -> Any:
    """Decode a JSON text column; empty or null columns yield ``default``."""
    if not text:
        return default
    return orjson.loads(text)
