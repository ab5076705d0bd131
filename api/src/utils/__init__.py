"""Shared helpers."""

from src.utils.serialization import dumps_json, loads_json
from src.utils.timestamps import ensure_utc_aware, utc_now


__all__ = ["dumps_json", "ensure_utc_aware", "loads_json", "utc_now"]
