"""Shared utilities: datetime and id generators."""

from app.shared.utils.datetime import ensure_utc, parse_datetime, utc_now
from app.shared.utils.generators import generate_access_id, generate_cuid

__all__ = [
    "ensure_utc",
    "generate_access_id",
    "generate_cuid",
    "parse_datetime",
    "utc_now",
]
