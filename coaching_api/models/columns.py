"""
Column helpers shared by the models.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def json_column(**kwargs) -> Column:
    """A fresh JSON column; SQLAlchemy columns cannot be shared between fields."""
    return Column(JSONType, **kwargs)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
