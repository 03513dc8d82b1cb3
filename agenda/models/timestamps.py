from datetime import UTC, datetime

from sqlalchemy import Column, DateTime


def utc_now() -> datetime:
    """Aware UTC for TIMESTAMP WITH TIME ZONE columns."""
    return datetime.now(UTC)


def timestamp_column(nullable: bool = False) -> Column:
    # A fresh Column per field; SQLAlchemy columns cannot be shared between tables
    return Column(DateTime(timezone=True), nullable=nullable)
