from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class KeyValueEntry(SQLModel, table=True):
    """A JSON value stored under a string key."""

    __tablename__ = "kv_entries"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
